"""
FlapSim Server  –  Flask + Server-Sent Events
=============================================

Endpoints:
  POST /session      Create (or recreate) a game with JSON config body
                     and start its loop thread
  POST /shutdown     Stop the loop thread
  POST /mode         {"mode": "PLAYER" | "AI"}
  POST /start        Start playing (AI training or a player run)
  POST /flap         Human flap (player mode)
  POST /reset        Reset the current mode
  POST /speed        {"speed": 1 | 2 | 10}  (AI mode)
  POST /autopilot    {"enabled": true}      (player mode)
  POST /stop         Stop training and save the best living brain (AI mode)
  GET  /stream       SSE stream – one frame snapshot per event
  GET  /status       Current game state as JSON

Run:
  python server.py
  # → http://localhost:5000
"""

import threading
import queue
import json
import logging
import sys
import os
from concurrent.futures import TimeoutError as FutureTimeout

from flask import Flask, Response, request, jsonify

# Make sure the flapsim modules are importable from this folder
sys.path.insert(0, os.path.dirname(__file__))

from simulation import Simulation, parse_mode
from evolution import EvolutionEngine
from game_loop import GameLoop
from storage import BrainStore
from config import AI_POPULATION, AI_MUTATION_RATE, SAVE_DIR

log = logging.getLogger(__name__)

COMMAND_TIMEOUT = 2.0   # seconds a request waits for the loop thread

# ──────────────────────────────────────────────────────────────────────────────
app = Flask(__name__)

# Global game state
_loop:        GameLoop | None = None
_loop_thread: threading.Thread | None = None
_stop_event   = threading.Event()
_frame_queue  = queue.Queue(maxsize=200)   # holds frames to stream
_events       = []                         # recent notices for /status
_status_lock  = threading.Lock()


# ──────────────────────────────────────────────────────────────────────────────
# CORS helper – allow a browser front end (any origin) to call us
# ──────────────────────────────────────────────────────────────────────────────

@app.after_request
def add_cors(response):
    response.headers["Access-Control-Allow-Origin"]  = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    return response

@app.route("/", methods=["OPTIONS"])
@app.route("/<path:p>", methods=["OPTIONS"])
def preflight(p=""):
    return Response(status=200)


# ──────────────────────────────────────────────────────────────────────────────
# Game construction / loop thread
# ──────────────────────────────────────────────────────────────────────────────

def _build_cfg(data: dict) -> dict:
    """Merge request JSON with defaults."""
    seed = data.get("seed")
    return {
        "mode":          parse_mode(data.get("mode", "PLAYER")),
        "population":    int(data.get("population",   AI_POPULATION)),
        "mutation_rate": float(data.get("mutationRate", AI_MUTATION_RATE)),
        "seed":          int(seed) if seed is not None else None,
        "save_dir":      str(data.get("saveDir",      SAVE_DIR)),
    }


def _publish(frame: dict):
    """Render sink: non-blocking put, drop oldest frame if queue full."""
    if _frame_queue.full():
        try:
            _frame_queue.get_nowait()
        except queue.Empty:
            pass
    _frame_queue.put(frame)


def _record_event(name, payload):
    if name in ("notice", "generation", "die"):
        with _status_lock:
            _events.append({"type": name, **payload})
            del _events[:-20]


def build_loop(cfg: dict) -> GameLoop:
    store = BrainStore(cfg["save_dir"])
    sim = Simulation(
        mode       = cfg["mode"],
        population = cfg["population"],
        seed       = cfg["seed"],
        store      = store,
        on_event   = _record_event,
    )
    engine = EvolutionEngine(store=store, mutation_rate=cfg["mutation_rate"])
    return GameLoop(sim, engine, render=_publish)


def install_loop(loop: GameLoop, run_thread: bool = True):
    """Replace the current game, stopping any running loop thread first."""
    global _loop, _loop_thread, _stop_event

    _stop_event.set()
    if _loop_thread and _loop_thread.is_alive():
        _loop_thread.join(timeout=3)

    _stop_event = threading.Event()
    _loop = loop
    _loop_thread = None
    with _status_lock:
        _events.clear()

    if run_thread:
        _loop_thread = threading.Thread(
            target=_loop_worker, args=(loop, _stop_event), daemon=True)
        _loop_thread.start()


def _loop_worker(loop: GameLoop, stop_evt: threading.Event):
    """Drive frames until stopped. Player game over parks the loop until a reset."""
    while not stop_evt.is_set():
        loop.run(stop_event=stop_evt)
        # run() returned because a player run ended; wait for a command.
        while not stop_evt.is_set() and not loop.reschedule:
            loop.drain_commands()
            stop_evt.wait(0.05)
        loop.last_time = None


def _submit(name: str, *args):
    """Queue a command for the loop thread and wait for its result."""
    future = _loop.submit(name, *args)
    if _loop_thread is None or not _loop_thread.is_alive():
        _loop.drain_commands()
    return future.result(timeout=COMMAND_TIMEOUT)


def _busy():
    return jsonify({"error": "game loop did not respond in time"}), 503


def _command(name: str, *args):
    """Send a command to the loop and report the resulting state."""
    if _loop is None:
        return jsonify({"error": "no session, POST /session first"}), 409
    try:
        result = _submit(name, *args)
        current = _submit("status")
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    except FutureTimeout:
        return _busy()
    body = {"status": "ok", "state": current["state"], "mode": current["mode"]}
    if isinstance(result, bool):
        body["applied"] = result
    return jsonify(body)


def _json_body() -> dict:
    return request.get_json(force=True, silent=True) or {}


# ──────────────────────────────────────────────────────────────────────────────
# Routes
# ──────────────────────────────────────────────────────────────────────────────

@app.route("/session", methods=["POST"])
def session():
    try:
        cfg = _build_cfg(_json_body())
    except (TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400
    install_loop(build_loop(cfg))
    cfg["mode"] = cfg["mode"].value
    return jsonify({"status": "started", "cfg": cfg})


@app.route("/shutdown", methods=["POST"])
def shutdown():
    _stop_event.set()
    return jsonify({"status": "stopped"})


@app.route("/mode", methods=["POST"])
def mode():
    return _command("set_mode", _json_body().get("mode"))


@app.route("/start", methods=["POST"])
def start():
    return _command("start")


@app.route("/flap", methods=["POST"])
def flap():
    return _command("flap")


@app.route("/reset", methods=["POST"])
def reset():
    return _command("reset")


@app.route("/speed", methods=["POST"])
def speed():
    return _command("set_speed", _json_body().get("speed"))


@app.route("/autopilot", methods=["POST"])
def autopilot():
    return _command("set_autopilot", bool(_json_body().get("enabled", True)))


@app.route("/stop", methods=["POST"])
def stop():
    return _command("stop_and_save")


@app.route("/status", methods=["GET"])
def status():
    if _loop is None:
        return jsonify({"running": False})
    try:
        frame = _submit("status")
    except FutureTimeout:
        return _busy()
    with _status_lock:
        events = list(_events)
    return jsonify({
        "running":    bool(_loop_thread and _loop_thread.is_alive()),
        "mode":       frame["mode"],
        "state":      frame["state"],
        "generation": frame["generation"],
        "score":      frame["score"],
        "highScore":  frame["highScore"],
        "bestScore":  frame["bestScore"],
        "alive":      frame["alive"],
        "autopilot":  frame["autopilot"],
        "speed":      frame["speed"],
        "events":     events,
    })


@app.route("/stream", methods=["GET"])
def stream():
    """SSE endpoint – browser subscribes and receives each frame as an event."""

    def event_gen():
        yield "data: {\"type\": \"connected\"}\n\n"

        while True:
            try:
                frame = _frame_queue.get(timeout=1)
                yield f"data: {json.dumps({'type': 'frame', **frame})}\n\n"
            except queue.Empty:
                # Keep-alive ping
                yield "data: {\"type\": \"ping\"}\n\n"

    return Response(
        event_gen(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",    # disable nginx buffering if behind proxy
        },
    )


# ──────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s [%(levelname)s] %(message)s")
    print("=" * 50)
    print("  FlapSim Server  →  http://localhost:5000")
    print("  SSE stream      →  http://localhost:5000/stream")
    print("=" * 50)
    install_loop(build_loop(_build_cfg({})))
    app.run(host="0.0.0.0", port=5000, threaded=True, debug=False)
