"""
Game loop for FlapSim.

Decouples wall-clock frame rate from the fixed simulation step:

  each frame:
    virtual  = real elapsed ms * speed
    backlog += virtual             (capped at MAX_BACKLOG_MS * speed)
    while backlog >= FIXED_TIME_STEP:
        step the simulation (only while PLAYING)
        backlog -= FIXED_TIME_STEP
    render once

Control commands from other threads are queued with submit() and applied
by the loop between frames, so the simulation has exactly one writer.
"""

import logging
import queue
import time
from collections import namedtuple
from concurrent.futures import Future

from simulation import GameMode, GameState, StepResult, parse_mode
from evolution import EvolutionEngine
from config import FIXED_TIME_STEP, MAX_BACKLOG_MS, SPEED_CHOICES, FRAME_INTERVAL

log = logging.getLogger(__name__)

FrameReport = namedtuple("FrameReport", ["steps", "reschedule", "frame"])


class GameLoop:

    COMMANDS = ("set_mode", "start", "flap", "reset", "set_speed",
                "set_autopilot", "stop_and_save", "status")

    def __init__(self, simulation, engine: EvolutionEngine = None, render=None):
        self.sim         = simulation
        self.engine      = engine if engine is not None else EvolutionEngine()
        self.render      = render      # render(frame_dict), once per frame
        self.speed       = 1
        self.accumulator = 0.0
        self.last_time   = None
        self.total_steps = 0
        self._commands   = queue.Queue()

    # ──────────────────────────────────────────────────────────────────────────
    # Frame driver
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def reschedule(self) -> bool:
        """AI mode loops forever; player mode stops at game over until reset."""
        return self.sim.mode is GameMode.AI or self.sim.state is not GameState.GAME_OVER

    def tick(self, now_ms: float) -> FrameReport:
        """One frame callback. `now_ms` is a monotonic timestamp in ms."""
        self.drain_commands()

        if self.last_time is None:
            self.last_time = now_ms
        elapsed = now_ms - self.last_time
        self.last_time = now_ms

        self.accumulator += elapsed * self.speed
        self.accumulator = min(self.accumulator, MAX_BACKLOG_MS * self.speed)

        steps = 0
        while self.accumulator >= FIXED_TIME_STEP:
            if self.sim.state is GameState.PLAYING:
                self._step()
                steps += 1
            self.accumulator -= FIXED_TIME_STEP

        frame = self.sim.snapshot()
        if self.render is not None:
            self.render(frame)
        return FrameReport(steps, self.reschedule, frame)

    def run(self, max_frames: int = None, clock=time.monotonic,
            sleep=time.sleep, stop_event=None) -> int:
        """
        Cooperative headless driver. Returns the number of frames ticked.
        Stops on max_frames, a set stop_event, or when tick() says so.
        """
        frames = 0
        while stop_event is None or not stop_event.is_set():
            report = self.tick(clock() * 1000.0)
            frames += 1
            if not report.reschedule:
                break
            if max_frames is not None and frames >= max_frames:
                break
            sleep(FRAME_INTERVAL)
        return frames

    def advance(self, max_steps: int, until=None) -> int:
        """
        Run simulation steps back to back, ignoring wall-clock time
        (headless training). Stops early when not PLAYING or `until()`
        is true. Returns the number of steps run.
        """
        steps = 0
        while steps < max_steps and self.sim.state is GameState.PLAYING:
            if until is not None and until():
                break
            self._step()
            steps += 1
        return steps

    def _step(self) -> StepResult:
        result = self.sim.step()
        self.total_steps += 1
        if result is StepResult.GENERATION_OVER:
            self.engine.next_generation(self.sim)
        return result

    # ──────────────────────────────────────────────────────────────────────────
    # Commands
    # ──────────────────────────────────────────────────────────────────────────

    def _restart_clock(self):
        self.accumulator = 0.0
        self.last_time   = None

    def set_mode(self, mode):
        mode = parse_mode(mode)
        self.speed = 1
        self.engine.reset()
        self.sim.reset(mode)
        self._restart_clock()

    def reset(self):
        self.engine.reset()
        self.sim.reset(self.sim.mode)
        self._restart_clock()

    def start(self):
        self.sim.start()

    def flap(self) -> bool:
        return self.sim.flap()

    def set_speed(self, speed):
        if self.sim.mode is not GameMode.AI:
            raise ValueError("speed can only be changed in AI mode")
        try:
            speed = int(speed)
        except (TypeError, ValueError):
            raise ValueError(f"speed must be one of {SPEED_CHOICES}") from None
        if speed not in SPEED_CHOICES:
            raise ValueError(f"speed must be one of {SPEED_CHOICES}")
        self.speed = speed

    def set_autopilot(self, enabled):
        self.sim.set_autopilot(enabled)

    def stop_and_save(self):
        if self.sim.mode is not GameMode.AI:
            raise ValueError("stop-and-save is only available in AI mode")
        best = self.engine.stop_and_save(self.sim)
        self._restart_clock()
        return best

    def status(self) -> dict:
        """Consistent frame plus loop settings, read on the loop thread."""
        frame = self.sim.snapshot()
        frame["speed"] = self.speed
        return frame

    def submit(self, command: str, *args) -> Future:
        """Queue a command for the loop thread. The Future holds its result."""
        if command not in self.COMMANDS:
            raise ValueError(f"unknown command {command!r}")
        future = Future()
        self._commands.put((command, args, future))
        return future

    def drain_commands(self) -> int:
        """Apply every queued command. Returns how many were applied."""
        applied = 0
        while True:
            try:
                command, args, future = self._commands.get_nowait()
            except queue.Empty:
                return applied
            try:
                future.set_result(getattr(self, command)(*args))
            except ValueError as exc:
                log.debug("Rejected command %s%r: %s", command, args, exc)
                future.set_exception(exc)
            except Exception as exc:
                log.exception("Command %s%r failed", command, args)
                future.set_exception(exc)
            applied += 1
