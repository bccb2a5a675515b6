"""
FlapSim – Main Entry Point
==========================

Usage examples:
  python main.py                          # train 100 generations headless
  python main.py --gens 300 --pop 100     # custom parameters
  python main.py --seed 7                 # reproducible run
  python main.py --no_mutation            # champion-only copies (demonstration)
  python main.py --play                   # let the saved brain fly (autopilot)
  python main.py --realtime --speed 10    # drive the wall-clock loop instead
"""

import argparse
import logging
import os

from simulation  import Simulation, GameMode, GameState
from evolution   import EvolutionEngine
from game_loop   import GameLoop
from storage     import BrainStore
from visualizer  import (ensure_dirs, save_frame_snapshot,
                         save_training_chart, save_brain_diagram,
                         append_csv)
from config import (SAVE_DIR, SNAPSHOT_INTERVAL, AI_POPULATION,
                    AI_MUTATION_RATE, SPEED_CHOICES)


# ──────────────────────────────────────────────────────────────────────────────
# CLI
# ──────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="FlapSim – Flappy neuroevolution simulator")
    p.add_argument("--gens",       type=int,   default=100,
                   help="Number of generations to train")
    p.add_argument("--pop",        type=int,   default=AI_POPULATION,
                   help="Population size")
    p.add_argument("--mutation",   type=float, default=AI_MUTATION_RATE,
                   help="Per-parameter mutation probability")
    p.add_argument("--no_mutation",action="store_true",
                   help="Set mutation rate to 0 (demonstration)")
    p.add_argument("--max_steps",  type=int,   default=2_000_000,
                   help="Stop after this many simulation steps in total")
    p.add_argument("--seed",       type=int,   default=None,
                   help="Random seed for reproducibility")
    p.add_argument("--outdir",     default=SAVE_DIR,
                   help="Output directory (charts, snapshots, saved brain)")
    p.add_argument("--snapshot_interval", type=int, default=SNAPSHOT_INTERVAL,
                   help="Save a frame + brain diagram every N generations")
    p.add_argument("--play",       action="store_true",
                   help="Fly the saved brain in player mode on autopilot")
    p.add_argument("--realtime",   action="store_true",
                   help="Drive training from the wall clock (fixed timestep loop)")
    p.add_argument("--speed",      type=int,   default=1, choices=SPEED_CHOICES,
                   help="Speed multiplier for --realtime training")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Debug logging")
    args = p.parse_args(argv)
    if args.pop < 1:
        p.error("--pop must be at least 1")
    if not 0.0 <= args.mutation <= 1.0:
        p.error("--mutation must be within [0, 1]")
    return args


# ──────────────────────────────────────────────────────────────────────────────
# Callbacks
# ──────────────────────────────────────────────────────────────────────────────

class SimCallbacks:
    """Bundles the per-generation callbacks used by training."""

    def __init__(self, outdir: str, snapshot_interval: int, all_stats: list):
        self.outdir            = outdir
        self.snapshot_interval = snapshot_interval
        self.all_stats         = all_stats

    def on_generation(self, stats, sim, parents):
        self.all_stats.append(stats)
        append_csv(stats, self.outdir)

        gen_idx = stats["generation"]
        if gen_idx % self.snapshot_interval == 0 and parents:
            npath = save_brain_diagram(parents[0], gen_idx, "champion", self.outdir)
            print(f"  → Brain diagram: {npath}")

        if gen_idx % 50 == 0:
            save_training_chart(self.all_stats, self.outdir)


# ──────────────────────────────────────────────────────────────────────────────
# Modes
# ──────────────────────────────────────────────────────────────────────────────

def train(args, store: BrainStore) -> list:
    mutation_rate = 0.0 if args.no_mutation else args.mutation
    all_stats = []
    cb = SimCallbacks(args.outdir, args.snapshot_interval, all_stats)

    sim = Simulation(mode=GameMode.AI, population=args.pop,
                     seed=args.seed, store=store)
    engine = EvolutionEngine(store=store, mutation_rate=mutation_rate,
                             on_generation=cb.on_generation)
    loop = GameLoop(sim, engine)
    sim.start()

    def finished():
        return sim.generation > args.gens or loop.total_steps >= args.max_steps

    if args.realtime:
        loop.set_speed(args.speed)
        while not finished():
            loop.run(max_frames=60)
    else:
        loop.advance(args.max_steps, until=finished)

    if loop.total_steps >= args.max_steps and sim.generation <= args.gens:
        print(f"  !! Step limit reached during generation {sim.generation}.")
        best = engine.stop_and_save(sim)
        if best is not None:
            print(f"  → Saved living bird with score {best.score}")
    return all_stats


def play(args, store: BrainStore) -> int:
    sim = Simulation(mode=GameMode.PLAYER, seed=args.seed, store=store)
    sim.set_autopilot(True)
    loop = GameLoop(sim)
    sim.start()
    loop.advance(args.max_steps)
    frame = sim.snapshot()
    save_frame_snapshot(frame, args.outdir, "play")
    if sim.state is GameState.GAME_OVER:
        print(f"  Game over. Score: {sim.score}  (high score {sim.high_score})")
    else:
        print(f"  Still flying after {args.max_steps} steps. Score: {sim.score}")
    return sim.score


# ──────────────────────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────────────────────

def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s [%(levelname)s] %(message)s")
    ensure_dirs(args.outdir)
    store = BrainStore(args.outdir)

    print("=" * 60)
    print("  FlapSim – Flappy Neuroevolution Simulator")
    print("=" * 60)
    if args.play:
        print(f"  Mode       : play saved brain ({store.model_path})")
        print("=" * 60)
        play(args, store)
        return

    print(f"  Population : {args.pop}")
    print(f"  Generations: {args.gens}")
    print(f"  Mutation   : {0.0 if args.no_mutation else args.mutation}")
    print(f"  Seed       : {args.seed}")
    print(f"  Output dir : {args.outdir}")
    print("=" * 60)

    all_stats = train(args, store)

    print("\nSaving final training chart …")
    chart_path = save_training_chart(all_stats, args.outdir, "training_final.png")
    if chart_path:
        print(f"  → {chart_path}")
    print("\nDone! All outputs saved to:", os.path.abspath(args.outdir))


if __name__ == "__main__":
    main()
