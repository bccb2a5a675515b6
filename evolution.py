"""
Evolution Engine for FlapSim.

Generational loop driven by extinction:

  RUNNING(gen N) → everyone dead → SELECTING → RUNNING(gen N+1)

Selection:    sort by fitness (descending, stable) and keep the top K brains
Elitism:      the best brain is copied unmutated into slot 0 (the champion)
              and persisted as the best known model
Reproduction: remaining slots cycle through the K parents round robin,
              each a mutated copy. There is no crossover.
"""

import logging
import time
from enum import Enum

import numpy as np
from bird import Bird, random_color, make_champion
from neural_network import NeuralNetwork
from config import AI_MUTATION_RATE, ELITE_COUNT

log = logging.getLogger(__name__)


class EvolutionPhase(Enum):
    RUNNING   = "running"
    SELECTING = "selecting"


# ──────────────────────────────────────────────────────────────────────────────
# Population-level operations
# ──────────────────────────────────────────────────────────────────────────────

def random_population(size: int, rng=None) -> list:
    """First generation: fresh random brains, random colours."""
    if rng is None:
        rng = np.random.default_rng()
    return [Bird(NeuralNetwork(rng=rng), color=random_color(rng))
            for _ in range(size)]


def select_parents(birds: list, count: int = ELITE_COUNT) -> list:
    """
    Top `count` brains by fitness. Python's sort is stable, so ties keep
    population order and a degenerate all-equal population still ranks.
    """
    ranked = sorted(birds, key=lambda b: b.fitness, reverse=True)
    return [b.brain for b in ranked[:count]]


def breed(parents: list, size: int, rate: float = AI_MUTATION_RATE,
          rng=None) -> list:
    """
    Build `size` birds from `parents` (best first). Slot 0 is the
    unmutated champion; slot i takes parents[i % K] and mutates it.
    """
    if rng is None:
        rng = np.random.default_rng()
    if not parents:
        return random_population(size, rng)

    birds = []
    for i in range(size):
        brain = parents[i % len(parents)].copy()
        if i == 0:
            birds.append(make_champion(brain))
            continue
        color = random_color(rng)
        brain.mutate(rate, rng)
        birds.append(Bird(brain, color=color))
    return birds


# ──────────────────────────────────────────────────────────────────────────────
# Engine
# ──────────────────────────────────────────────────────────────────────────────

class EvolutionEngine:
    """
    Turns an exhausted population into the next one. Holds the
    per-generation history; the live population belongs to the Simulation.
    """

    def __init__(
        self,
        store               = None,   # persistence sink for the best brain
        mutation_rate: float = AI_MUTATION_RATE,
        elite_count: int    = ELITE_COUNT,
        on_generation       = None,   # called with (stats, simulation, parents)
    ):
        self.store         = store
        self.mutation_rate = mutation_rate
        self.elite_count   = elite_count
        self.on_generation = on_generation
        self.phase         = EvolutionPhase.RUNNING
        self.history       = []
        self._gen_started  = time.time()

    # ──────────────────────────────────────────────────────────────────────────

    def next_generation(self, sim) -> dict:
        """
        Rollover: rank, persist the best, breed, reinstall into `sim`.
        Returns the finished generation's stats.
        """
        self.phase = EvolutionPhase.SELECTING
        birds = sim.birds
        stats = self._compute_stats(sim)

        parents = select_parents(birds, self.elite_count)
        if parents and self.store is not None:
            self.store.save_brain(parents[0])

        new_birds = breed(parents, sim.population, self.mutation_rate, sim.rng)
        sim.begin_generation(new_birds, sim.generation + 1)

        self.history.append(stats)
        self._gen_started = time.time()
        self.phase = EvolutionPhase.RUNNING

        log.info(
            "Gen %5d  |  best score %4d  |  best fitness %10.1f  |  "
            "mean fitness %10.1f  |  %.2fs",
            stats["generation"], stats["best_score"], stats["best_fitness"],
            stats["mean_fitness"], stats["elapsed_s"],
        )
        sim.on_event("generation", {"generation": sim.generation,
                                    "previous": stats})
        if self.on_generation:
            self.on_generation(stats, sim, parents)
        return stats

    def stop_and_save(self, sim):
        """
        Manual stop: persist the fittest *living* bird's brain, then put the
        simulation back to READY at generation 1. No next generation is bred.
        Returns the saved bird, or None when nobody was alive.
        """
        alive = [b for b in sim.birds if b.alive]
        best = None
        if alive:
            best = max(alive, key=lambda b: b.fitness)
            if self.store is not None:
                self.store.save_brain(best.brain)
            sim.on_event("notice", {
                "message": f"Training stopped. Best model saved! (Score: {best.score})",
                "score":   best.score,
            })
            log.info("Training stopped, saved brain with score %d", best.score)
        else:
            sim.on_event("notice", {"message": "Training stopped."})
            log.info("Training stopped, no living bird to save")

        sim.reset(sim.mode)
        self.reset()
        return best

    def reset(self):
        self.phase        = EvolutionPhase.RUNNING
        self.history      = []
        self._gen_started = time.time()

    # ──────────────────────────────────────────────────────────────────────────
    # Stats
    # ──────────────────────────────────────────────────────────────────────────

    def _compute_stats(self, sim) -> dict:
        fitness = [b.fitness for b in sim.birds]
        return {
            "generation":   sim.generation,
            "population":   len(sim.birds),
            "best_score":   max((b.score for b in sim.birds), default=0),
            "best_fitness": max(fitness, default=0.0),
            "mean_fitness": float(np.mean(fitness)) if fitness else 0.0,
            "steps":        sim.steps,
            "elapsed_s":    round(time.time() - self._gen_started, 3),
        }
