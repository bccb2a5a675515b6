"""
Simulation Engine for FlapSim.

A Simulation is the single owned context for one game: the world, the
birds, the mode and the counters. It is advanced only by step(), one
fixed timestep per call:

  1. read the sensing target once (every bird sees the same world)
  2. for each living bird: distance/fitness, brain decision, gravity,
     collisions
  3. termination check (player game over / AI generation over)
  4. spawn, scroll and score pipes

Selection is never done here; on GENERATION_OVER the caller hands the
exhausted population to the EvolutionEngine.
"""

import logging
from enum import Enum

import numpy as np
from world import World
from bird import Bird
from evolution import random_population
from neural_network import NeuralNetwork
from config import AI_POPULATION, PLAYER_COLOR

log = logging.getLogger(__name__)


class GameMode(Enum):
    PLAYER = "PLAYER"
    AI     = "AI"


class GameState(Enum):
    READY     = "READY"
    PLAYING   = "PLAYING"
    GAME_OVER = "GAME_OVER"


class StepResult(Enum):
    CONTINUE        = "continue"
    GAME_OVER       = "game_over"         # player mode, sole bird died
    GENERATION_OVER = "generation_over"   # AI mode, nobody left alive


def parse_mode(value) -> GameMode:
    """Accepts a GameMode or its name in any case ("ai", "player")."""
    if isinstance(value, GameMode):
        return value
    try:
        return GameMode(str(value).upper())
    except ValueError:
        raise ValueError(f"unknown mode {value!r}, expected one of "
                         f"{[m.value for m in GameMode]}") from None


def _noop_event(name, payload):
    pass


class Simulation:
    """
    Main simulation context.
    """

    def __init__(
        self,
        mode              = GameMode.PLAYER,
        population: int   = AI_POPULATION,
        seed: int         = None,
        store             = None,    # BrainStore-like persistence sink
        on_event          = None,    # on_event(name, payload), audio/UI sink
    ):
        self.population = population
        self.world      = World(seed)
        self.rng        = self.world.rng
        self.store      = store
        self.on_event   = on_event or _noop_event

        self.mode       = parse_mode(mode)
        self.state      = GameState.READY
        self.birds      = []
        self.generation = 1
        self.best_score = 0
        self.alive_count = 0
        self.score      = 0
        self.steps      = 0
        self.autopilot  = False
        self.high_score = store.load_high_score() if store is not None else 0

        self.reset(self.mode)

    # ──────────────────────────────────────────────────────────────────────────
    # Mode / lifecycle
    # ──────────────────────────────────────────────────────────────────────────

    def reset(self, mode=None):
        """
        Rebuild the game for `mode` (default: current mode) and return to
        READY. The target mode is always explicit so a mode switch never
        reads a stale value.
        """
        self.mode = parse_mode(mode) if mode is not None else self.mode
        if self.mode is GameMode.PLAYER:
            self.birds = [self._player_bird()]
        else:
            self.birds = random_population(self.population, self.rng)
            self.autopilot = False
        self.generation = 1
        self.world.clear()
        self.best_score = 0
        self.score      = 0
        self.steps      = 0
        self.alive_count = len(self.birds)
        self.state      = GameState.READY

    def _player_bird(self) -> Bird:
        brain = self.store.load_brain() if self.store is not None else None
        if brain is None:
            brain = NeuralNetwork(rng=self.rng)
        return Bird(brain, color=PLAYER_COLOR)

    def begin_generation(self, birds: list, generation: int):
        """Install a freshly bred population and keep playing."""
        self.birds       = birds
        self.generation  = generation
        self.world.clear()
        self.best_score  = 0
        self.score       = 0
        self.steps       = 0
        self.alive_count = len(birds)
        self.state       = GameState.PLAYING

    def start(self):
        """READY → PLAYING. From GAME_OVER the game is reset first."""
        if self.state is GameState.GAME_OVER:
            self.reset(self.mode)
        self.state = GameState.PLAYING

    # ──────────────────────────────────────────────────────────────────────────
    # Player input
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def ai_controlled(self) -> bool:
        return self.mode is GameMode.AI or self.autopilot

    def flap(self) -> bool:
        """
        Human flap. Ignored in AI mode, under autopilot and after game over.
        From READY it also starts the game.
        """
        if self.mode is GameMode.AI or self.autopilot or not self.birds:
            return False
        if self.state is GameState.GAME_OVER:
            return False
        if self.state is GameState.READY:
            self.state = GameState.PLAYING
        self.birds[0].flap()
        self.on_event("jump", {})
        return True

    def set_autopilot(self, enabled: bool):
        if self.mode is not GameMode.PLAYER:
            raise ValueError("autopilot is only available in player mode")
        self.autopilot = bool(enabled)

    # ──────────────────────────────────────────────────────────────────────────
    # One fixed timestep
    # ──────────────────────────────────────────────────────────────────────────

    def step(self) -> StepResult:
        target = self.world.sensing_target()
        pipes  = self.world.pipes
        think  = self.ai_controlled
        gen_best = 0

        for bird in self.birds:
            if not bird.alive:
                continue
            bird.advance_distance()
            if think:
                bird.think(target)
            bird.fall()
            bird.check_collisions(pipes)
            gen_best = max(gen_best, bird.score)

        self.steps += 1
        self.alive_count = sum(1 for b in self.birds if b.alive)

        if self.mode is GameMode.AI:
            self.best_score = gen_best
            if self.alive_count == 0:
                return StepResult.GENERATION_OVER
        elif not self.birds or not self.birds[0].alive:
            self._game_over()
            return StepResult.GAME_OVER

        passed = self.world.update()
        if passed:
            for bird in self.birds:
                if bird.alive:
                    bird.score += passed
            self.score = max(b.score for b in self.birds)
            if self.mode is GameMode.PLAYER:
                self.on_event("score", {"score": self.score})
        return StepResult.CONTINUE

    def _game_over(self):
        self.state = GameState.GAME_OVER
        self.on_event("die", {"score": self.score})
        if self.score > self.high_score:
            self.high_score = self.score
            if self.store is not None:
                self.store.save_high_score(self.score)
            log.info("New high score: %d", self.score)

    # ──────────────────────────────────────────────────────────────────────────
    # Rendering contract
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        """Read-only view of everything needed to draw one frame."""
        return {
            "mode":       self.mode.value,
            "state":      self.state.value,
            "generation": self.generation,
            "score":      self.score,
            "highScore":  self.high_score,
            "bestScore":  self.best_score,
            "alive":      self.alive_count,
            "autopilot":  self.autopilot,
            "steps":      self.steps,
            "pipes":      self.world.snapshot(),
            "birds":      [b.to_frame() for b in self.birds],
        }

    def trajectories(self) -> np.ndarray:
        """(n_birds, 3) array of y, velocity, alive. Handy for comparing runs."""
        return np.array([[b.y, b.velocity, float(b.alive)] for b in self.birds])
