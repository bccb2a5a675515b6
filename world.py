"""
World for FlapSim.

The world is the strip of sky shared by every bird: a ceiling at y=0,
ground at FLOOR_Y, and an ordered list of pipes scrolling right to left.
All birds share one x position (SPAWN_X), so pipe targeting and passage
scoring are done against that single reference x.
"""

from collections import namedtuple

import numpy as np
from config import (CANVAS_WIDTH, CANVAS_HEIGHT, FLOOR_Y,
                    PIPE_SPEED, PIPE_SPAWN_RATE, PIPE_WIDTH, PIPE_GAP,
                    MIN_PIPE_TOP, MAX_PIPE_TOP, BIRD_RADIUS, SPAWN_X)


# What the brains aim at. `virtual` is True for the stand-in used before
# the first pipe exists; it never enters World.pipes.
SensingTarget = namedtuple("SensingTarget", ["x", "top_height", "virtual"])

VIRTUAL_TARGET = SensingTarget(
    x=CANVAS_WIDTH,
    top_height=CANVAS_HEIGHT / 2 - PIPE_GAP / 2,
    virtual=True,
)


class Pipe:
    """A pipe pair with a fixed-height gap starting at `top_height`."""
    __slots__ = ("x", "top_height", "passed")

    def __init__(self, x: float, top_height: float):
        self.x = x
        self.top_height = top_height
        self.passed = False

    @property
    def trailing_edge(self) -> float:
        return self.x + PIPE_WIDTH

    @property
    def bottom_y(self) -> float:
        return self.top_height + PIPE_GAP

    def __repr__(self):
        return f"Pipe(x={self.x}, top_height={self.top_height}, passed={self.passed})"


class World:
    """
    Owns the pipe sequence and the spawn counter.
    """

    def __init__(self, seed: int = None, rng=None):
        self.width  = CANVAS_WIDTH
        self.height = CANVAS_HEIGHT
        self.floor  = FLOOR_Y
        self.rng    = rng if rng is not None else np.random.default_rng(seed)
        self.reference_x = SPAWN_X
        self.pipes  = []
        self.spawn_counter = 0

    # ──────────────────────────────────────────────────────────────────────────
    # Pipe lifecycle
    # ──────────────────────────────────────────────────────────────────────────

    def clear(self):
        """Remove all pipes and restart the spawn cadence."""
        self.pipes = []
        self.spawn_counter = 0

    def spawn_tick(self):
        """Count one step; spawn a pipe once the counter exceeds the rate."""
        self.spawn_counter += 1
        if self.spawn_counter > PIPE_SPAWN_RATE:
            self.spawn_pipe()
            self.spawn_counter = 0

    def spawn_pipe(self, top_height: float = None) -> Pipe:
        if top_height is None:
            top_height = int(self.rng.integers(MIN_PIPE_TOP, MAX_PIPE_TOP + 1))
        pipe = Pipe(CANVAS_WIDTH, top_height)
        self.pipes.append(pipe)
        return pipe

    def advance(self):
        """Scroll every pipe left and drop those fully off screen."""
        for pipe in self.pipes:
            pipe.x -= PIPE_SPEED
        self.pipes = [p for p in self.pipes if p.trailing_edge >= 0]

    def score_passages(self, reference_x: float = None) -> int:
        """
        Mark pipes whose trailing edge is now behind the birds as passed.
        Returns how many pipes changed state on this call.
        """
        if reference_x is None:
            reference_x = self.reference_x
        newly_passed = 0
        for pipe in self.pipes:
            if not pipe.passed and reference_x > pipe.trailing_edge:
                pipe.passed = True
                newly_passed += 1
        return newly_passed

    def update(self) -> int:
        """One world tick: spawn, scroll, retire, score. Returns pipes passed."""
        self.spawn_tick()
        self.advance()
        return self.score_passages()

    # ──────────────────────────────────────────────────────────────────────────
    # Sensing helpers (used by birds)
    # ──────────────────────────────────────────────────────────────────────────

    def closest_pipe(self, reference_x: float = None):
        """First pipe whose trailing edge is still ahead of the bird's front, or None."""
        if reference_x is None:
            reference_x = self.reference_x
        for pipe in self.pipes:
            if pipe.trailing_edge > reference_x - BIRD_RADIUS:
                return pipe
        return None

    def sensing_target(self, reference_x: float = None) -> SensingTarget:
        pipe = self.closest_pipe(reference_x)
        if pipe is None:
            return VIRTUAL_TARGET
        return SensingTarget(pipe.x, pipe.top_height, False)

    # ──────────────────────────────────────────────────────────────────────────
    # Snapshot for visualisation
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> list:
        return [
            {"x": p.x, "topHeight": p.top_height,
             "bottomY": p.bottom_y, "passed": p.passed}
            for p in self.pipes
        ]
