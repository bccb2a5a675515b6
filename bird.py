"""
Bird class for FlapSim.

Each bird has:
  - (x, y) position and a vertical velocity
  - A NeuralNetwork brain
  - Bookkeeping: distance, score, fitness, alive, colour / champion tag

Every simulation step a living bird:
  1. Accrues distance and recomputes fitness
  2. (AI controlled only) senses the target pipe and runs its brain
  3. Falls under gravity
  4. Checks ground, ceiling and pipe collisions
"""

import numpy as np
from neural_network import NeuralNetwork
from config import (
    CANVAS_WIDTH, CANVAS_HEIGHT, FLOOR_Y,
    GRAVITY, JUMP_STRENGTH, BIRD_RADIUS,
    MAX_ROTATION, ROTATION_FACTOR, SPAWN_X, SPAWN_Y,
    PIPE_SPEED, PIPE_WIDTH, PIPE_GAP,
    SCORE_WEIGHT, JUMP_THRESHOLD, VELOCITY_RANGE,
    PLAYER_COLOR, CHAMPION_COLOR,
)


def random_color(rng) -> str:
    """Translucent random hue, so overlapping birds stay visible."""
    return f"hsla({rng.random() * 360:.1f}, 70%, 50%, 0.6)"


def compute_fitness(distance: float, score: int) -> float:
    """Score dominates: one cleared pipe outranks any survival distance."""
    return distance + score * SCORE_WEIGHT


class Bird:
    """
    A single agent. All birds share the same x; only y and velocity differ.
    """
    __slots__ = (
        "x", "y", "velocity", "rotation", "brain",
        "fitness", "score", "distance", "alive",
        "color", "champion",
    )

    def __init__(self, brain: NeuralNetwork = None, color: str = PLAYER_COLOR,
                 champion: bool = False, rng=None):
        self.x        = SPAWN_X
        self.y        = SPAWN_Y
        self.velocity = 0.0
        self.rotation = 0.0
        self.brain    = brain if brain is not None else NeuralNetwork(rng=rng)
        self.fitness  = 0.0
        self.score    = 0
        self.distance = 0.0
        self.alive    = True
        self.color    = color
        self.champion = champion

    # ──────────────────────────────────────────────────────────────────────────

    def advance_distance(self):
        self.distance += PIPE_SPEED
        self.fitness = compute_fitness(self.distance, self.score)

    def sense(self, target) -> np.ndarray:
        """
        Build the 4 input values for the brain.

        `target` is anything with `x` and `top_height` (a Pipe or the
        virtual SensingTarget).
        """
        gap_center = target.top_height + PIPE_GAP / 2
        return np.array([
            self.y / CANVAS_HEIGHT,
            (self.velocity + VELOCITY_RANGE) / (2 * VELOCITY_RANGE),
            (target.x + PIPE_WIDTH - self.x) / CANVAS_WIDTH,
            (self.y - gap_center) / CANVAS_HEIGHT + 0.5,
        ])

    def think(self, target) -> bool:
        """Ask the brain whether to flap. Flaps (and returns True) above threshold."""
        output = self.brain.predict(self.sense(target))
        if output[0] > JUMP_THRESHOLD:
            self.flap()
            return True
        return False

    def flap(self):
        self.velocity = JUMP_STRENGTH

    def fall(self):
        """Gravity, integration, then cosmetic rotation."""
        self.velocity += GRAVITY
        self.y += self.velocity
        self.rotation = min(MAX_ROTATION,
                            max(-MAX_ROTATION, self.velocity * ROTATION_FACTOR))

    # ──────────────────────────────────────────────────────────────────────────
    # Collisions
    # ──────────────────────────────────────────────────────────────────────────

    def hits_ground(self) -> bool:
        return self.y + BIRD_RADIUS >= FLOOR_Y

    def clamp_to_ceiling(self) -> bool:
        """Ceiling contact is not fatal: pin to the boundary and stop."""
        if self.y - BIRD_RADIUS <= 0:
            self.y = BIRD_RADIUS
            self.velocity = 0.0
            return True
        return False

    def hits_pipe(self, pipe) -> bool:
        """
        Strict inequalities on both axes: touching a pipe's side or the gap
        edge exactly is safe.
        """
        overlaps_x = (self.x + BIRD_RADIUS > pipe.x and
                      self.x - BIRD_RADIUS < pipe.x + PIPE_WIDTH)
        if not overlaps_x:
            return False
        return (self.y - BIRD_RADIUS < pipe.top_height or
                self.y + BIRD_RADIUS > pipe.top_height + PIPE_GAP)

    def check_collisions(self, pipes) -> bool:
        """Apply ground, ceiling and pipe checks in order. Returns alive."""
        if self.hits_ground():
            self.alive = False
        self.clamp_to_ceiling()
        for pipe in pipes:
            if self.hits_pipe(pipe):
                self.alive = False
        return self.alive

    # ──────────────────────────────────────────────────────────────────────────

    def to_frame(self) -> dict:
        return {
            "x":        self.x,
            "y":        self.y,
            "rotation": self.rotation,
            "alive":    self.alive,
            "color":    self.color,
            "champion": self.champion,
            "score":    self.score,
        }


def make_champion(brain: NeuralNetwork) -> Bird:
    return Bird(brain, color=CHAMPION_COLOR, champion=True)
