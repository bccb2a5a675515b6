"""
Unit tests for the bird module: physics, sensing, collisions, fitness.
"""

import math

import numpy as np
import pytest

from bird import Bird, compute_fitness, random_color, make_champion
from world import Pipe, VIRTUAL_TARGET
from config import (GRAVITY, JUMP_STRENGTH, BIRD_RADIUS, FLOOR_Y, PIPE_GAP,
                    PIPE_WIDTH, PIPE_SPEED, SCORE_WEIGHT, SPAWN_X, SPAWN_Y,
                    CANVAS_WIDTH, CANVAS_HEIGHT, CHAMPION_COLOR)
from conftest import ConstantBrain


@pytest.fixture
def bird(rng):
    return Bird(rng=rng)


class TestSpawn:

    def test_spawn_state(self, bird):
        assert (bird.x, bird.y) == (SPAWN_X, SPAWN_Y)
        assert bird.velocity == 0.0
        assert bird.alive
        assert bird.score == 0 and bird.distance == 0.0 and bird.fitness == 0.0

    def test_champion(self, rng):
        champ = make_champion(ConstantBrain(0.0))
        assert champ.champion
        assert champ.color == CHAMPION_COLOR

    def test_random_color_is_hsla(self, rng):
        assert random_color(rng).startswith("hsla(")


class TestFitness:

    def test_formula(self):
        assert compute_fitness(120.0, 2) == 120.0 + 2 * SCORE_WEIGHT

    def test_advance_distance(self, bird):
        bird.score = 1
        bird.advance_distance()
        assert bird.distance == PIPE_SPEED
        assert bird.fitness == PIPE_SPEED + SCORE_WEIGHT

    def test_more_distance_wins_at_equal_score(self):
        assert compute_fitness(301.0, 3) > compute_fitness(300.0, 3)

    def test_score_dominates_distance(self):
        # A full step-limited generation at PIPE_SPEED cannot reach SCORE_WEIGHT
        # without clearing pipes along the way.
        assert compute_fitness(0.0, 1) > compute_fitness(SCORE_WEIGHT - 1, 0)
        assert compute_fitness(10.0, 4) > compute_fitness(4000.0, 3)


class TestPhysics:

    def test_gravity_accumulates(self, bird):
        ys = [bird.y]
        for _ in range(10):
            bird.fall()
            ys.append(bird.y)
        assert bird.velocity == pytest.approx(10 * GRAVITY)
        assert all(b > a for a, b in zip(ys, ys[1:]))

    def test_flap_then_fall(self, bird):
        bird.flap()
        bird.fall()
        assert bird.velocity == pytest.approx(JUMP_STRENGTH + GRAVITY)
        assert bird.y < SPAWN_Y

    def test_rotation_clamped(self, bird):
        bird.velocity = 100
        bird.fall()
        assert bird.rotation == pytest.approx(math.pi / 4)
        bird.velocity = -100
        bird.fall()
        assert bird.rotation == pytest.approx(-math.pi / 4)
        bird.velocity = -GRAVITY + 2.0
        bird.fall()
        assert bird.rotation == pytest.approx(0.2)


class TestSensing:

    def test_inputs_against_virtual_target(self, bird):
        inputs = bird.sense(VIRTUAL_TARGET)
        assert inputs.shape == (4,)
        assert inputs[0] == pytest.approx(SPAWN_Y / CANVAS_HEIGHT)
        assert inputs[1] == pytest.approx(0.5)
        assert inputs[2] == pytest.approx((CANVAS_WIDTH + PIPE_WIDTH - SPAWN_X) / CANVAS_WIDTH)
        # Spawn height equals the virtual gap centre
        assert inputs[3] == pytest.approx(0.5)

    def test_velocity_normalisation(self, bird):
        bird.velocity = -20
        assert bird.sense(VIRTUAL_TARGET)[1] == pytest.approx(0.0)
        bird.velocity = 20
        assert bird.sense(VIRTUAL_TARGET)[1] == pytest.approx(1.0)

    def test_think_flaps_above_threshold(self):
        high = Bird(ConstantBrain(0.51))
        low = Bird(ConstantBrain(0.5))
        assert high.think(VIRTUAL_TARGET)
        assert high.velocity == JUMP_STRENGTH
        assert not low.think(VIRTUAL_TARGET)
        assert low.velocity == 0.0


class TestCollisions:

    def test_ground_kills_inclusive(self, bird):
        bird.y = FLOOR_Y - BIRD_RADIUS
        assert bird.hits_ground()
        assert not bird.check_collisions([])
        assert not bird.alive

    def test_just_above_ground_survives(self, bird):
        bird.y = FLOOR_Y - BIRD_RADIUS - 0.01
        assert bird.check_collisions([])

    def test_ceiling_clamps_without_killing(self, bird):
        bird.y = 3.0
        bird.velocity = -7.0
        assert bird.check_collisions([])
        assert bird.y == BIRD_RADIUS
        assert bird.velocity == 0.0

    def test_fully_inside_gap_never_dies(self, bird):
        pipe = Pipe(SPAWN_X - PIPE_WIDTH / 2, 200)
        for y in np.linspace(200 + BIRD_RADIUS, 200 + PIPE_GAP - BIRD_RADIUS, 25):
            bird.y = y
            assert not bird.hits_pipe(pipe)

    def test_touching_gap_edge_is_safe(self, bird):
        pipe = Pipe(SPAWN_X - PIPE_WIDTH / 2, 200)
        bird.y = 200 + BIRD_RADIUS             # top of bird on the gap top
        assert not bird.hits_pipe(pipe)
        bird.y = 200 + PIPE_GAP - BIRD_RADIUS  # bottom of bird on the gap bottom
        assert not bird.hits_pipe(pipe)

    def test_crossing_gap_edge_kills(self, bird):
        pipe = Pipe(SPAWN_X - PIPE_WIDTH / 2, 200)
        bird.y = 200 + BIRD_RADIUS - 0.5
        assert bird.hits_pipe(pipe)
        bird.y = 200 + PIPE_GAP - BIRD_RADIUS + 0.5
        assert bird.hits_pipe(pipe)
        assert not bird.check_collisions([pipe])

    def test_no_horizontal_overlap_is_safe(self, bird):
        bird.y = 20   # far above any gap
        touching_front = Pipe(SPAWN_X + BIRD_RADIUS, 300)
        just_behind = Pipe(SPAWN_X - BIRD_RADIUS - PIPE_WIDTH - 0.01, 300)
        assert not bird.hits_pipe(touching_front)
        assert not bird.hits_pipe(just_behind)
        assert bird.hits_pipe(Pipe(SPAWN_X + BIRD_RADIUS - 1, 300))

    def test_to_frame(self, bird):
        frame = bird.to_frame()
        assert set(frame) == {"x", "y", "rotation", "alive", "color",
                              "champion", "score"}
