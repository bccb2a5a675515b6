"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add the project root to the Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))


class ConstantBrain:
    """Stand-in brain that always outputs the same value."""

    def __init__(self, value: float):
        self.value = value

    def predict(self, inputs):
        assert len(inputs) == 4
        return np.array([self.value])

    def copy(self):
        return ConstantBrain(self.value)

    def mutate(self, rate, rng=None):
        pass


class RecordingStore:
    """In-memory BrainStore replacement."""

    def __init__(self, brain=None, high_score=0):
        self.brain = brain
        self.high_score = high_score
        self.saved_brains = []
        self.saved_scores = []

    def load_brain(self):
        return self.brain

    def save_brain(self, brain):
        self.saved_brains.append(brain.copy())
        self.brain = brain

    def load_high_score(self):
        return self.high_score

    def save_high_score(self, score):
        self.saved_scores.append(score)
        self.high_score = score


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def event_log():
    events = []

    def on_event(name, payload):
        events.append((name, payload))

    on_event.events = events
    return on_event
