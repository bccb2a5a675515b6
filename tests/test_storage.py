"""
Tests for BrainStore persistence.
"""

import json
import logging
import os

import numpy as np

from storage import BrainStore
from neural_network import NeuralNetwork
from simulation import Simulation
from config import MODEL_FILE, HIGH_SCORE_FILE


class TestBrain:

    def test_missing_file_returns_none(self, tmp_path):
        assert BrainStore(str(tmp_path)).load_brain() is None

    def test_round_trip(self, tmp_path, rng):
        store = BrainStore(str(tmp_path))
        brain = NeuralNetwork(rng=rng)
        store.save_brain(brain)
        loaded = store.load_brain()
        np.testing.assert_array_equal(loaded.parameters(), brain.parameters())

    def test_creates_directory(self, tmp_path, rng):
        target = tmp_path / "nested" / "dir"
        BrainStore(str(target)).save_brain(NeuralNetwork(rng=rng))
        assert (target / MODEL_FILE).is_file()
        assert not (target / (MODEL_FILE + ".tmp")).exists()

    def test_overwrites_previous(self, tmp_path):
        store = BrainStore(str(tmp_path))
        first = NeuralNetwork(rng=np.random.default_rng(1))
        second = NeuralNetwork(rng=np.random.default_rng(2))
        store.save_brain(first)
        store.save_brain(second)
        np.testing.assert_array_equal(store.load_brain().parameters(),
                                      second.parameters())

    def test_malformed_json_is_recovered(self, tmp_path, caplog):
        (tmp_path / MODEL_FILE).write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="storage"):
            assert BrainStore(str(tmp_path)).load_brain() is None
        assert "Failed to load AI model" in caplog.text

    def test_wrong_shape_is_recovered(self, tmp_path, rng):
        data = NeuralNetwork(rng=rng).to_dict()
        data["weightsIH"] = data["weightsIH"][:2]
        (tmp_path / MODEL_FILE).write_text(json.dumps(data), encoding="utf-8")
        assert BrainStore(str(tmp_path)).load_brain() is None

    def test_undecodable_bytes_are_recovered(self, tmp_path):
        (tmp_path / MODEL_FILE).write_bytes(b'{"inputNodes": "\xff\xfe"}')
        assert BrainStore(str(tmp_path)).load_brain() is None

    def test_foreign_topology_is_rejected(self, tmp_path, rng, caplog):
        store = BrainStore(str(tmp_path))
        store.save_brain(NeuralNetwork(3, 6, 1, rng=rng))
        with caplog.at_level(logging.WARNING, logger="storage"):
            assert store.load_brain() is None
        assert "3-6-1" in caplog.text

    def test_player_falls_back_to_fresh_brain(self, tmp_path, rng):
        store = BrainStore(str(tmp_path))
        store.save_brain(NeuralNetwork(3, 6, 1, rng=rng))
        sim = Simulation(seed=1, store=store)
        sim.set_autopilot(True)
        sim.start()
        sim.step()
        assert sim.birds[0].brain.input_nodes == 4


class TestHighScore:

    def test_default_zero(self, tmp_path):
        assert BrainStore(str(tmp_path)).load_high_score() == 0

    def test_round_trip(self, tmp_path):
        store = BrainStore(str(tmp_path))
        store.save_high_score(17)
        assert store.load_high_score() == 17
        with open(os.path.join(str(tmp_path), HIGH_SCORE_FILE)) as f:
            assert json.load(f) == {"highScore": 17}

    def test_garbage_is_recovered(self, tmp_path):
        (tmp_path / HIGH_SCORE_FILE).write_text('{"score": 3}', encoding="utf-8")
        assert BrainStore(str(tmp_path)).load_high_score() == 0
