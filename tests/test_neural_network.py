"""
Unit tests for the neural_network module.
"""

import json

import numpy as np
import pytest

from neural_network import NeuralNetwork, InvalidBrainError, sigmoid


# ============================================================================
# Construction / prediction
# ============================================================================

class TestConstruction:

    def test_default_topology(self, rng):
        nn = NeuralNetwork(rng=rng)
        assert nn.weights_ih.shape == (4, 6)
        assert nn.weights_ho.shape == (6, 1)
        assert nn.bias_h.shape == (6,)
        assert nn.bias_o.shape == (1,)
        assert nn.parameter_count == 4 * 6 + 6 * 1 + 6 + 1

    def test_values_uniform_in_unit_range(self, rng):
        params = NeuralNetwork(rng=rng).parameters()
        assert np.all(params >= -1.0) and np.all(params <= 1.0)

    def test_same_seed_same_network(self):
        a = NeuralNetwork(rng=np.random.default_rng(3))
        b = NeuralNetwork(rng=np.random.default_rng(3))
        np.testing.assert_array_equal(a.parameters(), b.parameters())


class TestPredict:

    def test_output_in_open_unit_interval(self, rng):
        nn = NeuralNetwork(rng=rng)
        for x in rng.random((20, 4)):
            out = nn.predict(x)
            assert out.shape == (1,)
            assert 0.0 < out[0] < 1.0

    def test_matches_hand_computation(self, rng):
        nn = NeuralNetwork(rng=rng)
        x = np.array([0.5, 0.5, 0.2, 0.6])
        hidden = []
        for j in range(6):
            s = sum(x[i] * nn.weights_ih[i][j] for i in range(4)) + nn.bias_h[j]
            hidden.append(1 / (1 + np.exp(-s)))
        s = sum(hidden[j] * nn.weights_ho[j][0] for j in range(6)) + nn.bias_o[0]
        assert nn.predict(x)[0] == pytest.approx(1 / (1 + np.exp(-s)))

    def test_deterministic(self, rng):
        nn = NeuralNetwork(rng=rng)
        x = [0.1, 0.9, 0.4, 0.5]
        assert nn.predict(x)[0] == nn.predict(x)[0]

    def test_wrong_input_length_rejected(self, rng):
        with pytest.raises(ValueError):
            NeuralNetwork(rng=rng).predict([0.1, 0.2, 0.3])

    def test_sigmoid_saturates_without_nan(self):
        out = sigmoid(np.array([-1e6, 0.0, 1e6]))
        assert np.all(np.isfinite(out))
        assert out[0] == 0.0
        assert out[1] == 0.5
        assert out[2] == 1.0


# ============================================================================
# Mutation / cloning
# ============================================================================

class TestMutate:

    def test_rate_zero_is_noop(self, rng):
        nn = NeuralNetwork(rng=rng)
        before = nn.parameters().copy()
        nn.mutate(0.0, rng)
        np.testing.assert_array_equal(nn.parameters(), before)

    def test_rate_one_changes_everything_within_bounds(self, rng):
        nn = NeuralNetwork(rng=rng)
        before = nn.parameters().copy()
        nn.mutate(1.0, rng)
        delta = nn.parameters() - before
        assert np.all(delta != 0.0)
        assert np.all(np.abs(delta) <= 0.5)

    def test_mostly_small_drift(self):
        rng = np.random.default_rng(0)
        nn = NeuralNetwork(rng=rng)
        deltas = []
        for _ in range(200):
            before = nn.parameters().copy()
            nn.mutate(1.0, rng)
            deltas.append(nn.parameters() - before)
        deltas = np.abs(np.concatenate(deltas))
        large_share = np.mean(deltas > 0.1)
        # Large jumps happen 5% of the time, and ~80% of those exceed 0.1
        assert 0.01 < large_share < 0.08

    def test_partial_rate_leaves_some_untouched(self):
        rng = np.random.default_rng(1)
        nn = NeuralNetwork(rng=rng)
        before = nn.parameters().copy()
        nn.mutate(0.1, rng)
        unchanged = np.sum(nn.parameters() == before)
        assert 0 < unchanged < nn.parameter_count

    def test_shapes_never_change(self, rng):
        nn = NeuralNetwork(rng=rng)
        nn.mutate(1.0, rng)
        assert nn.weights_ih.shape == (4, 6)
        assert nn.weights_ho.shape == (6, 1)


class TestCopy:

    def test_copy_is_equal_but_independent(self, rng):
        nn = NeuralNetwork(rng=rng)
        clone = nn.copy()
        np.testing.assert_array_equal(clone.parameters(), nn.parameters())
        clone.mutate(1.0, rng)
        clone.weights_ih[0, 0] = 99.0
        assert nn.weights_ih[0, 0] != 99.0
        assert not np.array_equal(clone.parameters(), nn.parameters())

    def test_clone_alias(self, rng):
        nn = NeuralNetwork(rng=rng)
        np.testing.assert_array_equal(nn.clone().parameters(), nn.parameters())


# ============================================================================
# Serialization
# ============================================================================

class TestSerialization:

    def test_round_trip_predicts_identically(self, rng):
        nn = NeuralNetwork(rng=rng)
        nn.mutate(0.5, rng)
        restored = NeuralNetwork.from_dict(json.loads(json.dumps(nn.to_dict())))
        for x in rng.random((25, 4)):
            assert restored.predict(x)[0] == nn.predict(x)[0]

    def test_dict_layout(self, rng):
        data = NeuralNetwork(rng=rng).to_dict()
        assert data["inputNodes"] == 4
        assert data["hiddenNodes"] == 6
        assert data["outputNodes"] == 1
        assert len(data["weightsIH"]) == 4 and len(data["weightsIH"][0]) == 6
        assert len(data["weightsHO"]) == 6 and len(data["weightsHO"][0]) == 1
        assert len(data["biasH"]) == 6
        assert len(data["biasO"]) == 1

    @pytest.mark.parametrize("corrupt", [
        lambda d: d.pop("weightsIH"),
        lambda d: d.update(biasH=[0.0, 1.0]),
        lambda d: d.update(weightsHO="nope"),
        lambda d: d.update(hiddenNodes=7),
        lambda d: d["biasO"].__setitem__(0, float("nan")),
    ])
    def test_malformed_data_rejected(self, rng, corrupt):
        data = NeuralNetwork(rng=rng).to_dict()
        corrupt(data)
        with pytest.raises(InvalidBrainError):
            NeuralNetwork.from_dict(data)

    def test_non_dict_rejected(self):
        with pytest.raises(InvalidBrainError):
            NeuralNetwork.from_dict([1, 2, 3])

    def test_invalid_brain_error_is_value_error(self):
        assert issubclass(InvalidBrainError, ValueError)

    def test_summary_mentions_topology(self, rng):
        assert "4-6-1" in NeuralNetwork(rng=rng).summary()
