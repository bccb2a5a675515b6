"""
Neural Network Brain for FlapSim.

Fixed topology feed-forward network:
  4 sensors → 6 hidden (sigmoid) → 1 output (sigmoid)

No backpropagation. Variation comes only from mutate(), which perturbs
individual weights and biases in place.
"""

import numpy as np
from config import (INPUT_NODES, HIDDEN_NODES, OUTPUT_NODES,
                    SMALL_MUTATION_SIZE, LARGE_MUTATION_SIZE,
                    LARGE_MUTATION_CHANCE, SENSOR_LABELS)


class InvalidBrainError(ValueError):
    """Raised when serialized brain data cannot be turned into a network."""


def sigmoid(x):
    # Unclamped: large |x| saturates to 0/1, numpy overflow warnings are noise.
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


class NeuralNetwork:
    """
    Tiny dense network. Weight layout follows the stored model format:
    weights_ih[i][j] connects input i to hidden j, weights_ho[j][k]
    connects hidden j to output k.
    """

    def __init__(self, input_nodes: int = INPUT_NODES,
                 hidden_nodes: int = HIDDEN_NODES,
                 output_nodes: int = OUTPUT_NODES, rng=None):
        if rng is None:
            rng = np.random.default_rng()
        self.input_nodes  = int(input_nodes)
        self.hidden_nodes = int(hidden_nodes)
        self.output_nodes = int(output_nodes)

        self.weights_ih = rng.uniform(-1.0, 1.0, (self.input_nodes, self.hidden_nodes))
        self.weights_ho = rng.uniform(-1.0, 1.0, (self.hidden_nodes, self.output_nodes))
        self.bias_h     = rng.uniform(-1.0, 1.0, self.hidden_nodes)
        self.bias_o     = rng.uniform(-1.0, 1.0, self.output_nodes)

    # ──────────────────────────────────────────────────────────────────────────

    def predict(self, inputs) -> np.ndarray:
        """
        Run one forward pass.

        Args:
            inputs: sequence of input_nodes floats (roughly 0..1)

        Returns:
            float64 array of shape (output_nodes,), values in (0, 1)
        """
        x = np.asarray(inputs, dtype=np.float64)
        if x.shape != (self.input_nodes,):
            raise ValueError(
                f"expected {self.input_nodes} inputs, got shape {x.shape}")
        hidden = sigmoid(x @ self.weights_ih + self.bias_h)
        return sigmoid(hidden @ self.weights_ho + self.bias_o)

    def mutate(self, rate: float, rng=None):
        """
        Perturb every parameter independently with probability `rate`.
        Mutated values get a small drift, or (rarely) a large jump to
        escape local optima.
        """
        if rng is None:
            rng = np.random.default_rng()
        self.weights_ih = self._mutate_array(self.weights_ih, rate, rng)
        self.weights_ho = self._mutate_array(self.weights_ho, rate, rng)
        self.bias_h     = self._mutate_array(self.bias_h, rate, rng)
        self.bias_o     = self._mutate_array(self.bias_o, rate, rng)

    @staticmethod
    def _mutate_array(values: np.ndarray, rate: float, rng) -> np.ndarray:
        selected = rng.random(values.shape) < rate
        large    = rng.random(values.shape) < LARGE_MUTATION_CHANCE
        jump     = rng.uniform(-LARGE_MUTATION_SIZE, LARGE_MUTATION_SIZE, values.shape)
        drift    = rng.uniform(-SMALL_MUTATION_SIZE, SMALL_MUTATION_SIZE, values.shape)
        delta    = np.where(large, jump, drift)
        return np.where(selected, values + delta, values)

    def copy(self) -> "NeuralNetwork":
        """Independent deep copy (no shared arrays)."""
        clone = NeuralNetwork.__new__(NeuralNetwork)
        clone.input_nodes  = self.input_nodes
        clone.hidden_nodes = self.hidden_nodes
        clone.output_nodes = self.output_nodes
        clone.weights_ih = self.weights_ih.copy()
        clone.weights_ho = self.weights_ho.copy()
        clone.bias_h     = self.bias_h.copy()
        clone.bias_o     = self.bias_o.copy()
        return clone

    clone = copy

    # ──────────────────────────────────────────────────────────────────────────
    # Serialization
    # ──────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "inputNodes":  self.input_nodes,
            "hiddenNodes": self.hidden_nodes,
            "outputNodes": self.output_nodes,
            "weightsIH":   self.weights_ih.tolist(),
            "weightsHO":   self.weights_ho.tolist(),
            "biasH":       self.bias_h.tolist(),
            "biasO":       self.bias_o.tolist(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NeuralNetwork":
        """Rebuild a network from to_dict() output. Raises InvalidBrainError."""
        if not isinstance(data, dict):
            raise InvalidBrainError(f"brain data must be a dict, got {type(data).__name__}")
        try:
            n_in  = int(data["inputNodes"])
            n_hid = int(data["hiddenNodes"])
            n_out = int(data["outputNodes"])
            arrays = {
                "weightsIH": (np.asarray(data["weightsIH"], dtype=np.float64), (n_in, n_hid)),
                "weightsHO": (np.asarray(data["weightsHO"], dtype=np.float64), (n_hid, n_out)),
                "biasH":     (np.asarray(data["biasH"],     dtype=np.float64), (n_hid,)),
                "biasO":     (np.asarray(data["biasO"],     dtype=np.float64), (n_out,)),
            }
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidBrainError(f"malformed brain data: {exc}") from exc

        for key, (arr, shape) in arrays.items():
            if arr.shape != shape:
                raise InvalidBrainError(f"{key} has shape {arr.shape}, expected {shape}")
            if not np.all(np.isfinite(arr)):
                raise InvalidBrainError(f"{key} contains non-finite values")

        nn = cls.__new__(cls)
        nn.input_nodes, nn.hidden_nodes, nn.output_nodes = n_in, n_hid, n_out
        nn.weights_ih = arrays["weightsIH"][0]
        nn.weights_ho = arrays["weightsHO"][0]
        nn.bias_h     = arrays["biasH"][0]
        nn.bias_o     = arrays["biasO"][0]
        return nn

    # ──────────────────────────────────────────────────────────────────────────

    @property
    def parameter_count(self) -> int:
        return (self.weights_ih.size + self.weights_ho.size
                + self.bias_h.size + self.bias_o.size)

    def parameters(self) -> np.ndarray:
        """All weights and biases flattened into one vector (for comparisons)."""
        return np.concatenate([self.weights_ih.ravel(), self.weights_ho.ravel(),
                               self.bias_h, self.bias_o])

    def summary(self) -> str:
        lines = [f"NeuralNetwork ({self.input_nodes}-{self.hidden_nodes}-"
                 f"{self.output_nodes}, {self.parameter_count} parameters)"]
        for i in range(self.input_nodes):
            label = SENSOR_LABELS.get(i, f"S{i:02d}")
            weights = "  ".join(f"{w:+.3f}" for w in self.weights_ih[i])
            lines.append(f"  {label:<10} → H  {weights}")
        for k in range(self.output_nodes):
            weights = "  ".join(f"{w:+.3f}" for w in self.weights_ho[:, k])
            lines.append(f"  H → A{k:02d}     {weights}  b={self.bias_o[k]:+.3f}")
        return "\n".join(lines)
