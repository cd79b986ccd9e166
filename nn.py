# nn.py

import numpy as np
from config import FLOATX, NN_BIAS_VALUE, NetConfig
from typing import Any, Dict, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

# ==============================================================================
# SECTION 1: ERRORS
# ==============================================================================

class NetworkError(Exception):
    """Base class for every error raised by the brain."""

class ConstructionError(NetworkError, ValueError):
    """Malformed layer sizes handed to the Network constructor."""

class ShapeMismatchError(NetworkError, ValueError):
    """A vector or matrix whose shape does not match the layer it is meant for."""

class NotReadyError(NetworkError, RuntimeError):
    """Output was requested before the first forward pass completed."""


# ==============================================================================
# SECTION 2: THE NEURAL FOUNDATION
# Dense tanh layers with one-step backpropagation. Every layer reserves its
# last neuron as a bias unit fixed at 1: it feeds the next layer but is never
# written by the forward pass or by training.
# ==============================================================================

def tanh_derivative(tanh_value):
    """
    Slope of tanh expressed through its own output: 1 - tanh(x)^2.
    Clamped to [-1, 1] against floating point overshoot. Accepts scalars or arrays.
    """
    return np.clip(1.0 - tanh_value * tanh_value, -1.0, 1.0)


class Layer:
    """
    A plain fully connected layer.

    weights[i, j] connects neuron j of the preceding layer to neuron i of this
    one. A layer built with num_inputs == 0 is the input layer: it has no
    incoming weights and its activations are written directly by the owner.
    """
    def __init__(self, num_inputs: int, num_neurons: int,
                 config: Optional[NetConfig] = None,
                 rng: Optional[np.random.Generator] = None,
                 index: int = 0):
        self.config = config if config is not None else NetConfig()
        self.rng = rng if rng is not None else self.config.make_rng()
        self.index = index
        self.num_inputs = num_inputs
        self.num_neurons = num_neurons
        self.bias_index = num_neurons - 1
        self.ticks = 0

        self.activations = np.zeros(num_neurons, dtype=FLOATX)
        self.activations[self.bias_index] = NN_BIAS_VALUE
        self.preceding_activations = np.zeros(num_inputs, dtype=FLOATX)

        self.weights = np.zeros((num_neurons, num_inputs), dtype=FLOATX)
        self.weight_deltas = np.zeros_like(self.weights)
        self.error_signal = np.zeros(num_neurons, dtype=FLOATX)
        self.error_gradient = np.zeros(num_neurons, dtype=FLOATX)

        if num_inputs:
            self.initialize_weights()
        logger.debug(f"{self!r} initialized")

    @property
    def is_input(self) -> bool:
        return self.num_inputs == 0

    def initialize_weights(self):
        """Uniform draws from [-weight_init_range, weight_init_range)."""
        r = self.config.weight_init_range
        self.weights[...] = self.rng.uniform(-r, r, self.weights.shape)

    # --- forward -------------------------------------------------------------

    def _net_input(self) -> np.ndarray:
        """Weighted sums for every non-bias neuron."""
        return self.weights[:self.bias_index] @ self.preceding_activations

    def forward(self, preceding_activations: np.ndarray) -> np.ndarray:
        """
        Feed this layer from the preceding layer's activations.
        Keeps its own copy of the input for backprop and returns the
        activation vector, updated in place.
        """
        preceding = np.asarray(preceding_activations, dtype=FLOATX)
        if preceding.shape != (self.num_inputs,):
            raise ShapeMismatchError(
                f"Layer {self.index} expects {self.num_inputs} inputs, got shape {preceding.shape}")
        self.preceding_activations = preceding.copy()
        self.activations[:self.bias_index] = np.tanh(self._net_input())
        self.ticks += 1
        return self.activations

    def __call__(self, preceding_activations: np.ndarray) -> np.ndarray:
        return self.forward(preceding_activations)

    # --- backward ------------------------------------------------------------

    tanh_derivative = staticmethod(tanh_derivative)

    def _stage_deltas(self):
        self.weight_deltas[...] = np.outer(self.error_gradient, self.preceding_activations)

    def backprop_output(self, expected: Sequence[float]):
        """
        Output layer only. Error is actual minus expected, so update_weights
        must subtract the deltas to move toward expected.
        """
        expected = np.asarray(expected, dtype=FLOATX)
        if expected.shape != (self.num_neurons,):
            raise ShapeMismatchError(
                f"Expected vector of length {self.num_neurons}, got shape {expected.shape}")
        self.error_signal[...] = self.activations - expected
        self.error_gradient[...] = self.error_signal * self.tanh_derivative(self.activations)
        self._stage_deltas()

    def backprop_hidden(self, next_gradient: np.ndarray, next_weights: np.ndarray):
        """
        Chain rule through the layer one step closer to the output.
        next_weights has shape (next_layer.num_neurons, self.num_neurons).
        """
        if next_weights.shape != (next_gradient.shape[0], self.num_neurons):
            raise ShapeMismatchError(
                f"Layer {self.index}: next weights {next_weights.shape} do not match "
                f"gradient {next_gradient.shape} and {self.num_neurons} neurons")
        self.error_signal[...] = next_gradient @ next_weights
        self.error_gradient[...] = self.error_signal * self.tanh_derivative(self.activations)
        self._stage_deltas()

    def update_weights(self, reward_factor: float, learning_rate: float):
        """Gradient descent on the staged deltas, scaled by the reward factor."""
        scale = learning_rate * reward_factor
        if not scale:
            return
        self.weights -= self.weight_deltas * FLOATX(scale)

    # --- state ---------------------------------------------------------------

    def get_state(self) -> Dict[str, Any]:
        """Returns copies of the trainable matrices."""
        return {'weights': self.weights.copy()}

    def check_state(self, state: Dict[str, Any]) -> Dict[str, np.ndarray]:
        """Shape-checks a snapshot without applying it."""
        return {'weights': self._checked(state['weights'], self.weights.shape, 'weights')}

    def set_state(self, state: Dict[str, Any]):
        """Restores matrices captured by get_state."""
        for name, values in self.check_state(state).items():
            getattr(self, name)[...] = values

    def _checked(self, values, shape, name) -> np.ndarray:
        arr = np.asarray(values, dtype=FLOATX)
        if arr.shape != shape:
            raise ShapeMismatchError(
                f"Layer {self.index} {name}: expected shape {shape}, got {arr.shape}")
        return arr

    def __repr__(self):
        return f"{type(self).__name__}(index={self.index}, inputs={self.num_inputs}, neurons={self.num_neurons})"


class RecurrentLayer(Layer):
    """
    Elman-style layer: its previous tick's activations feed back into this
    tick's weighted sums through recurrent_weights. One tick of latency.
    """
    def __init__(self, num_inputs: int, num_neurons: int,
                 config: Optional[NetConfig] = None,
                 rng: Optional[np.random.Generator] = None,
                 index: int = 0):
        self.recurrent_weights = np.zeros((num_neurons, num_neurons), dtype=FLOATX)
        self.recurrent_weight_deltas = np.zeros_like(self.recurrent_weights)
        # Last tick's output; all zero until a tick has happened.
        self.recurrent_activations_prev = np.zeros(num_neurons, dtype=FLOATX)
        super().__init__(num_inputs, num_neurons, config=config, rng=rng, index=index)

    def initialize_weights(self):
        super().initialize_weights()
        # Recurrent weights are non-negative only. Kept as found in the bird brain.
        r = self.config.recurrent_weight_init_range
        self.recurrent_weights[...] = self.rng.uniform(0.0, r, self.recurrent_weights.shape)

    def _net_input(self) -> np.ndarray:
        recurrent = self.recurrent_weights[:self.bias_index] @ self.recurrent_activations_prev
        return super()._net_input() + recurrent

    def forward(self, preceding_activations: np.ndarray) -> np.ndarray:
        if self.ticks:
            np.copyto(self.recurrent_activations_prev, self.activations)
        return super().forward(preceding_activations)

    def reset_memory(self):
        """Forget the previous tick, as if no forward pass had run."""
        self.recurrent_activations_prev.fill(0.0)
        self.activations[:self.bias_index] = 0.0
        self.ticks = 0

    def _stage_deltas(self):
        super()._stage_deltas()
        self.recurrent_weight_deltas[...] = np.outer(self.error_gradient, self.recurrent_activations_prev)

    def update_weights(self, reward_factor: float, learning_rate: float):
        scale = learning_rate * reward_factor
        if not scale:
            return
        super().update_weights(reward_factor, learning_rate)
        self.recurrent_weights -= self.recurrent_weight_deltas * FLOATX(scale)

    def get_state(self) -> Dict[str, Any]:
        state = super().get_state()
        state['recurrent_weights'] = self.recurrent_weights.copy()
        return state

    def check_state(self, state: Dict[str, Any]) -> Dict[str, np.ndarray]:
        checked = super().check_state(state)
        checked['recurrent_weights'] = self._checked(
            state['recurrent_weights'], self.recurrent_weights.shape, 'recurrent_weights')
        return checked
