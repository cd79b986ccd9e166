# brain.py
# The recurrent network that drives one agent. Construct one per agent and
# call it from that agent's update loop only.

import logging
from collections import namedtuple
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from config import FLOATX, NetConfig
from nn import (ConstructionError, Layer, NotReadyError, RecurrentLayer,
                ShapeMismatchError)
from senses import INTENT_ACTIONS

logger = logging.getLogger(__name__)

# Address of one weight: layer index, destination neuron in that layer,
# source neuron in the preceding layer (or in the same layer when recurrent).
WeightCoord = namedtuple('WeightCoord', ['layer', 'dest', 'src', 'recurrent'])


class Network:
    """
    Input layer, one recurrent hidden layer, plain hidden layers, plain output layer.

    Per tick the owner writes inputs with perceive(), runs think(), and reads
    get_output() or intent(). Training is back_propagate() with the output the
    agent should have produced and a reward factor scaling the whole step.
    """

    def __init__(self, layer_sizes: Sequence[int], config: Optional[NetConfig] = None):
        sizes = self._validate_sizes(layer_sizes)
        self.layer_sizes: Tuple[int, ...] = tuple(sizes)
        self.config = config if config is not None else NetConfig()
        self.reward_factor = 0.0
        self.ticks = 0
        self._last_output: Optional[np.ndarray] = None

        rng = self.config.make_rng()
        last = len(sizes) - 1
        self.layers: List[Layer] = [Layer(0, sizes[0], config=self.config, rng=rng, index=0)]
        for i in range(1, len(sizes)):
            layer_cls = RecurrentLayer if i == 1 and i != last else Layer
            self.layers.append(layer_cls(sizes[i - 1], sizes[i], config=self.config, rng=rng, index=i))

        logger.info(f"Network built: sizes={list(self.layer_sizes)}, "
                    f"layers={[type(layer).__name__ for layer in self.layers]}")

    @staticmethod
    def _validate_sizes(layer_sizes: Sequence[int]) -> List[int]:
        sizes = list(layer_sizes)
        if len(sizes) < 2:
            raise ConstructionError(f"A network needs at least 2 layers, got {len(sizes)}")
        for i, size in enumerate(sizes):
            if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
                raise ConstructionError(f"Layer {i} size must be an integer, got {size!r}")
            if size < 1:
                raise ConstructionError(f"Layer {i} size must be >= 1, got {size}")
        return [int(s) for s in sizes]

    # ──────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def is_ready(self) -> bool:
        """True once at least one forward pass has completed."""
        return self.ticks > 0

    @property
    def input_layer(self) -> Layer:
        return self.layers[0]

    @property
    def output_layer(self) -> Layer:
        return self.layers[-1]

    @property
    def recurrent_layer(self) -> Optional[RecurrentLayer]:
        for layer in self.layers:
            if isinstance(layer, RecurrentLayer):
                return layer
        return None

    # ──────────────────────────────────────────────────────────────────────────
    # Input
    # ──────────────────────────────────────────────────────────────────────────

    def perceive(self, index: int, value: float):
        """Write one input slot. Slots keep their value until written again."""
        layer = self.input_layer
        if not 0 <= index < layer.bias_index:
            raise IndexError(f"Input slot {index} out of range [0, {layer.bias_index})")
        layer.activations[index] = value

    def perceive_span(self, start: int, values: Sequence[float]):
        """Write consecutive input slots beginning at start."""
        values = np.asarray(values, dtype=FLOATX).reshape(-1)
        layer = self.input_layer
        end = start + values.shape[0]
        if start < 0 or end > layer.bias_index:
            raise IndexError(f"Input slots [{start}, {end}) out of range [0, {layer.bias_index})")
        layer.activations[start:end] = values

    # ──────────────────────────────────────────────────────────────────────────
    # Forward
    # ──────────────────────────────────────────────────────────────────────────

    def think(self) -> np.ndarray:
        """One tick of inference. Returns a copy of the output activations."""
        signal = self.input_layer.activations
        for layer in self.layers[1:]:
            signal = layer.forward(signal)
        self._last_output = signal.copy()
        self.ticks += 1

        if not np.all(np.isfinite(self._last_output)):
            logger.warning(f"Non-finite output on tick {self.ticks}: {self._last_output}")
        return self._last_output.copy()

    def get_output(self) -> np.ndarray:
        """Copy of the most recent output. Raises NotReadyError before the first think()."""
        if not self.is_ready:
            logger.error("Output read before the network finished its first forward pass")
            raise NotReadyError("Network has not completed a forward pass yet")
        return self._last_output.copy()

    def has_valid_output(self) -> bool:
        """Ready and every output value finite."""
        return self.is_ready and bool(np.all(np.isfinite(self._last_output)))

    def control(self, values: Sequence[float]) -> np.ndarray:
        """
        Drive the outputs from outside, e.g. from a player's inputs. Peers
        learning from this agent then read these values via get_output().
        The bias slot is left untouched.
        """
        layer = self.output_layer
        values = np.asarray(values, dtype=FLOATX).reshape(-1)
        if values.shape[0] != layer.bias_index:
            raise ShapeMismatchError(
                f"control() expects {layer.bias_index} values, got {values.shape[0]}")
        layer.activations[:layer.bias_index] = values
        self._last_output = layer.activations.copy()
        return self._last_output.copy()

    def intent(self, actions=INTENT_ACTIONS) -> Optional[Dict[str, float]]:
        """
        Map output slots to named actions for the body to apply.
        None means no valid output this tick and the body should not act.
        """
        if not self.is_ready:
            return None
        if not self.has_valid_output():
            logger.warning(f"Skipping intent on tick {self.ticks}: output is not finite")
            return None
        usable = self.output_layer.bias_index
        return {a.name: float(self._last_output[int(a)]) for a in actions if int(a) < usable}

    def reset_memory(self):
        """Return the recurrent layer to its first-tick state."""
        layer = self.recurrent_layer
        if layer is not None:
            layer.reset_memory()

    # ──────────────────────────────────────────────────────────────────────────
    # Training
    # ──────────────────────────────────────────────────────────────────────────

    def back_propagate(self, expected: Sequence[float], reward_factor: float):
        """
        One training step toward expected, scaled by reward_factor.
        A negative factor trains away from expected; zero leaves weights alone.
        """
        if not self.is_ready:
            raise NotReadyError("back_propagate() needs a completed forward pass")
        expected = np.asarray(expected, dtype=FLOATX)
        output = self.output_layer
        if expected.shape != (output.num_neurons,):
            raise ShapeMismatchError(
                f"Expected vector of length {output.num_neurons}, got shape {expected.shape}")

        self.reward_factor = float(reward_factor)

        # Every gradient is staged before any weight moves.
        for i in range(len(self.layers) - 1, -1, -1):
            if i == len(self.layers) - 1:
                self.layers[i].backprop_output(expected)
            else:
                ahead = self.layers[i + 1]
                self.layers[i].backprop_hidden(ahead.error_gradient, ahead.weights)

        for layer in self.layers:
            layer.update_weights(self.reward_factor, self.config.learning_rate)

        logger.debug(f"Backprop tick={self.ticks} reward={self.reward_factor:+.3f} "
                     f"error={float(np.abs(output.error_signal[:output.bias_index]).sum()):.4f}")

    # ──────────────────────────────────────────────────────────────────────────
    # Introspection
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def layer_count(self) -> int:
        return len(self.layers)

    def get_layer(self, index: int) -> Layer:
        return self.layers[index]

    def num_nodes_at_layer(self, index: int) -> int:
        return self.layers[index].num_neurons

    def value_at_neuron(self, layer_index: int, neuron_index: int) -> float:
        return float(self.layers[layer_index].activations[neuron_index])

    def value_at_weight(self, layer_index: int, dest: int, src: int, recurrent: bool = False) -> float:
        return float(self._matrix(layer_index, recurrent)[dest, src])

    def _matrix(self, layer_index: int, recurrent: bool) -> np.ndarray:
        layer = self.layers[layer_index]
        if not recurrent:
            return layer.weights
        if not isinstance(layer, RecurrentLayer):
            raise IndexError(f"Layer {layer_index} has no recurrent weights")
        return layer.recurrent_weights

    def iter_weights(self) -> Iterator[Tuple[WeightCoord, float]]:
        """Every weight in the network with its coordinate, input to output."""
        for layer in self.layers:
            matrices = [(False, layer.weights)]
            if isinstance(layer, RecurrentLayer):
                matrices.append((True, layer.recurrent_weights))
            for recurrent, matrix in matrices:
                for (dest, src), value in np.ndenumerate(matrix):
                    yield WeightCoord(layer.index, dest, src, recurrent), float(value)

    def set_weight(self, coord: WeightCoord, value: float):
        self._matrix(coord.layer, coord.recurrent)[coord.dest, coord.src] = value

    @property
    def weight_count(self) -> int:
        total = 0
        for layer in self.layers:
            total += layer.weights.size
            if isinstance(layer, RecurrentLayer):
                total += layer.recurrent_weights.size
        return total

    def get_state(self) -> Dict[str, Any]:
        """Snapshot of every weight matrix, copied."""
        return {
            'layer_sizes': list(self.layer_sizes),
            'layers': [layer.get_state() for layer in self.layers],
        }

    def set_state(self, state: Dict[str, Any]):
        """Restore a get_state() snapshot. Nothing is written if any part mismatches."""
        if list(state['layer_sizes']) != list(self.layer_sizes):
            raise ShapeMismatchError(
                f"Snapshot sizes {list(state['layer_sizes'])} do not match {list(self.layer_sizes)}")
        checked = [layer.check_state(s) for layer, s in zip(self.layers, state['layers'])]
        if len(checked) != len(self.layers):
            raise ShapeMismatchError(f"Snapshot has {len(checked)} layers, network has {len(self.layers)}")
        for layer, s in zip(self.layers, checked):
            layer.set_state(s)

    def __repr__(self):
        return f"Network(sizes={list(self.layer_sizes)}, ticks={self.ticks})"
