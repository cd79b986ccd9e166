# config.py
# Tunables for the bird brain. Modules import these names directly.

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

import numpy as np

# Array dtype for activations, weights and every scratch buffer
FLOATX = np.float32

# ─── Neural Network ───────────────────────────────────────────────────────────
NN_WEIGHT_INIT_RANGE = 0.5            # ordinary weights drawn from [-r, r)
NN_RECURRENT_WEIGHT_INIT_RANGE = 0.5  # recurrent weights drawn from [0, r)
NN_LEARNING_RATE = 0.1                # global neuroplasticity
NN_BIAS_VALUE = 1.0                   # last neuron of every layer

# ─── Metrics ──────────────────────────────────────────────────────────────────
NN_METRICS_LOG_INTERVAL = 100         # log a summary every N collected cycles

# camelCase option names accepted alongside the field names
_OPTION_ALIASES = {
    'weightInitRange': 'weight_init_range',
    'recurrentWeightInitRange': 'recurrent_weight_init_range',
    'learningRate': 'learning_rate',
}


@dataclass
class NetConfig:
    """Per-network tunables, handed to Network at construction and shared by its layers."""
    weight_init_range: float = NN_WEIGHT_INIT_RANGE
    recurrent_weight_init_range: float = NN_RECURRENT_WEIGHT_INIT_RANGE
    learning_rate: float = NN_LEARNING_RATE
    seed: Optional[int] = None

    def __post_init__(self):
        if self.weight_init_range < 0:
            raise ValueError(f"weight_init_range must be >= 0, got {self.weight_init_range}")
        if self.recurrent_weight_init_range < 0:
            raise ValueError(f"recurrent_weight_init_range must be >= 0, got {self.recurrent_weight_init_range}")

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> 'NetConfig':
        """Build a config from recognized option names; unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown network option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    def make_rng(self) -> np.random.Generator:
        return np.random.default_rng(self.seed)
