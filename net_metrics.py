"""
Network Metrics Reporter - Collects per-cycle statistics from a bird brain.
Gives visibility into what each layer is actually producing.
"""

import numpy as np
import logging
from datetime import datetime

from config import NN_METRICS_LOG_INTERVAL
from nn import RecurrentLayer

logger = logging.getLogger(__name__)


class NetworkMetrics:
    """Collects layer statistics from one Network each cycle."""

    def __init__(self, log_interval: int = NN_METRICS_LOG_INTERVAL):
        self.cycle_count = 0
        self.log_interval = log_interval

    def collect_metrics(self, network):
        """
        Collect metrics from every layer of the network.
        Returns a dict keyed by layer name plus cycle-level fields.
        """
        self.cycle_count += 1
        metrics = {
            'cycle': self.cycle_count,
            'timestamp': datetime.now().isoformat(),
            'ticks': network.ticks,
            'reward_factor': float(network.reward_factor),
            'output_finite': network.has_valid_output(),
        }

        for layer in network.layers:
            # Bias unit is constant, leave it out of the statistics
            live = layer.activations[:layer.bias_index]
            stats = {
                'activation_mean': float(np.mean(live)) if live.size else 0.0,
                'activation_max': float(np.max(live)) if live.size else 0.0,
                'activation_std': float(np.std(live)) if live.size else 0.0,
                'weight_abs_mean': float(np.mean(np.abs(layer.weights))) if layer.weights.size else 0.0,
            }
            if isinstance(layer, RecurrentLayer):
                stats['recurrent_weight_abs_mean'] = float(np.mean(np.abs(layer.recurrent_weights)))
            metrics[f'layer_{layer.index}'] = stats

        if self.log_interval and self.cycle_count % self.log_interval == 0:
            out = metrics[f'layer_{network.layer_count - 1}']
            logger.info(f"Brain cycle {self.cycle_count}: ticks={network.ticks}, "
                        f"reward={metrics['reward_factor']:+.3f}, "
                        f"output_mean={out['activation_mean']:.4f}, "
                        f"finite={metrics['output_finite']}")
        return metrics

    def format_metrics_output(self, metrics):
        """Format metrics dict into readable console output."""
        lines = []
        lines.append(f"\n{'='*80}")
        lines.append(f"CYCLE {metrics['cycle']} | {metrics.get('timestamp', 'N/A')}")
        lines.append(f"{'='*80}")

        for name, data in metrics.items():
            if isinstance(data, dict):
                lines.append(f"\n[{name.upper()}]")
                for key, value in data.items():
                    if isinstance(value, float):
                        lines.append(f"  {key:.<30} {value:.4f}")
                    else:
                        lines.append(f"  {key:.<30} {value}")
            elif name not in ('cycle', 'timestamp'):
                lines.append(f"  {name:.<30} {data}")

        lines.append(f"{'='*80}\n")
        return '\n'.join(lines)
