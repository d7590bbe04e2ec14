"""
Adaptive Influences - per-factor multipliers learned from outcomes.

The factor that drove a recommendation is rewarded when the recommended group
hits and penalized when it misses; confident recommendations move it further.
All influences periodically decay by the forget factor. Every value is kept
inside [min_influence, max_influence].
"""

import sys
sys.path.insert(0, '.')
from config import INFLUENCE_FACTORS, INFLUENCE_FORGET_INTERVAL


class AdaptiveInfluences:
    """Mutable factor → multiplier map owned by one simulation run."""

    def __init__(self, rates, factors=INFLUENCE_FACTORS, forget_interval=INFLUENCE_FORGET_INTERVAL):
        self.rates = rates
        self.min_influence = min(rates.min_influence, rates.max_influence)
        self.max_influence = max(rates.min_influence, rates.max_influence)
        self.forget_interval = max(1, int(forget_interval))
        self.resolved_count = 0
        self.values = {name: self._clamp(1.0) for name in factors}

    def _clamp(self, value):
        return max(self.min_influence, min(self.max_influence, value))

    def get(self, factor):
        return self.values.get(factor, 1.0)

    def as_dict(self):
        return dict(self.values)

    def apply_outcome(self, primary_factor, score, was_hit):
        """Reward or penalize the factor behind a positive-score recommendation."""
        if not primary_factor or score <= 0:
            return
        rates = self.rates
        delta = max(0.0, score - rates.confidence_weight_min_threshold) * rates.confidence_weight_multiplier
        current = self.values.get(primary_factor, self._clamp(1.0))
        if was_hit:
            updated = min(self.max_influence, current + rates.success_step + delta)
        else:
            updated = max(self.min_influence, current - rates.failure_step - delta)
        self.values[primary_factor] = self._clamp(updated)

    def apply_forgetting(self):
        """Decay every influence by the forget factor (floored at min)."""
        for name, value in self.values.items():
            self.values[name] = self._clamp(max(self.min_influence, value * self.rates.forget_factor))

    def tick(self):
        """Count one resolved spin; forget on every forget_interval-th spin."""
        self.resolved_count += 1
        if self.resolved_count % self.forget_interval == 0:
            self.apply_forgetting()
