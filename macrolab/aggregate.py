# macrolab/aggregate.py
import math
from typing import Iterable, Optional, Tuple

from .errors import ConfigurationError
from .stats import as_float_array

DEFAULT_TAU = 72.0


def _check_tau(tau: float) -> float:
    if tau is None or not tau > 0:
        raise ConfigurationError(f"lead decay constant must be positive, got {tau}")
    return float(tau)


def lead_weight(t: float, tau: float = DEFAULT_TAU) -> float:
    # w(t) = exp(-t / tau); t = 0 is the nearest observation.
    return math.exp(-t / _check_tau(tau))


class LeadWeightedAggregator:
    """
    Causal exponential weighting of (steps-from-now, value) pairs.
    Nearer observations always dominate; nulls are skipped.
    """

    def __init__(self, tau: float = DEFAULT_TAU):
        self.tau = _check_tau(tau)
        self._num = 0.0
        self._den = 0.0
        self.count = 0

    def add(self, t: int, value: Optional[float]) -> None:
        if t < 0:
            raise ConfigurationError(f"lead index must be >= 0, got {t}")
        if value is None or not math.isfinite(value):
            return
        w = math.exp(-t / self.tau)
        self._num += w * value
        self._den += w
        self.count += 1

    def extend(self, pairs: Iterable[Tuple[int, Optional[float]]]) -> "LeadWeightedAggregator":
        for t, v in pairs:
            self.add(t, v)
        return self

    @property
    def value(self) -> float:
        return self._num / self._den if self._den > 0 else float("nan")


def lead_weighted_mean(values, tau: float = DEFAULT_TAU) -> float:
    """Lead-weighted mean of an ordered series where position 0 is the current step."""
    arr = as_float_array(values)
    agg = LeadWeightedAggregator(tau)
    for i, v in enumerate(arr):
        agg.add(i, float(v))
    return agg.value


def aggregate_pairs(pairs: Iterable[Tuple[int, Optional[float]]], tau: float = DEFAULT_TAU) -> float:
    return LeadWeightedAggregator(tau).extend(pairs).value
