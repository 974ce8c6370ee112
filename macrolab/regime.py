# macrolab/regime.py
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

from .composite import ENGINE_ORDER, engine_vector
from .errors import ConfigurationError
from .stats import clamp01

logger = logging.getLogger(__name__)

FRAGILITY_WEIGHT = 0.35
CONFIDENCE_SLOPE = 1.8
CONFIDENCE_FLOOR = 0.15


@dataclass(frozen=True)
class Regime:
    id: str
    label: str
    centroid: Tuple[float, ...]

    def __post_init__(self):
        object.__setattr__(self, "centroid", tuple(float(c) for c in self.centroid))


@dataclass(frozen=True)
class RegimeProbability:
    regime: Regime
    p: float

    @property
    def id(self) -> str:
        return self.regime.id

    @property
    def label(self) -> str:
        return self.regime.label


@dataclass(frozen=True)
class RegimeResult:
    probabilities: Tuple[RegimeProbability, ...]
    confidence: float

    @property
    def top(self) -> RegimeProbability:
        return self.probabilities[0]

    def as_dict(self) -> dict:
        return {rp.id: rp.p for rp in self.probabilities}


# Centroids in (growth, inflation, liquidity, external) engine z-space.
# Inflation engine z < 0 means inflation pressure. Hand-tuned, not fitted.
DEFAULT_REGIMES = (
    Regime("goldilocks", "Goldilocks", (0.9, 0.6, 0.6, 0.2)),
    Regime("overheat", "Overheat", (0.6, -0.8, 0.5, 0.0)),
    Regime("slowdown", "Slowdown", (-0.9, 0.5, -0.6, -0.2)),
    Regime("stress", "External stress", (-0.4, 0.2, -0.4, -1.2)),
    Regime("stagfl", "Stagflation", (-0.8, -0.8, -0.2, -0.2)),
)


def regimes_from_config(rows) -> Tuple[Regime, ...]:
    out = []
    for row in rows:
        try:
            out.append(Regime(str(row["id"]), str(row.get("label", row["id"])), tuple(row["centroid"])))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"malformed regime row {row!r}: {e}") from e
    if not out:
        raise ConfigurationError("regime table is empty")
    return tuple(out)


def softmax(scores) -> np.ndarray:
    s = np.asarray(scores, dtype=float)
    e = np.exp(s - s.max())
    return e / e.sum()


def regime_probabilities(x: Sequence[float], regimes: Sequence[Regime] = DEFAULT_REGIMES,
                         fragility_weight: float = FRAGILITY_WEIGHT,
                         confidence_slope: float = CONFIDENCE_SLOPE,
                         confidence_floor: float = CONFIDENCE_FLOOR) -> RegimeResult:
    """
    Softmax over negative squared distance to each regime centroid, with a
    narrative-fragility penalty on growth/inflation disagreement (x[0] vs x[1]).
    """
    if not regimes:
        raise ConfigurationError("regime table is empty")
    x = np.asarray(x, dtype=float)
    dim = x.size
    for r in regimes:
        if len(r.centroid) != dim:
            raise ConfigurationError(
                f"regime {r.id} centroid has {len(r.centroid)} dims, feature vector has {dim}")
    x = np.where(np.isfinite(x), x, 0.0)

    frag = fragility_weight * abs(x[0] - x[1]) if dim >= 2 else 0.0
    scores = [-(float(np.sum((x - np.asarray(r.centroid)) ** 2)) + frag) for r in regimes]
    p = softmax(scores)

    ranked = sorted((RegimeProbability(r, float(pi)) for r, pi in zip(regimes, p)),
                    key=lambda rp: rp.p, reverse=True)
    runner_up = ranked[1].p if len(ranked) > 1 else 0.0
    conf = clamp01((ranked[0].p - runner_up) * confidence_slope + confidence_floor)
    return RegimeResult(tuple(ranked), conf)


def classify(engines: Mapping[str, Any], regimes: Sequence[Regime] = DEFAULT_REGIMES,
             order: Sequence[str] = ENGINE_ORDER, **kwargs) -> RegimeResult:
    # Engines missing from the mapping count as z = 0.
    return regime_probabilities(engine_vector(engines, order), regimes, **kwargs)


# ---------------------------------------------------------------------------
# Turning point scorecard (hand-calibrated heuristic, not a fitted model)
# ---------------------------------------------------------------------------
TURNING_FEATURES = {
    "growth_weakness": {"weight": 1.35, "scale": 2.0},
    "unemployment_rise": {"weight": 0.90, "scale": 2.0},
    "liquidity_weakness": {"weight": 1.10, "scale": 2.0},
    "external_weakness": {"weight": 0.75, "scale": 2.0},
    "divergence": {"weight": 0.65, "scale": 2.5},
    "gdp_slowdown": {"weight": 0.55, "scale": 4.0},
}
LOGISTIC_SLOPE = 2.1
LOGISTIC_SHIFT = 1.2


def _num(x, default: float = 0.0) -> float:
    try:
        v = float(x)
    except (TypeError, ValueError):
        return default
    return v if math.isfinite(v) else default


def turning_point_features(engines: Mapping[str, Any], unemployment_delta: Optional[float] = 0.0,
                           gdp_delta: Optional[float] = 0.0, table: Mapping = None) -> dict:
    """Raw drivers mapped to [0, 1]; missing inputs read as 0 (no stress)."""
    table = table or TURNING_FEATURES
    g, i, l, e = engine_vector(engines, ENGINE_ORDER)
    u_d = _num(unemployment_delta)
    g_d = _num(gdp_delta)
    raw = {
        "growth_weakness": max(0.0, -g),
        "unemployment_rise": max(0.0, u_d),
        "liquidity_weakness": max(0.0, -l),
        "external_weakness": max(0.0, -e),
        "divergence": abs(g - i),
        "gdp_slowdown": max(0.0, -g_d),
    }
    out = {}
    for name, value in raw.items():
        if name not in table:
            raise ConfigurationError(f"turning point feature {name} has no weight/scale")
        scale = float(table[name]["scale"])
        if scale <= 0:
            raise ConfigurationError(f"turning point scale for {name} must be positive")
        out[name] = clamp01(value / scale)
    return out


def turning_point_probability(features: Mapping[str, float], table: Mapping = None,
                              slope: float = LOGISTIC_SLOPE, shift: float = LOGISTIC_SHIFT) -> float:
    table = table or TURNING_FEATURES
    s = sum(float(table[k]["weight"]) * v for k, v in features.items())
    p = 1.0 / (1.0 + math.exp(-(s * slope - shift)))
    return clamp01(p)


def turning_point(engines: Mapping[str, Any], unemployment_delta: Optional[float] = 0.0,
                  gdp_delta: Optional[float] = 0.0, table: Mapping = None,
                  slope: float = LOGISTIC_SLOPE, shift: float = LOGISTIC_SHIFT) -> dict:
    feats = turning_point_features(engines, unemployment_delta, gdp_delta, table)
    return {"p": turning_point_probability(feats, table, slope, shift), "features": feats}
