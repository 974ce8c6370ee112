# macrolab/weather.py
"""
Weather features -> anomaly z-scores -> commodity beta map -> directional impact.

  z_i       = (lead-weighted mean_i - mu_i) / sigma_i   vs an archive baseline
  ImpactZ   = sum_i beta_i * z_i
  Score     = 10..90 display score, plus the bounded 50 + 15*tanh(ImpactZ / 1.25)

Commodities without a calibrated beta map fall back to a generic stress composite.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .aggregate import DEFAULT_TAU, lead_weighted_mean
from .composite import EngineModel, resolve_engine_model, score_composite
from .stats import (BASELINE_MIN_SAMPLES, EPS, BaselineStats, baseline_stats, clean_values, normalize,
                    quantile, zscore)

logger = logging.getLogger(__name__)

ENSEMBLE_KEY_VARS = ("temperature_2m", "precipitation", "vapour_pressure_deficit", "et0_fao_evapotranspiration")


@dataclass
class WeatherFeature:
    name: str
    lw_mean: float
    p05: float
    p50: float
    p95: float
    z: float


def baseline_from_archive(archive: Mapping[str, Sequence], min_samples: int = BASELINE_MIN_SAMPLES) -> Dict[str, BaselineStats]:
    base = {}
    for var, values in archive.items():
        if var == "time":
            continue
        b = baseline_stats(values, min_samples)
        if not b.valid:
            logger.debug("baseline for %s skipped: %d samples", var, b.n)
            continue
        base[var] = b
    return base


def _is_path(x) -> bool:
    return x is not None and hasattr(x, "__len__") and not isinstance(x, (str, bytes, Mapping))


def build_feature_matrix(hourly: Mapping[str, Sequence], baselines: Mapping[str, BaselineStats],
                         tau: float = DEFAULT_TAU) -> List[WeatherFeature]:
    """One feature per variable: lead-weighted mean, tail quantiles, and z vs baseline."""
    time = hourly.get("time")
    n = len(time) if time is not None else None
    features = []
    for var, series in hourly.items():
        if var == "time":
            continue
        if not _is_path(series):
            logger.debug("variable %s is not an array; skipped", var)
            continue
        if n is not None and len(series) != n:
            logger.warning("variable %s has %d points, time axis has %d; skipped", var, len(series), n)
            continue
        lw = lead_weighted_mean(series, tau)
        clean = clean_values(series)
        z = normalize(lw, baselines.get(var)) if math.isfinite(lw) else 0.0
        features.append(WeatherFeature(
            name=var,
            lw_mean=lw,
            p05=quantile(clean, 0.05),
            p50=quantile(clean, 0.50),
            p95=quantile(clean, 0.95),
            z=z,
        ))
    return features


def _finite_mean(values) -> float:
    v = clean_values(values)
    return float(v.mean()) if v.size else float("nan")


def combine_hubs(hub_features: Sequence[Sequence[WeatherFeature]]) -> List[WeatherFeature]:
    # Average z (not raw units) across production hubs.
    by_name: Dict[str, List[WeatherFeature]] = {}
    for feats in hub_features:
        for f in feats:
            by_name.setdefault(f.name, []).append(f)
    out = []
    for name, arr in by_name.items():
        out.append(WeatherFeature(
            name=name,
            lw_mean=_finite_mean([f.lw_mean for f in arr]),
            p05=_finite_mean([f.p05 for f in arr]),
            p50=_finite_mean([f.p50 for f in arr]),
            p95=_finite_mean([f.p95 for f in arr]),
            z=float(np.mean([f.z for f in arr])),
        ))
    return out


def price_score(impact_z: float) -> float:
    return 50.0 + 15.0 * math.tanh(impact_z / 1.25)


def commodity_models(betas: Mapping[str, Mapping[str, float]]) -> Dict[str, EngineModel]:
    return {k: EngineModel.from_table(k, v) for k, v in betas.items()}


def weather_impact(features: Sequence[WeatherFeature], commodity: str,
                   betas: Mapping[str, Mapping[str, float]], default_beta: Mapping[str, float]) -> dict:
    model = resolve_engine_model(commodity, commodity_models(betas),
                                 EngineModel.from_table("stress_composite", default_beta))
    scores = {f.name: f.z for f in features}
    comp = score_composite(model, scores)
    return {
        "commodity": commodity,
        "impact_z": comp.z,
        "display_score": comp.display_score,
        "price_score": price_score(comp.z),
        "contributions": comp.contributions,
        "fallback": comp.fallback,
        "composite": comp,
    }


def _member_series(x) -> list:
    # Accept a single path or a [member][time] array.
    if x is None or len(x) == 0:
        return []
    first = x[0]
    if isinstance(first, (list, tuple, np.ndarray)):
        return list(x)
    return [x]


def ensemble_impacts(ensemble: Mapping[str, Sequence], betas: Mapping[str, float],
                     tau: float = DEFAULT_TAU, key_vars: Sequence[str] = ENSEMBLE_KEY_VARS) -> List[float]:
    """
    Per-member impact from the key variables. Each member's lead-weighted mean
    is normalised against that member's own path (no archive baseline).
    """
    members = {v: _member_series(ensemble.get(v)) for v in key_vars}
    m_count = max((len(m) for m in members.values()), default=0)
    impacts = []
    for m in range(m_count):
        impact = 0.0
        for var in key_vars:
            beta = betas.get(var)
            paths = members[var]
            if beta is None or m >= len(paths):
                continue
            clean = clean_values(paths[m])
            if clean.size == 0:
                continue
            lw = lead_weighted_mean(paths[m], tau)
            sigma = float(np.std(clean))
            impact += beta * zscore(lw, float(clean.mean()), sigma)
        impacts.append(impact)
    return impacts


def ensemble_summary(impacts: Sequence[float], impact_z: float) -> Optional[dict]:
    v = clean_values(impacts)
    if v.size == 0:
        return None
    dispersion = float(np.std(v))
    return {
        "p10": quantile(v, 0.10),
        "p50": quantile(v, 0.50),
        "p90": quantile(v, 0.90),
        "dispersion": dispersion,
        "iqr": quantile(v, 0.75) - quantile(v, 0.25),
        "confidence": abs(impact_z) / dispersion if dispersion > EPS else 1.0,
    }
