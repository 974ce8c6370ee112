# macrolab/indicators.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from .composite import EngineModel, ScoreEntry, score_composite
from .errors import unavailable
from .stats import SUMMARY_MIN_SAMPLES, clamp, correlation, sample_stdev, zscore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Indicator:
    id: str
    label: str
    unit: str = ""
    higher_is_good: bool = True
    decimals: int = 1
    engine: Optional[str] = None
    bucket: Optional[str] = None
    source_code: Optional[str] = None

    def format(self, value) -> str:
        if value is None or not np.isfinite(value):
            return "n/a"
        num = f"{value:.{self.decimals}f}"
        return f"{num}%" if self.unit.startswith("%") else num


# World Bank WDI codes are metadata only; fetching lives outside this package.
DEFAULT_INDICATORS = (
    Indicator("gdp_growth", "GDP growth (annual %)", "%", True, 1, "growth", "Coincident", "NY.GDP.MKTP.KD.ZG"),
    Indicator("inflation", "Inflation, CPI (annual %)", "%", False, 1, "inflation", "Coincident", "FP.CPI.TOTL.ZG"),
    Indicator("unemployment", "Unemployment rate (% labour force)", "%", False, 1, "growth", "Lagging", "SL.UEM.TOTL.ZS"),
    Indicator("money", "Broad money (M2) growth (annual %)", "%", True, 1, "liquidity", "Leading", "FM.LBL.BMNY.ZG"),
    Indicator("current_account", "Current account balance (% of GDP)", "% of GDP", True, 1, "external", "Coincident", "BN.CAB.XOKA.GD.ZS"),
)


@dataclass
class IndicatorStats:
    indicator_id: str
    latest_key: Any
    latest: float
    prev_key: Any
    prev: Optional[float]
    mean: float
    stdev: float
    z: float
    delta: float
    analogues: List[Any] = field(default_factory=list)
    window: int = 0
    sufficient: bool = True

    def to_score_entry(self) -> ScoreEntry:
        return ScoreEntry(z=self.z, raw=self.latest, timestamp=self.latest_key)


def _trailing_window(s: pd.Series, lookback: int) -> pd.Series:
    idx = s.index
    if isinstance(idx, pd.DatetimeIndex):
        cutoff = idx[-1].year - lookback + 1
        return s[idx.year >= cutoff]
    if pd.api.types.is_integer_dtype(idx):
        # integer keys are years
        return s[idx >= idx[-1] - lookback + 1]
    return s.iloc[-lookback:]


def compute_indicator_stats(series: pd.Series, lookback: int = 10, indicator_id: str = None,
                            min_samples: int = SUMMARY_MIN_SAMPLES) -> Optional[IndicatorStats]:
    """
    Stats for the latest observation against a trailing lookback window:
    sample mean / stdev, z, change vs the previous print, and the three
    window periods whose z sits closest to today's (historical analogues).
    """
    s = pd.Series(series, dtype=float)
    s = s[np.isfinite(s)].sort_index()
    if s.empty:
        return None
    indicator_id = indicator_id or (str(series.name) if getattr(series, "name", None) is not None else "")

    latest_key, latest = s.index[-1], float(s.iloc[-1])
    prev_key, prev = (s.index[-2], float(s.iloc[-2])) if len(s) >= 2 else (None, None)

    window = _trailing_window(s, lookback)
    mean = float(window.mean())
    stdev = sample_stdev(window)
    sufficient = len(window) >= min_samples
    if not sufficient:
        logger.debug("%s: window of %d < %d observations, z set neutral", indicator_id, len(window), min_samples)
    z = zscore(latest, mean, stdev) if sufficient else 0.0

    z_hist = window.map(lambda v: zscore(v, mean, stdev)).drop(latest_key)
    analogues = list((z_hist - z).abs().sort_values(kind="stable").index[:3])

    return IndicatorStats(
        indicator_id=indicator_id,
        latest_key=latest_key,
        latest=latest,
        prev_key=prev_key,
        prev=prev,
        mean=mean,
        stdev=stdev,
        z=z,
        delta=latest - prev if prev is not None else 0.0,
        analogues=analogues,
        window=len(window),
        sufficient=sufficient,
    )


def score_vector(stats_by_id: Mapping[str, Optional[IndicatorStats]]) -> Dict[str, ScoreEntry]:
    return {k: st.to_score_entry() for k, st in stats_by_id.items() if st is not None}


def coverage_confidence(stats_by_id: Mapping[str, Optional[IndicatorStats]], n_indicators: int,
                        full_window: int = 10) -> int:
    # Share of indicators with data, blended with average history depth.
    avail = [st for st in stats_by_id.values() if st is not None]
    if n_indicators <= 0:
        return 0
    avg_window = float(np.mean([st.window for st in avail])) if avail else 0.0
    conf = 0.4 * (len(avail) / n_indicators) + 0.6 * min(avg_window / full_window, 1.0)
    return int(np.floor(conf * 100 + 0.5))


LEADING_COMPOSITE = EngineModel.from_table("leading", {
    "money": 0.45,
    "current_account": 0.30,
    "unemployment": -0.35,
    "inflation": -0.20,
})


def leading_composite(scores: Mapping[str, Any], model: EngineModel = LEADING_COMPOSITE) -> float:
    return clamp(score_composite(model, scores).z, -2.5, 2.5)


def nowcast_growth(gdp: Optional[IndicatorStats], scores: Mapping[str, Any],
                   beta_scale: float = 0.55, composite_scale: float = 1.4) -> Optional[dict]:
    """Nowcast = mean growth + beta * composite, beta proportional to growth stdev."""
    if gdp is None:
        return None
    comp = leading_composite(scores)
    sd = gdp.stdev or 1.0
    beta = beta_scale * sd
    return {
        "nowcast": gdp.mean + beta * (comp / composite_scale),
        "composite": comp,
        "mu": gdp.mean,
        "sd": gdp.stdev,
    }


HISTORY_MIN_YEARS = 8
CORRELATION_PAIRS = (
    ("inflation", "Inflation"),
    ("money", "Money"),
    ("current_account", "Current account"),
)


def _finite(s) -> pd.Series:
    if s is None:
        return pd.Series(dtype=float)
    s = pd.Series(s, dtype=float)
    return s[np.isfinite(s)].sort_index()


def macro_correlations(series_by_id: Mapping[str, pd.Series], min_years: int = HISTORY_MIN_YEARS) -> dict:
    """
    Pearson correlation of GDP growth against inflation, money and the current
    account over the years every available series shares.
    """
    gdp = _finite(series_by_id.get("gdp_growth"))
    if len(gdp) < min_years:
        return unavailable("Not enough macro history for correlation.")

    others = {k: _finite(series_by_id.get(k)) for k, _ in CORRELATION_PAIRS}
    others = {k: s for k, s in others.items() if not s.empty}
    keys = gdp.index
    for s in others.values():
        keys = keys.intersection(s.index)

    pairs = []
    for k, label in CORRELATION_PAIRS:
        if k not in others:
            continue
        r = correlation(gdp.loc[keys].to_numpy(), others[k].loc[keys].to_numpy())
        if r is not None:
            pairs.append({"a": "GDP", "b": label, "r": r})
    return {"ok": True, "years": len(keys), "pairs": pairs}


def leading_composite_history(series_by_id: Mapping[str, pd.Series], model: EngineModel = LEADING_COMPOSITE,
                              min_points: int = HISTORY_MIN_YEARS) -> Optional[pd.Series]:
    """
    Leading composite per period: each component is z-scored over its own full
    history, then combined with the leading weights. Periods where every
    component is missing are dropped; None when fewer than ``min_points`` remain.
    """
    cols = {k: _finite(series_by_id.get(k)) for k in model.indicator_ids}
    cols = {k: s for k, s in cols.items() if not s.empty}
    if not cols:
        return None
    panel = pd.concat(cols, axis=1).sort_index()
    if len(panel) < min_points:
        return None

    z = pd.DataFrame(index=panel.index)
    for k in panel.columns:
        v = panel[k]
        sd = sample_stdev(v) or 1.0
        z[k] = (v - v.mean()) / sd

    z = z.dropna(how="all")
    comp = pd.Series([leading_composite(row.dropna().to_dict(), model) for _, row in z.iterrows()],
                     index=z.index, name="leading_composite", dtype=float)
    if len(comp) < min_points:
        return None
    return comp
