# macrolab/stats.py
import logging
import math
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

EPS = 1e-9
BASELINE_MIN_SAMPLES = 30
SUMMARY_MIN_SAMPLES = 5


def as_float_array(values) -> np.ndarray:
    # Position-preserving float view; None becomes NaN.
    if values is None:
        return np.array([], dtype=float)
    if isinstance(values, pd.Series):
        return values.to_numpy(dtype=float, na_value=np.nan)
    if isinstance(values, np.ndarray) and values.dtype != object:
        return values.astype(float)
    return np.array([np.nan if v is None else v for v in values], dtype=float)


def clean_values(values) -> np.ndarray:
    # Finite floats only; None / NaN / inf dropped.
    arr = as_float_array(values)
    return arr[np.isfinite(arr)]


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def clamp01(x: float) -> float:
    return clamp(x, 0.0, 1.0)


def quantile(values, p: float) -> float:
    """Linear-interpolated quantile at fractional index (n-1)*p; NaN when empty."""
    if not 0.0 <= p <= 1.0:
        raise ConfigurationError(f"quantile p must be within [0, 1], got {p}")
    s = np.sort(clean_values(values))
    if s.size == 0:
        return float("nan")
    idx = (s.size - 1) * p
    lo, hi = math.floor(idx), math.ceil(idx)
    return float(s[lo] + (s[hi] - s[lo]) * (idx - lo))


def sample_stdev(values) -> float:
    v = clean_values(values)
    if v.size < 2:
        return 0.0
    return float(np.std(v, ddof=1))


@dataclass
class StatSummary:
    n: int
    mean: float
    stdev: float
    skew: float
    kurtosis: float
    min: float
    max: float
    median: float
    iqr: float

    @property
    def ok(self) -> bool:
        return self.n > 0

    @property
    def sufficient(self) -> bool:
        return self.n >= SUMMARY_MIN_SAMPLES

    @classmethod
    def empty(cls) -> "StatSummary":
        nan = float("nan")
        return cls(0, nan, nan, nan, nan, nan, nan, nan, nan)

    def to_dict(self) -> dict:
        return {k: getattr(self, k) for k in
                ("n", "mean", "stdev", "skew", "kurtosis", "min", "max", "median", "iqr")}


def summarize(values) -> StatSummary:
    """
    Mean, sample stdev, population skew / excess kurtosis, range, median and IQR.
    Empty input gives a NaN-filled summary with n=0 instead of raising.
    """
    v = clean_values(values)
    n = int(v.size)
    if n == 0:
        return StatSummary.empty()
    mu = float(v.mean())
    dev = v - mu
    m2 = float(np.mean(dev ** 2))
    if m2 > EPS:
        skew = float(np.mean(dev ** 3) / m2 ** 1.5)
        kurt = float(np.mean(dev ** 4) / m2 ** 2 - 3.0)
    else:
        skew, kurt = 0.0, 0.0
    return StatSummary(
        n=n,
        mean=mu,
        stdev=sample_stdev(v),
        skew=skew,
        kurtosis=kurt,
        min=float(v.min()),
        max=float(v.max()),
        median=quantile(v, 0.5),
        iqr=quantile(v, 0.75) - quantile(v, 0.25),
    )


@dataclass(frozen=True)
class BaselineStats:
    mean: float
    stdev: float
    median: float
    iqr: float
    n: int = 0
    min_samples: int = field(default=BASELINE_MIN_SAMPLES, compare=False)

    @property
    def valid(self) -> bool:
        return self.n >= self.min_samples and math.isfinite(self.mean) and self.stdev >= 0


def baseline_stats(values, min_samples: int = BASELINE_MIN_SAMPLES) -> BaselineStats:
    s = summarize(values)
    if s.n < min_samples:
        logger.debug("baseline has %d samples (< %d); normalisation falls back to 0", s.n, min_samples)
    return BaselineStats(mean=s.mean, stdev=s.stdev if s.ok else 0.0, median=s.median,
                         iqr=s.iqr if s.ok else 0.0, n=s.n, min_samples=min_samples)


def zscore(x: float, mu: float, sigma: float) -> float:
    # Degenerate sigma means "no signal", not an error.
    if sigma is None or not sigma > EPS:
        return 0.0
    return (x - mu) / sigma


def robust_score(x: float, median: float, iqr: float) -> float:
    if iqr is None or not iqr > EPS:
        return 0.0
    return (x - median) / iqr


def normalize(x: float, baseline: BaselineStats, robust: bool = False) -> float:
    if baseline is None or not baseline.valid:
        return 0.0
    if robust:
        return robust_score(x, baseline.median, baseline.iqr)
    return zscore(x, baseline.mean, baseline.stdev)


def correlation(x, y):
    """Pearson correlation of the first min(len) points; None when undefined."""
    n = min(len(x), len(y))
    if n < 3:
        return None
    xx = np.asarray(list(x)[:n], dtype=float)
    yy = np.asarray(list(y)[:n], dtype=float)
    sx, sy = sample_stdev(xx), sample_stdev(yy)
    if sx == 0 or sy == 0:
        return None
    c = float(np.sum((xx - xx.mean()) * (yy - yy.mean())) / (n - 1))
    return c / (sx * sy)
