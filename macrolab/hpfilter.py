# macrolab/hpfilter.py
"""
Hodrick-Prescott trend/cycle decomposition.

Solves (I + lam * K'K) trend = y where K is the second-difference operator.
The system is symmetric positive definite and pentadiagonal, so the default
path is an O(n) banded Cholesky solve; the dense partial-pivot elimination is
kept as a reference implementation.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import pandas as pd
from scipy.linalg import solveh_banded

from .errors import ConfigurationError, is_available, unavailable
from .stats import as_float_array

logger = logging.getLogger(__name__)

DEFAULT_LAMBDA = 100.0  # annual data
MIN_OBS = 6
OUTPUT_GAP_MIN_OBS = 10


@dataclass
class TrendCycle:
    trend: Union[np.ndarray, pd.Series]
    cycle: Union[np.ndarray, pd.Series]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"trend": self.trend, "cycle": self.cycle})


def hp_bands(n: int, lam: float):
    """Diagonal, first and second off-diagonals of I + lam*K'K."""
    diag = np.full(n, 1.0 + 6.0 * lam)
    diag[0] = diag[-1] = 1.0 + lam
    diag[1] = diag[-2] = 1.0 + 5.0 * lam
    off1 = np.full(n - 1, -4.0 * lam)
    off1[0] = off1[-1] = -2.0 * lam
    off2 = np.full(n - 2, lam)
    return diag, off1, off2


def hp_matrix(n: int, lam: float) -> np.ndarray:
    diag, off1, off2 = hp_bands(n, lam)
    return np.diag(diag) + np.diag(off1, 1) + np.diag(off1, -1) + np.diag(off2, 2) + np.diag(off2, -2)


def gaussian_solve(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    # Dense elimination with partial pivoting; near-singular pivots are skipped.
    M = np.array(A, dtype=float)
    x = np.array(b, dtype=float)
    n = x.size
    for k in range(n):
        p = k + int(np.argmax(np.abs(M[k:, k])))
        if abs(M[p, k]) < 1e-12:
            continue
        if p != k:
            M[[k, p]] = M[[p, k]]
            x[[k, p]] = x[[p, k]]
        f = M[k + 1:, k] / M[k, k]
        x[k + 1:] -= f * x[k]
        M[k + 1:, k:] -= np.outer(f, M[k, k:])
    sol = np.zeros(n)
    for i in range(n - 1, -1, -1):
        s = x[i] - M[i, i + 1:] @ sol[i + 1:]
        sol[i] = 0.0 if abs(M[i, i]) < 1e-12 else s / M[i, i]
    return sol


def _banded_solve(y: np.ndarray, lam: float) -> np.ndarray:
    n = y.size
    diag, off1, off2 = hp_bands(n, lam)
    ab = np.zeros((3, n))
    ab[0, 2:] = off2
    ab[1, 1:] = off1
    ab[2, :] = diag
    return solveh_banded(ab, y)


def hp_filter(y, lam: float = DEFAULT_LAMBDA, method: str = "banded") -> TrendCycle:
    """
    Split ``y`` (typically log levels) into trend and cycle = y - trend.

    Missing values are filtered around: the solve runs on the finite points
    and NaN is put back at the gaps in both outputs. Fewer than 6 finite
    observations: the input is returned as the trend with a zero cycle.
    """
    if lam is None or lam < 0:
        raise ConfigurationError(f"HP lambda must be >= 0, got {lam}")
    if method not in ("banded", "dense"):
        raise ConfigurationError(f"unknown HP solver {method!r}")
    index = y.index if isinstance(y, pd.Series) else None
    arr = as_float_array(y)
    mask = np.isfinite(arr)
    obs = arr[mask]

    n = obs.size
    if n < arr.size:
        logger.debug("hp_filter: %d missing values skipped", arr.size - n)
    if n < MIN_OBS:
        logger.debug("hp_filter: %d observations (< %d); returning input as trend", n, MIN_OBS)
        fitted = obs.copy()
    elif method == "banded":
        fitted = _banded_solve(obs, lam)
    else:
        fitted = gaussian_solve(hp_matrix(n, lam), obs)

    trend = np.full(arr.size, np.nan)
    trend[mask] = fitted
    cycle = arr - trend

    if index is not None:
        return TrendCycle(pd.Series(trend, index=index, name="trend"),
                          pd.Series(cycle, index=index, name="cycle"))
    return TrendCycle(trend, cycle)


def output_gap(real_gdp: pd.Series, lam: float = DEFAULT_LAMBDA) -> dict:
    """
    Output gap (%) from a real GDP level series: HP filter on log levels,
    gap = cycle * 100, trend growth = 100 * first difference of the log trend.
    """
    s = pd.Series(real_gdp, dtype=float).dropna()
    s = s[np.isfinite(s) & (s > 0)].sort_index()
    if len(s) < OUTPUT_GAP_MIN_OBS:
        return unavailable(f"output gap needs {OUTPUT_GAP_MIN_OBS} positive observations, got {len(s)}")

    log_y = np.log(s)
    tc = hp_filter(log_y, lam)
    frame = pd.DataFrame({
        "log_level": log_y,
        "trend": tc.trend,
        "gap": tc.cycle * 100.0,
        "trend_growth": tc.trend.diff() * 100.0,
    })
    return {"ok": True, "frame": frame, "lam": lam}


def forecast_from_output_gap(result: dict) -> Optional[float]:
    # Latest trend growth is the forecast proxy.
    if not is_available(result):
        return None
    tg = result["frame"]["trend_growth"].dropna()
    return float(tg.iloc[-1]) if len(tg) else None
