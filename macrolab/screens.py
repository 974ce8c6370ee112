# macrolab/screens.py
import logging

import numpy as np

from .errors import unavailable
from .stats import clean_values

logger = logging.getLogger(__name__)

ADF_MIN_OBS = 40
# Rough 5% Dickey-Fuller value (constant, no trend). Fixed regardless of n;
# results are a screening heuristic, not a test.
ADF_CRITICAL_5PCT = -2.86


def adf_lite(series, critical: float = ADF_CRITICAL_5PCT, min_obs: int = ADF_MIN_OBS) -> dict:
    """
    Dickey-Fuller regression without lags: dy_t = a + b * y_{t-1} + e_t.
    Returns the t-statistic on b and whether it clears ``critical``.
    Never raises on data problems.
    """
    y = clean_values(series)
    if y.size < min_obs:
        return unavailable(f"insufficient data ({y.size} < {min_obs})", n=int(y.size))
    if np.std(y) < 1e-12:
        return unavailable("constant series", n=int(y.size))

    dy = np.diff(y)
    lag = y[:-1]
    X = np.column_stack([np.ones_like(lag), lag])
    coef, _, rank, _ = np.linalg.lstsq(X, dy, rcond=None)
    if rank < 2:
        return unavailable("degenerate regression", n=int(y.size))
    resid = dy - X @ coef
    dof = dy.size - 2
    s2 = float(resid @ resid) / dof
    cov = s2 * np.linalg.inv(X.T @ X)
    se_b = float(np.sqrt(cov[1, 1]))
    if not se_b > 0:
        return unavailable("zero standard error", n=int(y.size))

    stat = float(coef[1] / se_b)
    logger.debug("adf_lite: stat=%.3f critical=%.2f n=%d", stat, critical, y.size)
    return {
        "ok": True,
        "stat": stat,
        "critical": critical,
        "is_stationary": stat < critical,
        "n": int(y.size),
        "note": "screening heuristic; fixed critical value",
    }
