# macrolab/rolling.py
import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from .errors import ConfigurationError, unavailable
from .stats import as_float_array

logger = logging.getLogger(__name__)

MIN_Z_WINDOW = 12
SMOOTHING_WINDOWS = {"none": None, "ma3": 3, "ma6": 6, "ma12": 12}
VIEW_MODES = ("single", "spread", "ratio")


@dataclass(frozen=True)
class RollingPoint:
    mean: float
    variance: float
    stdev: float
    z: float


class RollingWindowEngine:
    """
    Fixed-capacity FIFO over the last ``window`` values with running sum and
    sum of squares. ``push`` returns a RollingPoint once the window is full,
    otherwise None.
    """

    VAR_FLOOR = 1e-12

    def __init__(self, window: int):
        if window is None or int(window) < 1:
            raise ConfigurationError(f"rolling window must be >= 1, got {window}")
        self.window = int(window)
        self._q = deque()
        self._sum = 0.0
        self._sumsq = 0.0

    def __len__(self) -> int:
        return len(self._q)

    @property
    def primed(self) -> bool:
        return len(self._q) == self.window

    @property
    def values(self) -> List[float]:
        return list(self._q)

    @property
    def mean(self) -> Optional[float]:
        return self._sum / self.window if self.primed else None

    def reset(self) -> None:
        self._q.clear()
        self._sum = 0.0
        self._sumsq = 0.0

    def push(self, value) -> Optional[RollingPoint]:
        # Missing values are not admitted to the window.
        if value is None or not math.isfinite(value):
            return None
        value = float(value)
        self._q.append(value)
        self._sum += value
        self._sumsq += value * value
        if len(self._q) > self.window:
            old = self._q.popleft()
            self._sum -= old
            self._sumsq -= old * old
        if not self.primed:
            return None
        mean = self._sum / self.window
        variance = max(self._sumsq / self.window - mean * mean, self.VAR_FLOOR)
        stdev = math.sqrt(variance)
        return RollingPoint(mean=mean, variance=variance, stdev=stdev, z=(value - mean) / stdev)


def rolling_zscore(values, window: int) -> List[Optional[float]]:
    eng = RollingWindowEngine(window)
    out = []
    for v in as_float_array(values):
        pt = eng.push(v)
        out.append(pt.z if pt is not None else None)
    return out


def returns(levels, kind: str = "log") -> List[Optional[float]]:
    # Per-step return from level[t-1] to level[t]; None at 0 and around gaps.
    if kind not in ("log", "simple"):
        raise ConfigurationError(f"return type must be 'log' or 'simple', got {kind!r}")
    lv = as_float_array(levels)
    out: List[Optional[float]] = [None] * len(lv)
    for i in range(1, len(lv)):
        a, b = lv[i - 1], lv[i]
        if not (math.isfinite(a) and math.isfinite(b)) or a == 0:
            continue
        if kind == "log":
            ratio = b / a
            out[i] = math.log(ratio) if ratio > 0 else None
        else:
            out[i] = b / a - 1.0
    return out


def moving_average(s: pd.Series, window: int) -> pd.Series:
    # Trailing mean, emitted only once the window is full.
    if window is None or window <= 1:
        return s
    return s.rolling(window).mean().dropna()


def align_two(a: pd.Series, b: pd.Series) -> pd.DataFrame:
    """Inner-join two dated series on calendar month, keeping finite pairs only."""
    def _monthly(s):
        s = s.copy()
        s.index = pd.to_datetime(s.index).to_period("M").to_timestamp()
        return s.groupby(level=0).last()

    df = pd.concat([_monthly(a).rename("a"), _monthly(b).rename("b")], axis=1, join="inner")
    df = df.replace([np.inf, -np.inf], np.nan).dropna()
    df.index.name = "date"
    return df.sort_index()


def seasonality(ret: pd.Series) -> pd.DataFrame:
    r = ret.dropna()
    r = r[np.isfinite(r.astype(float))]
    months = pd.to_datetime(r.index).month
    grouped = r.astype(float).groupby(months)
    out = pd.DataFrame({"avg": grouped.mean(), "n": grouped.size()}).reindex(range(1, 13))
    out["n"] = out["n"].fillna(0).astype(int)
    out.index.name = "month"
    return out


def build_commodity_view(a: pd.Series, b: Optional[pd.Series] = None, mode: str = "single",
                         z_window: int = 60, smoothing: str = "none", return_type: str = "log") -> dict:
    if mode not in VIEW_MODES:
        raise ConfigurationError(f"unknown view mode {mode!r}; expected one of {VIEW_MODES}")
    if smoothing not in SMOOTHING_WINDOWS:
        raise ConfigurationError(f"unknown smoothing {smoothing!r}")
    if mode != "single" and b is None:
        raise ConfigurationError(f"mode {mode!r} needs a second series")

    if a is None or a.dropna().empty:
        return unavailable("Series A has no data.")
    if mode != "single" and b.dropna().empty:
        return unavailable("Series B has no data.")

    if mode == "single":
        y = a.dropna().astype(float).sort_index()
        definition = f"{a.name or 'A'} · level"
    else:
        ab = align_two(a, b)
        if mode == "spread":
            y = ab["a"] - ab["b"]
            definition = f"{a.name or 'A'} − {b.name or 'B'} · spread"
        else:
            ab = ab[ab["b"] != 0]
            y = ab["a"] / ab["b"]
            definition = f"{a.name or 'A'} / {b.name or 'B'} · ratio"

    y = moving_average(y, SMOOTHING_WINDOWS[smoothing])
    zw = max(MIN_Z_WINDOW, int(z_window))
    if len(y) < zw + 10:
        logger.debug("view %s has %d points, needs %d", definition, len(y), zw + 10)
        return unavailable("Not enough history for z-window.", required=zw + 10, available=len(y))

    frame = pd.DataFrame({
        "y": y.to_numpy(dtype=float),
        "z": rolling_zscore(y, zw),
        "ret": returns(y, return_type),
    }, index=y.index)
    frame["z"] = frame["z"].astype(float)
    frame["ret"] = frame["ret"].astype(float)

    season = seasonality(frame["ret"]) if isinstance(frame.index, pd.DatetimeIndex) else None
    last_y = frame["y"].dropna()
    last_z = frame["z"].dropna()
    return {
        "ok": True,
        "definition": f"{definition} · z({zw})",
        "mode": mode,
        "z_window": zw,
        "frame": frame,
        "season": season,
        "last": float(last_y.iloc[-1]) if len(last_y) else None,
        "last_z": float(last_z.iloc[-1]) if len(last_z) else None,
    }
