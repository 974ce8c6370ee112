# macrolab/loader.py
import logging
from pathlib import Path
from typing import Dict, Mapping, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


def _parse_keys(raw: pd.Series) -> Tuple[pd.Index, pd.Series]:
    """
    Returns the parsed keys and a mask of the rows that produced one. Plain
    years stay integer keys; anything else becomes a DatetimeIndex. Blank or
    unparseable keys do not decide the mode.
    """
    text = raw.astype(str).str.strip()
    blank = raw.isna() | text.eq("")
    is_year = text.str.fullmatch(r"\d{4}")
    rest = text[~blank & ~is_year]
    if is_year.any() and pd.to_datetime(rest, errors="coerce").isna().all():
        return pd.Index(text[is_year].astype(int), name="date"), is_year
    idx = pd.to_datetime(text.where(~blank), errors="coerce")
    if getattr(idx.dt, "tz", None) is not None:
        idx = idx.dt.tz_localize(None)
    keep = idx.notna()
    return pd.DatetimeIndex(idx[keep], name="date"), keep


def load_single_csv(path: Path, value_col: str = None) -> pd.Series:
    """
    Read a ``date,<value>`` CSV into an ascending Series. Missing values stay
    NaN so gaps keep their position; unparseable dates and duplicates are dropped.
    """
    # Read as text so a blank row cannot turn a year column into floats.
    df = pd.read_csv(path, dtype=str)
    if "date" not in df.columns:
        raise ValueError(f"No date column in {path}")
    if value_col is None:
        cols = [c for c in df.columns if c.lower() != "date"]
        if not cols:
            raise ValueError(f"No value column in {path}")
        value_col = cols[0]
    values = pd.to_numeric(df[value_col], errors="coerce").astype(float)
    idx, keep = _parse_keys(df["date"])
    if not keep.all():
        logger.debug("%s: %d rows without a usable date dropped", path, int((~keep).sum()))
    s = pd.Series(values[keep].to_numpy(), index=idx, name=Path(path).stem)
    s = s[~s.index.duplicated(keep="last")].sort_index()
    return s


def load_indicators(data_dir: Path, files: Mapping[str, str], strict: bool = False) -> Dict[str, pd.Series]:
    """Missing files are skipped. Unreadable files raise when ``strict``, else are skipped with a warning."""
    out = {}
    for key, fname in files.items():
        p = Path(data_dir) / fname
        if not p.exists():
            logger.warning("no file for %s at %s", key, p)
            continue
        try:
            out[key] = load_single_csv(p).rename(key)
        except (ValueError, pd.errors.ParserError) as e:
            if strict:
                raise
            logger.warning("could not read %s: %s", p, e)
    return out
