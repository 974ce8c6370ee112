"""
Tests for CSV loading.
"""

import numpy as np
import pandas as pd
import pytest

from macrolab.loader import load_indicators, load_single_csv


def write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadSingleCsv:

    def test_year_keys(self, tmp_path):
        p = write(tmp_path / "gdp.csv", "date,value\n2002,3.0\n2000,1.5\n2001,\n")
        s = load_single_csv(p)
        assert list(s.index) == [2000, 2001, 2002]
        assert s.name == "gdp"
        assert np.isnan(s.loc[2001])

    def test_blank_and_malformed_dates_keep_year_keys(self, tmp_path):
        p = write(tmp_path / "gdp.csv", "date,value\n2000,1.0\n,9.0\n2001,2.0\nunknown,8.0\n2002,3.0\n")
        s = load_single_csv(p)
        assert not isinstance(s.index, pd.DatetimeIndex)
        assert list(s.index) == [2000, 2001, 2002]
        assert s.tolist() == [1.0, 2.0, 3.0]

    def test_duplicates_keep_last(self, tmp_path):
        p = write(tmp_path / "x.csv", "date,value\n2000,1\n2001,5\n2001,2\n")
        s = load_single_csv(p)
        assert len(s) == 2
        assert s.loc[2001] == 2.0

    def test_dates_and_bad_rows(self, tmp_path):
        p = write(tmp_path / "px.csv", "date,close\n2020-02-29,2\n2020-01-31,1\nnot-a-date,3\n")
        s = load_single_csv(p)
        assert isinstance(s.index, pd.DatetimeIndex)
        assert s.tolist() == [1.0, 2.0]

    def test_timezone_dropped(self, tmp_path):
        p = write(tmp_path / "px.csv", "date,value\n2020-01-01T00:00:00Z,1\n2020-01-02T00:00:00Z,2\n")
        s = load_single_csv(p)
        assert s.index.tz is None

    def test_value_column_choice(self, tmp_path):
        p = write(tmp_path / "px.csv", "date,open,close\n2000,1,2\n2001,3,4\n")
        assert load_single_csv(p).tolist() == [1.0, 3.0]
        assert load_single_csv(p, value_col="close").tolist() == [2.0, 4.0]

    def test_missing_columns(self, tmp_path):
        with pytest.raises(ValueError):
            load_single_csv(write(tmp_path / "a.csv", "when,value\n2000,1\n"))
        with pytest.raises(ValueError):
            load_single_csv(write(tmp_path / "b.csv", "date\n2000\n"))


class TestLoadIndicators:

    def test_skips_missing_and_unreadable(self, tmp_path):
        write(tmp_path / "gdp_growth.csv", "date,value\n2000,1\n2001,2\n")
        write(tmp_path / "inflation.csv", "year,value\n2000,1\n")
        files = {"gdp_growth": "gdp_growth.csv", "inflation": "inflation.csv", "money": "money.csv"}
        out = load_indicators(tmp_path, files)
        assert set(out) == {"gdp_growth"}
        assert out["gdp_growth"].name == "gdp_growth"

    def test_strict_raises(self, tmp_path):
        write(tmp_path / "inflation.csv", "year,value\n2000,1\n")
        with pytest.raises(ValueError):
            load_indicators(tmp_path, {"inflation": "inflation.csv"}, strict=True)
