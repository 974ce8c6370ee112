"""
Tests for descriptive statistics, baselines and the z-score normaliser.
"""

import math

import numpy as np
import pytest

from macrolab.errors import ConfigurationError
from macrolab.stats import (BaselineStats, baseline_stats, clean_values, correlation, normalize, quantile,
                            robust_score, sample_stdev, summarize, zscore)


class TestZScore:
    """Guarded z-score and robust score."""

    def test_latest_of_ramp(self):
        """[10..50]: latest sits ~1.26 sample stdevs above the mean."""
        v = [10, 20, 30, 40, 50]
        z = zscore(50, float(np.mean(v)), sample_stdev(v))
        assert z == pytest.approx(1.2649, abs=1e-4)

    def test_degenerate_sigma_is_neutral(self):
        assert zscore(5.0, 5.0, 0.0) == 0.0
        assert zscore(7.0, 5.0, 1e-12) == 0.0
        assert zscore(7.0, 5.0, None) == 0.0

    def test_robust_score(self):
        assert robust_score(12.0, 10.0, 4.0) == pytest.approx(0.5)
        assert robust_score(12.0, 10.0, 0.0) == 0.0

    def test_normalize_needs_valid_baseline(self):
        """Short baselines read as no signal."""
        short = baseline_stats(range(10))
        assert not short.valid
        assert normalize(100.0, short) == 0.0

        long = baseline_stats(range(40))
        assert long.valid
        assert normalize(long.mean, long) == pytest.approx(0.0)
        assert normalize(long.mean + long.stdev, long) == pytest.approx(1.0)

    def test_normalize_robust(self):
        b = BaselineStats(mean=0.0, stdev=1.0, median=2.0, iqr=4.0, n=50)
        assert normalize(6.0, b, robust=True) == pytest.approx(1.0)


class TestQuantile:
    """Linear interpolation at (n-1)*p."""

    def test_bounds_and_median(self):
        v = [4, 1, 3, 2]
        assert quantile(v, 0.0) == 1.0
        assert quantile(v, 1.0) == 4.0
        assert quantile(v, 0.5) == pytest.approx(2.5)

    def test_odd_length(self):
        v = [1, 2, 3, 4, 5]
        assert (quantile(v, 0), quantile(v, 0.5), quantile(v, 1)) == (1.0, 3.0, 5.0)

    def test_interpolation(self):
        assert quantile([0, 10], 0.25) == pytest.approx(2.5)

    def test_empty_is_nan(self):
        assert math.isnan(quantile([], 0.5))
        assert math.isnan(quantile([None, float("nan")], 0.5))

    def test_p_out_of_range_raises(self):
        with pytest.raises(ConfigurationError):
            quantile([1, 2, 3], 1.5)
        with pytest.raises(ConfigurationError):
            quantile([1, 2, 3], -0.1)


class TestSummarize:
    """StatSummary over finite values."""

    def test_empty(self):
        s = summarize([])
        assert s.n == 0
        assert not s.ok
        assert math.isnan(s.mean)

    def test_missing_values_dropped(self):
        s = summarize([1.0, None, 3.0, float("nan"), float("inf")])
        assert s.n == 2
        assert s.mean == pytest.approx(2.0)

    def test_symmetric_sample(self):
        s = summarize([1, 2, 3, 4, 5])
        assert s.mean == pytest.approx(3.0)
        assert s.stdev == pytest.approx(math.sqrt(2.5))
        assert s.skew == pytest.approx(0.0, abs=1e-12)
        assert s.median == pytest.approx(3.0)
        assert s.iqr == pytest.approx(2.0)
        assert s.min == 1.0 and s.max == 5.0

    def test_constant_has_zero_moments(self):
        s = summarize([7.0] * 10)
        assert s.stdev == 0.0
        assert s.skew == 0.0
        assert s.kurtosis == 0.0

    def test_normal_sample_excess_kurtosis(self):
        """Large normal sample: skew and excess kurtosis near 0."""
        np.random.seed(42)
        s = summarize(np.random.randn(20000))
        assert abs(s.skew) < 0.1
        assert abs(s.kurtosis) < 0.15

    def test_sufficient_flag(self):
        assert not summarize([1, 2, 3]).sufficient
        assert summarize([1, 2, 3, 4, 5]).sufficient

    def test_to_dict_keys(self):
        d = summarize([1, 2, 3]).to_dict()
        assert set(d) == {"n", "mean", "stdev", "skew", "kurtosis", "min", "max", "median", "iqr"}


class TestCorrelation:

    def test_perfect(self):
        assert correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
        assert correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_uses_common_prefix(self):
        assert correlation([1, 2, 3, 100], [1, 2, 3]) == pytest.approx(1.0)

    def test_undefined_cases(self):
        assert correlation([1, 2], [1, 2]) is None
        assert correlation([1, 1, 1], [1, 2, 3]) is None


def test_clean_values_drops_non_finite():
    out = clean_values([1, None, np.nan, np.inf, 2])
    assert list(out) == [1.0, 2.0]
