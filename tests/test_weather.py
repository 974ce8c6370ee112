"""
Tests for the weather feature -> commodity impact pipeline.
"""

import numpy as np
import pytest

from macrolab.config import DEFAULTS
from macrolab.stats import BaselineStats
from macrolab.weather import (WeatherFeature, baseline_from_archive, build_feature_matrix, combine_hubs,
                              ensemble_impacts, ensemble_summary, price_score, weather_impact)

BETAS = DEFAULTS["weather"]["betas"]
DEFAULT_BETA = DEFAULTS["weather"]["default_beta"]


def feature(name, z):
    return WeatherFeature(name, 0.0, 0.0, 0.0, 0.0, z)


class TestBaselineAndFeatures:

    def test_archive_needs_thirty_samples(self):
        archive = {"time": list(range(40)), "temperature_2m": list(range(40)), "precipitation": list(range(10))}
        base = baseline_from_archive(archive)
        assert set(base) == {"temperature_2m"}
        assert base["temperature_2m"].mean == pytest.approx(19.5)

    def test_feature_z_against_baseline(self):
        hourly = {
            "time": [0, 1, 2],
            "temperature_2m": [9.0, 9.0, 9.0],
            "precipitation": [1.0, 2.0, 3.0],
            "short": [1.0, 2.0],
        }
        baselines = {"temperature_2m": BaselineStats(mean=5.0, stdev=2.0, median=5.0, iqr=2.0, n=100)}
        feats = {f.name: f for f in build_feature_matrix(hourly, baselines)}
        assert set(feats) == {"temperature_2m", "precipitation"}
        assert feats["temperature_2m"].lw_mean == pytest.approx(9.0)
        assert feats["temperature_2m"].z == pytest.approx(2.0)
        # no baseline: neutral
        assert feats["precipitation"].z == 0.0
        assert feats["precipitation"].p50 == pytest.approx(2.0)

    def test_short_baseline_is_neutral(self):
        """A baseline below the sample minimum normalises to 0."""
        hourly = {"time": [0, 1, 2], "temperature_2m": [20.0, 20.0, 20.0]}
        short = BaselineStats(mean=10.0, stdev=1.0, median=10.0, iqr=1.0, n=3)
        assert not short.valid
        feats = build_feature_matrix(hourly, {"temperature_2m": short})
        assert feats[0].z == 0.0
        assert feats[0].lw_mean == pytest.approx(20.0)

    def test_non_array_variables_skipped(self):
        hourly = {"time": [0, 1, 2, 3, 4], "temperature_2m": [20.0] * 5, "snowfall": None, "units": "mm"}
        feats = build_feature_matrix(hourly, {})
        assert [f.name for f in feats] == ["temperature_2m"]

    def test_combine_hubs_averages_z(self):
        hubs = [[feature("temperature_2m", 1.0)], [feature("temperature_2m", 3.0), feature("precipitation", -1.0)]]
        out = {f.name: f for f in combine_hubs(hubs)}
        assert out["temperature_2m"].z == pytest.approx(2.0)
        assert out["precipitation"].z == pytest.approx(-1.0)


class TestImpact:

    def test_calibrated_commodity(self):
        res = weather_impact([feature("temperature_2m", 1.0)], "NG", BETAS, DEFAULT_BETA)
        assert res["impact_z"] == pytest.approx(-0.55)
        assert res["fallback"] is False
        assert res["display_score"] < 50

    def test_fallback_stress_composite(self):
        res = weather_impact([feature("vapour_pressure_deficit", 2.0)], "URANIUM", BETAS, DEFAULT_BETA)
        assert res["fallback"] is True
        assert res["composite"].engine_id == "stress_composite"
        assert res["impact_z"] == pytest.approx(0.30)

    def test_no_features_is_neutral(self):
        res = weather_impact([], "CORN", BETAS, DEFAULT_BETA)
        assert res["impact_z"] == 0.0
        assert res["display_score"] == 50
        assert res["price_score"] == 50.0

    def test_price_score_bounded(self):
        assert price_score(0.0) == 50.0
        assert 35.0 < price_score(-3.0) < price_score(3.0) < 65.0
        assert 35.0 <= price_score(-100.0) and price_score(100.0) <= 65.0


class TestEnsemble:

    def test_members_are_normalised_on_themselves(self):
        ens = {"temperature_2m": [[1.0, 2.0, 3.0], [3.0, 2.0, 1.0]]}
        impacts = ensemble_impacts(ens, {"temperature_2m": 1.0})
        assert len(impacts) == 2
        assert impacts[0] < 0 < impacts[1]
        assert impacts[0] == pytest.approx(-impacts[1])

    def test_single_path_accepted(self):
        impacts = ensemble_impacts({"precipitation": [1.0, 1.0, 1.0]}, {"precipitation": -0.2})
        assert impacts == [0.0]

    def test_summary(self):
        s = ensemble_summary([-1.0, 0.0, 1.0], 0.5)
        assert s["p50"] == pytest.approx(0.0)
        assert s["dispersion"] == pytest.approx(np.sqrt(2.0 / 3.0))
        assert s["iqr"] == pytest.approx(1.0)
        assert s["confidence"] == pytest.approx(0.5 / np.sqrt(2.0 / 3.0))

    def test_summary_degenerate(self):
        assert ensemble_summary([0.4, 0.4], 1.0)["confidence"] == 1.0
        assert ensemble_summary([], 1.0) is None
