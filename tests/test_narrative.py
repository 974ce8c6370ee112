"""
Tests for the narrative labels.
"""

from macrolab.composite import CompositeScore
from macrolab.narrative import (engine_interpretation, impact_note, market_lens, risk_level, score_note,
                                turning_note)


def engines_from(g, i, l, e):
    return {k: CompositeScore(k, z, 50) for k, z in
            zip(("growth", "inflation", "liquidity", "external"), (g, i, l, e))}


class TestLabels:

    def test_risk_level(self):
        assert risk_level(0.2) == "low"
        assert risk_level(-0.7) == "medium"
        assert risk_level(1.5) == "high"
        assert risk_level(None) == "n/a"
        assert risk_level(float("nan")) == "n/a"

    def test_interpretation_side(self):
        assert "above" in engine_interpretation(1.5)
        assert "below" in engine_interpretation(-0.8)
        assert engine_interpretation(None).startswith("Insufficient")

    def test_market_lens_neutral(self):
        pills = market_lens({})
        assert pills == ["Rates: balanced", "FX: broadly steady", "Risk: mixed conditions", "Duration stress: low"]

    def test_market_lens_stress(self):
        pills = market_lens(engines_from(-1.0, 1.5, -1.0, -1.0))
        assert "Rates: higher for longer risk" in pills
        assert "FX: funding stress risk" in pills
        assert "Risk: tightening impulse" in pills
        assert "Duration stress: elevated" in pills

    def test_turning_note_thresholds(self):
        assert turning_note(0.7, {}).startswith("Turning risk is elevated")
        assert turning_note(0.5, {}).startswith("Turning risk is medium")
        assert turning_note(0.1, engines_from(1.0, 0.0, 1.0, 0.0)).startswith("Turning risk is low.")
        assert turning_note(0.1, {}).startswith("Turning risk is low-to-mixed")

    def test_weather_notes(self):
        assert score_note(65).startswith("Bullish")
        assert score_note(35).startswith("Bearish")
        assert score_note(50) == "Neutral / mixed"
        assert impact_note(2.5) == "Large anomaly regime"
        assert impact_note(-1.2) == "Meaningful anomaly regime"
        assert impact_note(0.1) == "Low anomaly"
