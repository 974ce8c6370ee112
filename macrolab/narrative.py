# macrolab/narrative.py
# Short labels for the reporting layer, derived from engine z-scores.
import math
from typing import Any, Mapping

from .composite import ENGINE_ORDER, engine_vector


def _missing(x) -> bool:
    return x is None or not math.isfinite(x)


def risk_level(z) -> str:
    if _missing(z):
        return "n/a"
    a = abs(z)
    if a < 0.5:
        return "low"
    if a < 1.0:
        return "medium"
    return "high"


def engine_interpretation(z) -> str:
    if _missing(z):
        return "Insufficient data for this engine."
    a = abs(z)
    side = "above" if z > 0 else "below"
    if a < 0.5:
        return "Near its own history, likely low signal for repricing unless the slope changes."
    if a < 1.0:
        return f"Moderately {side} history, watch whether this persists into next prints."
    return f"Meaningfully {side} history, this is where markets tend to reprice narratives and risk premia."


def market_lens(engines: Mapping[str, Any]) -> list:
    g, i, l, e = engine_vector(engines, ENGINE_ORDER)
    pills = []

    rates = "Rates: balanced"
    if i > 0.7:
        rates = "Rates: higher for longer risk"
    elif i < -0.7:
        rates = "Rates: easing window"
    pills.append(rates)

    fx = "FX: broadly steady"
    if e < -0.7:
        fx = "FX: funding stress risk"
    elif e > 0.7:
        fx = "FX: supported by balance"
    pills.append(fx)

    risk = "Risk: mixed conditions"
    if g > 0.5 and l > 0.5:
        risk = "Risk: supportive impulse"
    elif g < -0.5 and l < -0.5:
        risk = "Risk: tightening impulse"
    pills.append(risk)

    divergence = abs(i - g)
    duration = "Duration stress: low"
    if i > 0.7 and divergence > 0.9:
        duration = "Duration stress: latent"
    if i > 1.2 and divergence > 1.2:
        duration = "Duration stress: elevated"
    pills.append(duration)
    return pills


def turning_note(p: float, engines: Mapping[str, Any]) -> str:
    g, _, l, e = engine_vector(engines, ENGINE_ORDER)
    if p >= 0.65:
        return "Turning risk is elevated. If this persists, risk premia tends to move before the macro narrative catches up."
    if p >= 0.45:
        return "Turning risk is medium. The next step is whether liquidity/external tension worsens or stabilises."
    if g > 0.5 and l > 0.5 and e > -0.2:
        return "Turning risk is low. Cycle looks supported unless a shock hits liquidity or the external channel."
    return "Turning risk is low-to-mixed. Watch slope changes rather than level prints."


def score_note(score) -> str:
    if _missing(score):
        return "n/a"
    if score >= 60:
        return "Bullish tilt (weather tailwinds)"
    if score <= 40:
        return "Bearish tilt (weather headwinds)"
    return "Neutral / mixed"


def impact_note(z) -> str:
    if _missing(z):
        return "n/a"
    a = abs(z)
    if a >= 2.0:
        return "Large anomaly regime"
    if a >= 1.0:
        return "Meaningful anomaly regime"
    return "Low anomaly"
