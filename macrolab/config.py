# macrolab/config.py
import copy
import logging
from pathlib import Path
from typing import Optional, Union

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULTS = {
    "baseline": {
        "min_samples": 30,          # baseline / archive windows
        "summary_min_samples": 5,   # indicator stats windows
        "lookback_years": 10,
        "history_min_years": 8,     # correlations / leading composite history
    },
    "lead": {"tau": 72.0},
    "rolling": {
        "z_window": 60,
        "smoothing": "none",        # none | ma3 | ma6 | ma12
        "return_type": "log",       # log | simple
    },
    "hp": {"lambda": 100.0},
    # Contribution = weight x (flip ? -z : z)
    "engines": {
        "growth": [
            {"indicator": "gdp_growth", "weight": 1.0, "flip": False, "label": "GDP growth"},
            {"indicator": "unemployment", "weight": 0.4, "flip": True, "label": "Unemployment"},
        ],
        "inflation": [
            {"indicator": "inflation", "weight": 1.0, "flip": True, "label": "CPI inflation"},
        ],
        "liquidity": [
            {"indicator": "money", "weight": 1.0, "flip": False, "label": "Broad money growth"},
        ],
        "external": [
            {"indicator": "current_account", "weight": 1.0, "flip": False, "label": "Current account"},
        ],
    },
    "weather": {
        # Directional priors per commodity, not calibrated coefficients.
        "betas": {
            "NG": {"temperature_2m": -0.55, "apparent_temperature": -0.25, "wind_speed_10m": 0.05, "cloud_cover": 0.08},
            "POWER_EU": {"temperature_2m": -0.45, "wind_speed_100m": -0.22, "shortwave_radiation": -0.10, "cloud_cover": 0.10},
            "CORN": {"precipitation": -0.18, "et0_fao_evapotranspiration": 0.22, "vapour_pressure_deficit": 0.20,
                     "soil_moisture_9_27cm": -0.24, "temperature_2m": 0.10},
            "WHEAT": {"precipitation": -0.15, "vapour_pressure_deficit": 0.18, "wind_gusts_10m": 0.06,
                      "soil_moisture_3_9cm": -0.20, "temperature_2m": 0.08},
            "COFFEE": {"temperature_2m": 0.18, "precipitation": -0.10, "soil_moisture_3_9cm": -0.18,
                       "vapour_pressure_deficit": 0.20},
            "COCOA": {"precipitation": -0.20, "relative_humidity_2m": -0.10, "soil_moisture_9_27cm": -0.18,
                      "temperature_2m": 0.10},
            "WTI": {"wind_speed_10m": 0.06, "snowfall": 0.04, "temperature_2m": 0.03},
            "BRENT": {"wind_speed_10m": 0.05, "pressure_msl": -0.03, "cloud_cover": 0.02},
        },
        # Generic stress composite for commodities without a calibrated map.
        "default_beta": {
            "vapour_pressure_deficit": 0.15,
            "et0_fao_evapotranspiration": 0.12,
            "precipitation": -0.10,
            "soil_moisture_9_27cm": -0.12,
            "temperature_2m": 0.05,
            "wind_speed_100m": 0.03,
        },
    },
    "regimes": {
        "fragility_weight": 0.35,
        "confidence_slope": 1.8,
        "confidence_floor": 0.15,
        "table": [
            {"id": "goldilocks", "label": "Goldilocks", "centroid": [0.9, 0.6, 0.6, 0.2]},
            {"id": "overheat", "label": "Overheat", "centroid": [0.6, -0.8, 0.5, 0.0]},
            {"id": "slowdown", "label": "Slowdown", "centroid": [-0.9, 0.5, -0.6, -0.2]},
            {"id": "stress", "label": "External stress", "centroid": [-0.4, 0.2, -0.4, -1.2]},
            {"id": "stagfl", "label": "Stagflation", "centroid": [-0.8, -0.8, -0.2, -0.2]},
        ],
    },
    "turning_point": {
        "slope": 2.1,
        "shift": 1.2,
        "features": {
            "growth_weakness": {"weight": 1.35, "scale": 2.0},
            "unemployment_rise": {"weight": 0.90, "scale": 2.0},
            "liquidity_weakness": {"weight": 1.10, "scale": 2.0},
            "external_weakness": {"weight": 0.75, "scale": 2.0},
            "divergence": {"weight": 0.65, "scale": 2.5},
            "gdp_slowdown": {"weight": 0.55, "scale": 4.0},
        },
    },
    "scenario": {
        "demand_growth": 2.0,
        "supply_growth": 1.5,
        "inventory_swing": 0.0,
        "demand_elasticity": 0.2,
        "supply_elasticity": 0.1,
        "balance_override": None,
        "range": 2.0,
        "steps": 9,
        "grid_span": 3.0,
        "grid_points": 13,
    },
    "data": {
        "files": {
            "gdp_growth": "gdp_growth.csv",
            "inflation": "inflation.csv",
            "unemployment": "unemployment.csv",
            "money": "money.csv",
            "current_account": "current_account.csv",
        },
        "real_gdp": "real_gdp.csv",
    },
}


def merge(base: dict, override: dict) -> dict:
    # Nested mappings merge key by key; lists and scalars are replaced.
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def load_config(path: Optional[Union[str, Path]] = None) -> dict:
    if path is None:
        return copy.deepcopy(DEFAULTS)
    path = Path(path)
    if not path.exists():
        logger.info("config %s not found; using defaults", path)
        return copy.deepcopy(DEFAULTS)
    user_cfg = yaml.safe_load(path.read_text(encoding="utf-8"))
    if user_cfg is None:
        return copy.deepcopy(DEFAULTS)
    if not isinstance(user_cfg, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return merge(DEFAULTS, user_cfg)
