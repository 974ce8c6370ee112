"""
Tests for config defaults and YAML overrides.
"""

from pathlib import Path

import pytest

from macrolab.composite import models_from_config
from macrolab.config import DEFAULTS, load_config, merge
from macrolab.errors import ConfigurationError

REPO_CONFIG = Path(__file__).resolve().parents[1] / "config.yaml"


class TestLoadConfig:

    def test_defaults_are_copied(self):
        cfg = load_config()
        assert cfg == DEFAULTS
        cfg["hp"]["lambda"] = 1.0
        assert DEFAULTS["hp"]["lambda"] == 100.0

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.yaml") == DEFAULTS

    def test_empty_file_gives_defaults(self, tmp_path):
        p = tmp_path / "empty.yaml"
        p.write_text("", encoding="utf-8")
        assert load_config(p) == DEFAULTS

    def test_nested_override(self, tmp_path):
        p = tmp_path / "cfg.yaml"
        p.write_text("hp:\n  lambda: 1600\nscenario:\n  steps: 5\n", encoding="utf-8")
        cfg = load_config(p)
        assert cfg["hp"]["lambda"] == 1600
        assert cfg["scenario"]["steps"] == 5
        assert cfg["scenario"]["demand_growth"] == 2.0
        assert cfg["regimes"] == DEFAULTS["regimes"]

    def test_list_replaces(self, tmp_path):
        p = tmp_path / "cfg.yaml"
        p.write_text("engines:\n  growth:\n    - {indicator: gdp_growth, weight: 2.0}\n", encoding="utf-8")
        cfg = load_config(p)
        assert len(cfg["engines"]["growth"]) == 1
        assert cfg["engines"]["inflation"] == DEFAULTS["engines"]["inflation"]

    def test_non_mapping_rejected(self, tmp_path):
        p = tmp_path / "cfg.yaml"
        p.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(p)

    def test_repo_config_loads(self):
        cfg = load_config(REPO_CONFIG)
        models = models_from_config(cfg["engines"])
        assert set(models) == {"growth", "inflation", "liquidity", "external"}
        assert cfg["hp"]["lambda"] == 100


def test_merge_does_not_mutate():
    base = {"a": {"b": 1, "c": 2}}
    out = merge(base, {"a": {"b": 3}, "d": [1]})
    assert out == {"a": {"b": 3, "c": 2}, "d": [1]}
    assert base == {"a": {"b": 1, "c": 2}}
