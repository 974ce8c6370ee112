# macrolab/composite.py
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .stats import clamp

logger = logging.getLogger(__name__)

Z_CLAMP = 2.5
ENGINE_ORDER = ("growth", "inflation", "liquidity", "external")


@dataclass(frozen=True)
class ScoreEntry:
    z: float
    raw: Optional[float] = None
    timestamp: Any = None


@dataclass(frozen=True)
class EngineRule:
    indicator_id: str
    weight: float
    flip_sign: bool = False
    label: Optional[str] = None

    def __post_init__(self):
        if not self.indicator_id or not isinstance(self.indicator_id, str):
            raise ConfigurationError(f"engine rule needs an indicator id, got {self.indicator_id!r}")
        try:
            w = float(self.weight)
        except (TypeError, ValueError):
            raise ConfigurationError(f"weight for {self.indicator_id} is not numeric: {self.weight!r}") from None
        if not math.isfinite(w):
            raise ConfigurationError(f"weight for {self.indicator_id} is not finite")
        object.__setattr__(self, "weight", w)
        object.__setattr__(self, "flip_sign", bool(self.flip_sign))


@dataclass(frozen=True)
class EngineModel:
    engine_id: str
    rules: Tuple[EngineRule, ...]
    fallback: bool = False

    def __post_init__(self):
        ids = [r.indicator_id for r in self.rules]
        if len(ids) != len(set(ids)):
            raise ConfigurationError(f"engine {self.engine_id} references an indicator twice")
        object.__setattr__(self, "rules", tuple(self.rules))

    @property
    def indicator_ids(self) -> Tuple[str, ...]:
        return tuple(r.indicator_id for r in self.rules)

    @classmethod
    def from_table(cls, engine_id: str, table, fallback: bool = False) -> "EngineModel":
        """
        Build from either a list of ``{indicator, weight, flip, label}`` rows
        (macro engine tables) or an ``{indicator: beta}`` mapping (weather beta maps).
        """
        if isinstance(table, Mapping):
            rules = [EngineRule(k, v) for k, v in table.items()]
        elif isinstance(table, Iterable) and not isinstance(table, str):
            rules = []
            for row in table:
                if not isinstance(row, Mapping) or "indicator" not in row or "weight" not in row:
                    raise ConfigurationError(f"malformed rule in engine {engine_id}: {row!r}")
                rules.append(EngineRule(row["indicator"], row["weight"],
                                        row.get("flip", False), row.get("label")))
        else:
            raise ConfigurationError(f"engine {engine_id} table must be a list or mapping")
        return cls(engine_id, tuple(rules), fallback=fallback)


@dataclass(frozen=True)
class Contribution:
    indicator_id: str
    weight: float
    z: float
    adjusted_z: float
    contribution: float
    label: Optional[str] = None


@dataclass(frozen=True)
class CompositeScore:
    engine_id: str
    z: float
    display_score: int
    contributions: Tuple[Contribution, ...] = field(default=())
    missing: Tuple[str, ...] = field(default=())
    fallback: bool = False

    @property
    def drivers(self) -> Tuple[Contribution, ...]:
        return self.contributions

    def to_dict(self) -> dict:
        return {"engine": self.engine_id, "z": self.z, "score": self.display_score,
                "fallback": self.fallback, "missing": list(self.missing)}


def display_score(z: float) -> int:
    # 50 +/- 40 over z in [-2.5, 2.5]; round half up like the dashboards.
    if z is None or not math.isfinite(z):
        z = 0.0
    return int(math.floor(50 + clamp(z, -Z_CLAMP, Z_CLAMP) / Z_CLAMP * 40 + 0.5))


def _z_of(entry) -> Optional[float]:
    if entry is None:
        return None
    if isinstance(entry, ScoreEntry):
        z = entry.z
    elif isinstance(entry, Mapping):
        z = entry.get("z")
    else:
        z = getattr(entry, "z", entry)
    try:
        z = float(z)
    except (TypeError, ValueError):
        return None
    return z if math.isfinite(z) else None


def score_composite(model: EngineModel, scores: Mapping[str, Any]) -> CompositeScore:
    """
    Weighted sum of (optionally sign-flipped) indicator z-scores.

    Indicators without a usable z are left out of the sum. When nothing is
    available the composite is neutral: z = 0, display score 50.
    """
    contributions = []
    missing = []
    total = 0.0
    for rule in model.rules:
        z = _z_of(scores.get(rule.indicator_id))
        if z is None:
            missing.append(rule.indicator_id)
            continue
        adj = -z if rule.flip_sign else z
        c = rule.weight * adj
        total += c
        contributions.append(Contribution(rule.indicator_id, rule.weight, z, adj, c, rule.label))
    if missing:
        logger.debug("engine %s: skipped missing indicators %s", model.engine_id, missing)
    contributions.sort(key=lambda c: abs(c.contribution), reverse=True)
    return CompositeScore(
        engine_id=model.engine_id,
        z=total,
        display_score=display_score(total),
        contributions=tuple(contributions),
        missing=tuple(missing),
        fallback=model.fallback,
    )


def models_from_config(tables: Mapping[str, Any]) -> Dict[str, EngineModel]:
    if not isinstance(tables, Mapping):
        raise ConfigurationError("engine tables must be a mapping of engine id -> rules")
    return {eid: EngineModel.from_table(eid, t) for eid, t in tables.items()}


def score_engines(models: Mapping[str, EngineModel], scores: Mapping[str, Any]) -> Dict[str, CompositeScore]:
    return {eid: score_composite(m, scores) for eid, m in models.items()}


def resolve_engine_model(entity_id: str, calibrated: Mapping[str, EngineModel],
                         fallback: EngineModel) -> EngineModel:
    # Entities without a calibrated map get the generic stress composite.
    model = calibrated.get(entity_id)
    if model is not None:
        return model
    logger.info("no calibrated model for %s; using fallback composite %s", entity_id, fallback.engine_id)
    return replace(fallback, fallback=True)


def apply_engine_shocks(engines: Mapping[str, CompositeScore], shocks: Mapping[str, float],
                        engine_ids: Sequence[str] = ENGINE_ORDER) -> Dict[str, CompositeScore]:
    """Shift each engine's z by a scenario shock and re-derive its display score."""
    out = dict(engines)
    for eid in engine_ids:
        base = engines.get(eid)
        z0 = base.z if base is not None and math.isfinite(base.z) else 0.0
        dz = shocks.get(eid, 0.0) or 0.0
        z = z0 + float(dz)
        if base is None:
            out[eid] = CompositeScore(eid, z, display_score(z))
        else:
            out[eid] = replace(base, z=z, display_score=display_score(z))
    return out


def engine_vector(engines: Mapping[str, Any], order: Sequence[str] = ENGINE_ORDER) -> list:
    return [(_z_of(engines.get(eid)) or 0.0) for eid in order]
