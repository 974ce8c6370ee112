# macrolab/scenario.py
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd

from .errors import ConfigurationError

MIN_ELASTICITY = 0.01
MIN_RANGE = 0.5
MIN_STEPS = 3


@dataclass(frozen=True)
class ScenarioPoint:
    shock_input: float
    implied_output: float


@dataclass
class ScenarioInputs:
    demand_growth: float = 0.0
    supply_growth: float = 0.0
    inventory_swing: float = 0.0
    demand_elasticity: float = 0.2
    supply_elasticity: float = 0.1
    balance_override: Optional[float] = None

    @property
    def demand_elasticity_abs(self) -> float:
        return max(MIN_ELASTICITY, abs(float(self.demand_elasticity)))

    @property
    def supply_elasticity_clamped(self) -> float:
        return max(MIN_ELASTICITY, float(self.supply_elasticity))

    @property
    def denominator(self) -> float:
        return self.demand_elasticity_abs + self.supply_elasticity_clamped

    @property
    def base_balance(self) -> float:
        if self.balance_override is not None:
            return float(self.balance_override)
        return float(self.demand_growth) - float(self.supply_growth) - float(self.inventory_swing)


@dataclass
class ScenarioResult:
    inputs: ScenarioInputs
    base_balance: float
    implied_move: float
    sweep: List[ScenarioPoint] = field(default_factory=list)
    grid: Optional[pd.DataFrame] = None

    def sweep_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "balance_shock": [p.shock_input for p in self.sweep],
            "implied_move": [p.implied_output for p in self.sweep],
        })


def implied_move(balance_shock: float, demand_elasticity: float, supply_elasticity: float) -> float:
    # Price move that clears a net balance shock; elasticities floored at 0.01.
    ed = max(MIN_ELASTICITY, abs(float(demand_elasticity)))
    es = max(MIN_ELASTICITY, float(supply_elasticity))
    return float(balance_shock) / (ed + es)


def linspace(a: float, b: float, n: int) -> np.ndarray:
    if n < 2:
        raise ConfigurationError(f"need at least 2 points, got {n}")
    return np.linspace(a, b, int(n))


def scenario_sweep(inputs: ScenarioInputs, scenario_range: float = 2.0, steps: int = 9) -> List[ScenarioPoint]:
    rng = max(MIN_RANGE, float(scenario_range))
    n = max(MIN_STEPS, int(np.floor(steps)))
    base = inputs.base_balance
    denom = inputs.denominator
    return [ScenarioPoint(float(b), float(b) / denom) for b in linspace(base - rng, base + rng, n)]


def sensitivity_grid(inputs: ScenarioInputs, span: float = 3.0, points: int = 13) -> pd.DataFrame:
    """
    Implied move over independent demand (columns) x supply (rows) shocks,
    holding the inventory swing fixed.
    """
    if span <= 0:
        raise ConfigurationError(f"grid span must be positive, got {span}")
    ds = linspace(-span, span, points)
    ss = linspace(-span, span, points)
    inv = float(inputs.inventory_swing)
    moves = (ds[None, :] - ss[:, None] - inv) / inputs.denominator
    grid = pd.DataFrame(moves, index=pd.Index(ss, name="supply_shock"),
                        columns=pd.Index(ds, name="demand_shock"))
    return grid


def balance_engine(inputs: ScenarioInputs, scenario_range: float = 2.0, steps: int = 9,
                   grid_span: float = 3.0, grid_points: int = 13) -> ScenarioResult:
    base = inputs.base_balance
    return ScenarioResult(
        inputs=inputs,
        base_balance=base,
        implied_move=base / inputs.denominator,
        sweep=scenario_sweep(inputs, scenario_range, steps),
        grid=sensitivity_grid(inputs, grid_span, grid_points),
    )
