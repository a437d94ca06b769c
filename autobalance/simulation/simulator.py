"""
Balance Simulator
=================

Stand-in scoring collaborator: a parametrised formula plus seeded noise that
maps combat, economy, counter and bond coefficients to per-unit win rates,
economy metrics and a balance score.

The optimization engine never requires it; it exists so the engine, the CLI
and the analytics layer can be exercised end to end without a game server.

Key Features:
- Twelve-coefficient default parameter space
- Default counter cycle and optional bond (synergy) simulation
- Batch testing over Sobol / Latin hypercube / random samples
- Monte Carlo robustness runs around a base parameter set
- One- and two-parameter sensitivity sweeps
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..optimization.models import ParameterBounds, ParameterSet
from ..optimization.sampling import sample
from ..utils.logger import ProgressTracker
from ..utils.random_source import SeededRandom
from .scorers import BalanceScorer, ComponentResult

logger = logging.getLogger(__name__)

DEFAULT_PARAMETER_SPACE: Dict[str, Tuple[float, float]] = {
    # Combat
    'physicalDefense': (0.01, 0.05),
    'magicResistance': (0.01, 0.04),
    'criticalRate': (0.1, 0.2),
    'healingEfficiency': (0.8, 1.2),

    # Economy
    'goldScaling': (0.9, 1.5),
    'interestRate': (0.05, 0.15),
    'unitCost': (2.0, 5.0),
    'sellingReturn': (0.5, 0.8),

    # Counter relationships
    'counterMultiplier': (1.2, 2.0),
    'comboDecayRate': (0.05, 0.3),

    # Bonds and skills
    'bondBonus': (0.1, 0.3),
    'elementalReactionMultiplier': (1.1, 1.8),
}

UNIT_TYPES = ('Warrior', 'Mage', 'Archer', 'Knight', 'Priest', 'Assassin', 'Merchant')

# Attacker -> units it counters
DEFAULT_COUNTERS: Dict[str, Tuple[str, ...]] = {
    'Warrior': ('Mage',),
    'Mage': ('Archer',),
    'Archer': ('Warrior',),
    'Knight': ('Assassin',),
    'Assassin': ('Priest',),
    'Priest': ('Merchant',),
    'Merchant': ('Knight',),
}

# (name, members, boost multiplier on bondBonus)
BOND_TABLE: Tuple[Tuple[str, Tuple[str, ...], float], ...] = (
    ('Combo', ('Assassin', 'Archer'), 1.2),
    ('Bulwark', ('Warrior', 'Knight'), 1.1),
    ('Blessing', ('Priest', 'Mage'), 1.3),
    ('Sanctuary', ('Knight', 'Priest'), 1.0),
    ('Pierce', ('Archer', 'Warrior'), 1.2),
)

# Fallbacks for coefficients missing from a parameter set
_PARAM_DEFAULTS = {
    'goldScaling': 1.0,
    'interestRate': 0.1,
    'unitCost': 3.0,
    'sellingReturn': 0.7,
    'counterMultiplier': 1.5,
    'bondBonus': 0.15,
}

WIN_RATE_FLOOR = 0.1
WIN_RATE_CEILING = 0.9
NOISE_AMPLITUDE = 0.1


@dataclass
class SimulationOutcome:
    """One simulated evaluation of a parameter set."""
    params: ParameterSet
    balance_score: float
    win_rates: Dict[str, float]
    economy_metrics: Dict[str, float]
    counter_effects: Dict[str, float] = field(default_factory=dict)
    bond_effects: Dict[str, float] = field(default_factory=dict)
    components: Dict[str, ComponentResult] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'params': dict(self.params),
            'balanceScore': self.balance_score,
            'winRates': dict(self.win_rates),
            'economyMetrics': dict(self.economy_metrics),
            'counterEffects': dict(self.counter_effects),
            'bondEffects': dict(self.bond_effects),
        }


class BalanceSimulator:
    """
    Formula-based balance simulator.

    Args:
        seed: Seed for the simulation noise (system entropy if None)
        parameter_space: Parameter name -> (min, max); defaults to
            DEFAULT_PARAMETER_SPACE
        scorer: Balance scorer (default weights if None)
        enable_bonds: Simulate bond effects in addition to counters
        counters: Attacker -> countered units (DEFAULT_COUNTERS if None)
    """

    def __init__(self,
                 seed: Optional[int] = None,
                 parameter_space: Optional[Mapping[str, Tuple[float, float]]] = None,
                 scorer: Optional[BalanceScorer] = None,
                 enable_bonds: bool = False,
                 counters: Optional[Mapping[str, Sequence[str]]] = None):
        self.rng = SeededRandom(seed)
        self.parameter_space = ParameterBounds(parameter_space or DEFAULT_PARAMETER_SPACE)
        self.scorer = scorer or BalanceScorer()
        self.enable_bonds = enable_bonds
        self.counters = {unit: tuple(targets) for unit, targets in (counters or DEFAULT_COUNTERS).items()}

        logger.debug(f"BalanceSimulator initialized: {len(self.parameter_space)} parameters, "
                     f"bonds={'on' if enable_bonds else 'off'}, seed={self.rng.seed}")

    @property
    def bounds(self) -> ParameterBounds:
        return self.parameter_space

    def _value(self, params: Mapping[str, float], name: str) -> float:
        if name in params:
            return float(params[name])
        if name in _PARAM_DEFAULTS:
            return _PARAM_DEFAULTS[name]
        if name in self.parameter_space:
            low, high = self.parameter_space[name]
            return (low + high) / 2
        return 0.0

    def counter_effects(self, params: Mapping[str, float]) -> Dict[str, float]:
        """Win rate shift per unit: attackers gain, countered units lose."""
        multiplier = self._value(params, 'counterMultiplier')
        effects: Dict[str, float] = {}
        for unit, targets in self.counters.items():
            effects.setdefault(unit, 0.0)
            for target in targets:
                effects[unit] += (multiplier - 1) * 0.1
                effects[target] = effects.get(target, 0.0) - (multiplier - 1) * 0.05
        return effects

    def bond_effects(self, params: Mapping[str, float]) -> Dict[str, float]:
        """Win rate boost per unit from the first two or three bonds of the table."""
        if not self.enable_bonds:
            return {}
        bonus = self._value(params, 'bondBonus')
        active = BOND_TABLE[:2 + self.rng.integers(0, 2)]

        effects: Dict[str, float] = {}
        for _, members, multiplier in active:
            for unit in members:
                effects[unit] = effects.get(unit, 0.0) + bonus * multiplier * 0.05
        return effects

    def win_rates(self, params: Mapping[str, float], counter_effects: Mapping[str, float],
                  bond_effects: Mapping[str, float]) -> Dict[str, float]:
        rates = {}
        for unit in UNIT_TYPES:
            rate = 0.5
            if unit == 'Warrior':
                rate += self._value(params, 'physicalDefense') * 2
            elif unit == 'Mage':
                rate -= self._value(params, 'magicResistance') * 3
            elif unit == 'Archer':
                rate += self._value(params, 'criticalRate') * 1.5
            elif unit == 'Priest':
                rate += self._value(params, 'healingEfficiency') * 0.2 - 0.1

            rate += counter_effects.get(unit, 0.0)
            rate += bond_effects.get(unit, 0.0)
            rate += (self.rng.next() - 0.5) * NOISE_AMPLITUDE

            rates[unit] = max(WIN_RATE_FLOOR, min(WIN_RATE_CEILING, rate))
        return rates

    def economy_metrics(self, params: Mapping[str, float], win_rates: Mapping[str, float]) -> Dict[str, float]:
        interest = self._value(params, 'interestRate')
        metrics = {
            'goldEfficiency': 0.7 + self._value(params, 'goldScaling') * 0.2,
            'itemUtilization': 0.6 + interest * 1.5,
            'resourceBalance': abs(0.5 - interest),
            'unitEconomy': 0.5 + self._value(params, 'unitCost') * 0.05,
            'marketDynamics': 0.7 + self._value(params, 'sellingReturn') * 0.2,
        }
        if 'bondBonus' in params:
            metrics['synergisticValue'] = 0.6 + float(params['bondBonus']) * 1.2
        metrics['victoryDividend'] = float(np.mean(list(win_rates.values()))) * 1.5
        return metrics

    def run_test(self, params: Mapping[str, float]) -> SimulationOutcome:
        """Simulate one parameter set."""
        params = {name: float(value) for name, value in params.items()}
        bonds = self.bond_effects(params)
        counters = self.counter_effects(params)
        rates = self.win_rates(params, counters, bonds)
        economy = self.economy_metrics(params, rates)

        score, components = self.scorer.calculate(rates, economy, counters, bonds)
        return SimulationOutcome(
            params=params,
            balance_score=score,
            win_rates=rates,
            economy_metrics=economy,
            counter_effects=counters,
            bond_effects=bonds,
            components=components,
        )

    async def evaluate(self, params: Mapping[str, float]) -> SimulationOutcome:
        """Async scoring collaborator entry point for the optimization engine."""
        return self.run_test(params)

    async def batch_test(self, scenarios: int = 100, sampling_method: str = 'sobol') -> List[SimulationOutcome]:
        """
        Evaluate ``scenarios`` points spread over the parameter space.

        Args:
            scenarios: Number of parameter sets
            sampling_method: 'sobol', 'latin-hypercube' (or 'latin') or 'random'

        Returns:
            One SimulationOutcome per sampled point, in sample order
        """
        param_sets = sample(self.parameter_space, scenarios, sampling_method, self.rng)
        logger.info(f"Batch testing {scenarios} parameter sets ({sampling_method} sampling)")
        return await self._run_all(param_sets, "Batch test")

    async def monte_carlo(self, base_params: Mapping[str, float], iterations: int = 100,
                          variation: float = 0.1) -> List[SimulationOutcome]:
        """
        Evaluate random perturbations of ``base_params``.

        Each value moves by up to +/- ``variation`` of itself and is clamped
        into the parameter space when the name is known.
        """
        param_sets = []
        for _ in range(iterations):
            perturbed = {}
            for name, value in base_params.items():
                shifted = value + (self.rng.next() * 2 - 1) * value * variation
                if name in self.parameter_space:
                    shifted = self.parameter_space.clamp(name, shifted)
                perturbed[name] = shifted
            param_sets.append(perturbed)
        return await self._run_all(param_sets, "Monte Carlo")

    async def sensitivity_grid(self, base_params: Mapping[str, float],
                               parameters: Optional[Sequence[str]] = None,
                               steps: int = 10) -> Dict[str, Any]:
        """
        Sweep one or two parameters across their full range.

        Args:
            base_params: Values held fixed for the other parameters
            parameters: Names to sweep (first two used; all names if None)
            steps: Intervals per axis (steps + 1 points)

        Returns:
            Dictionary with ``parameters``, ``min``, ``max`` and either
            ``values`` (one parameter) or ``grid``/``x_axis``/``y_axis`` (two)
        """
        names = list(parameters or self.parameter_space.names)[:2]
        unknown = [name for name in names if name not in self.parameter_space]
        if unknown:
            raise ValueError(f"Unknown parameters for sensitivity grid: {unknown}")
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")

        data: Dict[str, Any] = {'parameters': names, 'values': [], 'min': 100.0, 'max': 0.0}

        def axis(name: str) -> List[float]:
            low, high = self.parameter_space[name]
            return [low + i * (high - low) / steps for i in range(steps + 1)]

        def track(score: float) -> None:
            data['min'] = min(data['min'], score)
            data['max'] = max(data['max'], score)

        if len(names) == 1:
            name = names[0]
            for value in axis(name):
                outcome = await self.evaluate({**base_params, name: value})
                data['values'].append({name: value, 'balanceScore': outcome.balance_score})
                track(outcome.balance_score)
        else:
            first, second = names
            x_axis, y_axis = axis(first), axis(second)
            grid = []
            for x in x_axis:
                row = []
                for y in y_axis:
                    outcome = await self.evaluate({**base_params, first: x, second: y})
                    row.append(outcome.balance_score)
                    track(outcome.balance_score)
                grid.append(row)
            data.update(grid=grid, x_axis=x_axis, y_axis=y_axis)

        return data

    async def _run_all(self, param_sets: List[ParameterSet], name: str) -> List[SimulationOutcome]:
        progress = ProgressTracker(len(param_sets), name=name, logger=logger)
        results = []
        for params in param_sets:
            results.append(await self.evaluate(params))
            progress.update()
        progress.finish()
        return results
