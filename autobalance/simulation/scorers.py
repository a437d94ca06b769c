"""
Balance Scoring System
======================

Canonical balance objective the optimizer is tuned against.

This module turns simulated per-unit win rates and economy metrics into a
single 0-100 balance score. The transform is pure and deterministic; only
the upstream simulation that produces its inputs is stochastic.

Components (default weights):
1. Win Rate Parity (50%) - 1 - 10 * mean((win_rate - 0.5)^2)
2. Economy Balance (30%) - weighted normalized economy sub-metrics
3. Counter Balance (10%) - penalizes strong counter-relationship effects
4. Bond Balance (10%) - penalizes strong bond (synergy) effects

Economy sub-metrics:
- goldEfficiency (30%), itemUtilization (30%), resourceBalance (20%, as a
  penalty: 1 - value), unitEconomy (10%), marketDynamics (10%)
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from ..config.optimizer_config import BalanceScoreWeights, EconomyWeights

logger = logging.getLogger(__name__)

# Neutral score for a system with no measured effects
NEUTRAL_EFFECT_BALANCE = 0.5

COUNTER_SEVERITY = 2.0
BOND_SEVERITY = 3.0


@dataclass
class ComponentResult:
    """Container for one balance component"""
    raw_value: float
    normalized_value: float
    weight: float
    contribution: float


class BalanceScorer:
    """
    Four-component balance score.

    Handles empty inputs gracefully (neutral effect balance, zero economy)
    and exposes the per-component breakdown for reporting.
    """

    def __init__(self,
                 weights: Optional[BalanceScoreWeights] = None,
                 economy_weights: Optional[EconomyWeights] = None):
        """
        Initialize balance scorer.

        Args:
            weights: Component weights (default 0.5/0.3/0.1/0.1)
            economy_weights: Economy sub-metric weights (default 0.3/0.3/0.2/0.1/0.1)
        """
        self.weights = weights or BalanceScoreWeights()
        self.economy_weights = economy_weights or EconomyWeights()

        logger.debug(f"BalanceScorer initialized with weights: "
                     f"WinRate({self.weights.win_rate:.2f}) "
                     f"Economy({self.weights.economy:.2f}) "
                     f"Counter({self.weights.counter:.2f}) "
                     f"Bond({self.weights.bond:.2f})")

    @staticmethod
    def win_rate_deviation(win_rates: Mapping[str, float]) -> float:
        """Mean squared distance of each unit's win rate from 0.5."""
        if not win_rates:
            return 0.0
        values = np.asarray(list(win_rates.values()), dtype=float)
        return float(np.mean((values - 0.5) ** 2))

    def economy_balance(self, economy_metrics: Mapping[str, float]) -> float:
        """Weighted sum of economy sub-metrics, each clipped to [0, 1]."""
        w = self.economy_weights

        def metric(name: str) -> float:
            return self._normalize(economy_metrics.get(name, 0.0))

        return (
            w.gold_efficiency * metric('goldEfficiency') +
            w.item_utilization * metric('itemUtilization') +
            w.resource_balance * (1.0 - metric('resourceBalance')) +
            w.unit_economy * metric('unitEconomy') +
            w.market_dynamics * metric('marketDynamics')
        )

    @staticmethod
    def effect_balance(effects: Optional[Mapping[str, float]], severity: float) -> float:
        """1 - severity * RMS(effect); neutral 0.5 when there are no effects."""
        if not effects:
            return NEUTRAL_EFFECT_BALANCE
        values = np.asarray(list(effects.values()), dtype=float)
        return 1.0 - math.sqrt(float(np.mean(values ** 2))) * severity

    def calculate(self,
                  win_rates: Mapping[str, float],
                  economy_metrics: Mapping[str, float],
                  counter_effects: Optional[Mapping[str, float]] = None,
                  bond_effects: Optional[Mapping[str, float]] = None) -> Tuple[float, Dict[str, ComponentResult]]:
        """
        Calculate the balance score.

        Args:
            win_rates: Unit type -> win rate in [0, 1]
            economy_metrics: Economy metric name -> value
            counter_effects: Unit type -> win rate shift from counters
            bond_effects: Unit type -> win rate shift from bonds

        Returns:
            Tuple of (score in [0, 100], per-component results)
        """
        deviation = self.win_rate_deviation(win_rates)
        components = {
            'win_rate': self._component(1.0 - deviation * 10.0, deviation, self.weights.win_rate),
            'economy': self._component(self.economy_balance(economy_metrics), None, self.weights.economy),
            'counter': self._component(self.effect_balance(counter_effects, COUNTER_SEVERITY), None,
                                       self.weights.counter),
            'bond': self._component(self.effect_balance(bond_effects, BOND_SEVERITY), None,
                                    self.weights.bond),
        }

        raw_score = 100.0 * sum(c.contribution for c in components.values())
        score = max(0.0, min(100.0, raw_score))

        if logger.isEnabledFor(logging.DEBUG):
            self._log_score_breakdown(score, components)

        return score, components

    def score(self, win_rates: Mapping[str, float], economy_metrics: Mapping[str, float],
              counter_effects: Optional[Mapping[str, float]] = None,
              bond_effects: Optional[Mapping[str, float]] = None) -> float:
        return self.calculate(win_rates, economy_metrics, counter_effects, bond_effects)[0]

    @staticmethod
    def _component(value: float, raw: Optional[float], weight: float) -> ComponentResult:
        return ComponentResult(
            raw_value=value if raw is None else raw,
            normalized_value=value,
            weight=weight,
            contribution=value * weight,
        )

    @staticmethod
    def _normalize(value: float, min_val: float = 0.0, max_val: float = 1.0) -> float:
        """Clip a metric into [min_val, max_val] and rescale to [0, 1]."""
        try:
            value = float(value)
        except (TypeError, ValueError):
            return 0.0
        if math.isnan(value):
            return 0.0
        clipped = max(min_val, min(max_val, value))
        return (clipped - min_val) / (max_val - min_val)

    def _log_score_breakdown(self, score: float, components: Dict[str, ComponentResult]):
        logger.debug(f"Balance score: {score:.2f}")
        for name, component in components.items():
            logger.debug(f"  {name}: value={component.normalized_value:.4f} "
                         f"weight={component.weight:.2f} contribution={component.contribution:.4f}")
