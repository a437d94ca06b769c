"""
Balance Objective Factory
=========================

Adapts an arbitrary scoring collaborator into the single async callable the
optimization engine evaluates.

The engine never talks to a simulator directly. It hands a parameter set to
an objective and gets back an EvaluationOutcome, or an
EvaluationFailureError when the collaborator misbehaves.

Key Features:
- Accepts sync or async collaborators
- Isolates engine state: the collaborator receives a copy of the parameters
- Normalizes several result shapes (number, mapping, object with attributes)
- Scores raw win rates / economy metrics with the canonical BalanceScorer
- Rejects non-numeric, NaN/inf and out-of-range scores
"""

import inspect
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from ..simulation.scorers import BalanceScorer
from ..utils.exceptions import EvaluationFailureError
from .models import ParameterSet

logger = logging.getLogger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 100.0

_SCORE_KEYS = ('score', 'balanceScore', 'balance_score')
_WIN_RATE_KEYS = ('winRates', 'win_rates')
_ECONOMY_KEYS = ('economyMetrics', 'economy_metrics')
_COUNTER_KEYS = ('counterEffects', 'counter_effects')
_BOND_KEYS = ('bondEffects', 'bond_effects')


@dataclass
class EvaluationOutcome:
    """Normalized result of one collaborator call."""
    score: float
    win_rates: Dict[str, float] = field(default_factory=dict)
    economy_metrics: Dict[str, float] = field(default_factory=dict)


Objective = Callable[[ParameterSet], Awaitable[EvaluationOutcome]]


def _first_present(source: Any, keys, is_mapping: bool) -> Any:
    for key in keys:
        if is_mapping:
            if key in source:
                return source[key]
        elif hasattr(source, key):
            return getattr(source, key)
    return None


def _as_float_map(value: Any, label: str, params: ParameterSet) -> Dict[str, float]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise EvaluationFailureError(f"{label} must be a mapping, got {type(value).__name__}", params)
    try:
        return {str(k): float(v) for k, v in value.items()}
    except (TypeError, ValueError):
        raise EvaluationFailureError(f"{label} contains non-numeric values", params)


class ObjectiveFactory:
    """
    Factory for engine objectives.

    The factory holds the scorer used when a collaborator reports raw
    win rates and economy metrics without computing a score itself.
    """

    def __init__(self, scorer: Optional[BalanceScorer] = None):
        self.scorer = scorer or BalanceScorer()

    def create_objective(self, evaluate: Callable[[ParameterSet], Any]) -> Objective:
        """
        Wrap a scoring collaborator.

        Args:
            evaluate: Callable taking a parameter dict and returning a score,
                a result mapping or a result object (optionally awaitable)

        Returns:
            Async objective returning EvaluationOutcome
        """
        if not callable(evaluate):
            raise TypeError(f"evaluate must be callable, got {type(evaluate).__name__}")

        async def objective(params: ParameterSet) -> EvaluationOutcome:
            snapshot = dict(params)
            try:
                raw = evaluate(snapshot)
                if inspect.isawaitable(raw):
                    raw = await raw
            except EvaluationFailureError:
                raise
            except Exception as e:
                logger.debug(f"Scoring collaborator raised {type(e).__name__}: {e}")
                raise EvaluationFailureError(f"{type(e).__name__}: {e}", params) from e

            return self.normalize(raw, params)

        return objective

    def normalize(self, raw: Any, params: ParameterSet) -> EvaluationOutcome:
        """
        Convert a collaborator result into an EvaluationOutcome.

        Raises:
            EvaluationFailureError: For unusable shapes or scores
        """
        if isinstance(raw, bool):
            raise EvaluationFailureError("boolean is not a valid score", params)

        if isinstance(raw, (int, float)):
            return EvaluationOutcome(score=self._check_score(raw, params))

        if raw is None or isinstance(raw, (str, bytes)):
            raise EvaluationFailureError(f"unsupported result type {type(raw).__name__}", params)

        is_mapping = isinstance(raw, Mapping)
        score = _first_present(raw, _SCORE_KEYS, is_mapping)
        win_rates = _as_float_map(_first_present(raw, _WIN_RATE_KEYS, is_mapping), 'win rates', params)
        economy = _as_float_map(_first_present(raw, _ECONOMY_KEYS, is_mapping), 'economy metrics', params)

        if score is None:
            if not win_rates:
                raise EvaluationFailureError("result carries neither a score nor win rates", params)
            counter = _as_float_map(_first_present(raw, _COUNTER_KEYS, is_mapping), 'counter effects', params)
            bonds = _as_float_map(_first_present(raw, _BOND_KEYS, is_mapping), 'bond effects', params)
            score = self.scorer.score(win_rates, economy, counter or None, bonds or None)

        return EvaluationOutcome(
            score=self._check_score(score, params),
            win_rates=win_rates,
            economy_metrics=economy,
        )

    @staticmethod
    def _check_score(value: Any, params: ParameterSet) -> float:
        if isinstance(value, bool):
            raise EvaluationFailureError("boolean is not a valid score", params)
        try:
            score = float(value)
        except (TypeError, ValueError):
            raise EvaluationFailureError(f"non-numeric score {value!r}", params)

        if not math.isfinite(score):
            raise EvaluationFailureError(f"non-finite score {score}", params)
        if not SCORE_MIN <= score <= SCORE_MAX:
            raise EvaluationFailureError(
                f"score {score} outside [{SCORE_MIN:g}, {SCORE_MAX:g}]", params)
        return score
