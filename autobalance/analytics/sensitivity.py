"""
Parameter Sensitivity Analysis
==============================

Ranks parameters by how strongly score changes follow their changes across
consecutive trials of an optimization history.

For each parameter and each consecutive pair of trials where the parameter
moved by more than ``epsilon``, the ratio ``delta_score / delta_param`` is
taken; the parameter's influence is the mean absolute ratio. Parameters that
never moved get influence 0.

Failed trials carry a sentinel score and are skipped before pairing.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ..optimization.models import TrialResult
from ..utils.exceptions import InsufficientHistoryError

logger = logging.getLogger(__name__)

MIN_HISTORY = 10
DEFAULT_EPSILON = 1e-6
METHOD = 'consecutive-difference'

_SCORE_COLUMN = '__balance_score__'


@dataclass
class SensitivityRanking:
    """Influence per parameter, plus names ordered by descending influence."""
    influence: Dict[str, float]
    ranked: List[str] = field(default_factory=list)
    sample_size: int = 0
    method: str = METHOD

    def to_dict(self) -> Dict[str, Any]:
        return {
            'influence': dict(self.influence),
            'ranked': list(self.ranked),
            'sampleSize': self.sample_size,
            'method': self.method,
        }


def analyze(history: Iterable[TrialResult],
            parameter_names: Optional[Sequence[str]] = None,
            min_history: int = MIN_HISTORY,
            epsilon: float = DEFAULT_EPSILON) -> SensitivityRanking:
    """
    Rank parameters by score sensitivity.

    Args:
        history: Trial results in evaluation order
        parameter_names: Names to rank (defaults to every parameter seen)
        min_history: Minimum number of usable trials
        epsilon: Parameter changes at or below this are ignored

    Returns:
        SensitivityRanking keyed exactly by the parameter names

    Raises:
        InsufficientHistoryError: If fewer than ``min_history`` usable trials
    """
    usable = [result for result in history if not result.failed]
    if len(usable) < min_history:
        raise InsufficientHistoryError(required=min_history, available=len(usable))

    if parameter_names is None:
        names: List[str] = []
        for result in usable:
            names.extend(name for name in result.params if name not in names)
    else:
        names = list(parameter_names)

    frame = pd.DataFrame([{**result.params, _SCORE_COLUMN: result.balance_score} for result in usable])
    deltas = frame.diff().iloc[1:]
    score_deltas = deltas[_SCORE_COLUMN]

    influence: Dict[str, float] = {}
    for name in names:
        if name not in deltas.columns:
            influence[name] = 0.0
            continue

        param_deltas = deltas[name]
        moved = param_deltas.abs() > epsilon
        if not moved.any():
            influence[name] = 0.0
            continue

        ratios = (score_deltas[moved] / param_deltas[moved]).abs()
        influence[name] = float(ratios.mean())

    ranked = sorted(names, key=lambda n: (-influence[n], n))

    logger.debug(f"Sensitivity over {len(usable)} trials: top parameters {ranked[:3]}")
    return SensitivityRanking(influence=influence, ranked=ranked, sample_size=len(usable))
