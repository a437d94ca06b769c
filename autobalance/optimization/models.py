"""
Optimization Data Model
=======================

Value types shared by the sampler, the engine and the analytics layer:

- ParameterBounds: validated, read-only map of name -> (min, max)
- TrialMetadata / TrialResult: one immutable scored evaluation
- OptimizationHistory: append-only record of a run, exportable to pandas
- EngineState: lifecycle of a single optimization run
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pandas as pd

from ..utils.exceptions import InvalidBoundsError

ParameterSet = Dict[str, float]


class ParameterBounds(Mapping):
    """Inclusive numeric ranges defining the search space.

    Built once per run and never mutated. Construction rejects an empty map,
    non-numeric or non-finite limits and inverted ranges.
    """

    def __init__(self, ranges: Mapping[str, Any]):
        if isinstance(ranges, ParameterBounds):
            self._ranges = ranges._ranges
            return
        if not ranges:
            raise InvalidBoundsError("bounds map is empty")

        validated: Dict[str, Tuple[float, float]] = {}
        for name, limits in ranges.items():
            try:
                low, high = limits
                low, high = float(low), float(high)
            except (TypeError, ValueError):
                raise InvalidBoundsError(f"expected a (min, max) pair, got {limits!r}", parameter=name)
            if not (math.isfinite(low) and math.isfinite(high)):
                raise InvalidBoundsError("limits must be finite", parameter=name)
            if low > high:
                raise InvalidBoundsError(f"min {low} > max {high}", parameter=name)
            validated[str(name)] = (low, high)

        self._ranges = MappingProxyType(validated)

    def __getitem__(self, name: str) -> Tuple[float, float]:
        return self._ranges[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._ranges)

    def __len__(self) -> int:
        return len(self._ranges)

    def __repr__(self) -> str:
        return f"ParameterBounds({dict(self._ranges)!r})"

    @property
    def names(self) -> List[str]:
        return list(self._ranges)

    def span(self, name: str) -> float:
        low, high = self._ranges[name]
        return high - low

    def clamp(self, name: str, value: float) -> float:
        low, high = self._ranges[name]
        return min(high, max(low, value))

    def clamp_params(self, params: Mapping[str, float]) -> ParameterSet:
        """Restrict to bound names, fill gaps with midpoints and clamp."""
        midpoint = self.midpoint()
        return {
            name: self.clamp(name, float(params.get(name, midpoint[name])))
            for name in self._ranges
        }

    def midpoint(self) -> ParameterSet:
        return {name: (low + high) / 2 for name, (low, high) in self._ranges.items()}

    def contains(self, params: Mapping[str, float]) -> bool:
        return all(
            name in params and low <= params[name] <= high
            for name, (low, high) in self._ranges.items()
        )

    def normalized_distance(self, first: Mapping[str, float], second: Mapping[str, float]) -> float:
        """Mean per-dimension absolute difference as a fraction of each range."""
        total = 0.0
        for name in self._ranges:
            span = self.span(name)
            if span > 0:
                total += abs(first[name] - second[name]) / span
        return total / len(self._ranges)

    def to_dict(self) -> Dict[str, List[float]]:
        return {name: [low, high] for name, (low, high) in self._ranges.items()}


@dataclass(frozen=True)
class TrialMetadata:
    trial_index: int
    iteration_index: int
    iteration_count: int
    elapsed_ms: float
    random_seed: Optional[int] = None
    strategy: str = 'initial'
    failed: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class TrialResult:
    """One scored evaluation of a candidate parameter set."""

    params: ParameterSet
    balance_score: float
    metadata: TrialMetadata
    win_rates: Dict[str, float] = field(default_factory=dict)
    economy_metrics: Dict[str, float] = field(default_factory=dict)
    confidence_interval: Optional[Tuple[float, float]] = None

    @property
    def failed(self) -> bool:
        return self.metadata.failed

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'params': dict(self.params),
            'balanceScore': self.balance_score,
            'winRates': dict(self.win_rates),
            'economyMetrics': dict(self.economy_metrics),
            'metadata': asdict(self.metadata),
        }
        if self.confidence_interval is not None:
            lower, upper = self.confidence_interval
            result['confidenceInterval'] = {'lower': lower, 'upper': upper}
        return result


class EngineState(Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    CONVERGED = 'converged'
    EXHAUSTED = 'exhausted'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return self in (EngineState.CONVERGED, EngineState.EXHAUSTED, EngineState.CANCELLED)


class OptimizationHistory:
    """Append-only, evaluation-ordered sequence of TrialResult."""

    def __init__(self) -> None:
        self._results: List[TrialResult] = []

    def append(self, result: TrialResult) -> None:
        self._results.append(result)

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[TrialResult]:
        return iter(self._results)

    def __getitem__(self, index):
        return self._results[index]

    def __bool__(self) -> bool:
        return bool(self._results)

    def scores(self) -> List[float]:
        return [r.balance_score for r in self._results]

    def best(self) -> Optional[TrialResult]:
        """Highest score; the earliest result wins ties."""
        best = None
        for result in self._results:
            if best is None or result.balance_score > best.balance_score:
                best = result
        return best

    def top_fraction(self, fraction: float) -> List[TrialResult]:
        """Best ``fraction`` of results by score (at least one, stable on ties)."""
        if not self._results:
            return []
        count = max(1, int(math.ceil(len(self._results) * fraction)))
        ranked = sorted(self._results, key=lambda r: r.balance_score, reverse=True)
        return ranked[:count]

    def failed_count(self) -> int:
        return sum(1 for r in self._results if r.failed)

    def to_frame(self) -> pd.DataFrame:
        """One row per trial: parameter columns, score and bookkeeping columns."""
        rows = []
        for result in self._results:
            row: Dict[str, Any] = dict(result.params)
            row['balance_score'] = result.balance_score
            row['iteration_count'] = result.metadata.iteration_count
            row['trial_index'] = result.metadata.trial_index
            row['strategy'] = result.metadata.strategy
            row['failed'] = result.metadata.failed
            rows.append(row)
        return pd.DataFrame(rows)
