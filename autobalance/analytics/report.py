"""
Balance Report Builder
======================

Summarizes an optimization history into a serializable report for the
display and export layer.

Report contents:
- Best parameters and score, iterations run, elapsed time, run status
- Sensitivity ranking (or the reason it could not be computed)
- Score histogram over fixed 10-point bins, plus summary statistics
- Mean win rate per unit type and mean economy metrics
- Improvement over the initial evaluation and per-parameter change
- fANOVA parameter importance computed with Optuna
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
import optuna
import pandas as pd

from ..optimization.models import OptimizationHistory, ParameterBounds, TrialResult
from ..utils.exceptions import InsufficientHistoryError
from .sensitivity import MIN_HISTORY, SensitivityRanking, analyze

logger = logging.getLogger(__name__)

SCORE_RANGE = (0.0, 100.0)


@dataclass
class BalanceReport:
    """Result summary of one optimization run."""
    best_params: Dict[str, float]
    best_score: float
    iterations_run: int
    elapsed_ms: float
    sensitivity_ranking: Optional[SensitivityRanking]
    score_histogram: List[Dict[str, Any]]
    sensitivity_error: Optional[str] = None
    score_summary: Dict[str, float] = field(default_factory=dict)
    win_rate_analysis: Dict[str, float] = field(default_factory=dict)
    economy_analysis: Dict[str, float] = field(default_factory=dict)
    improvement: Dict[str, Optional[float]] = field(default_factory=dict)
    parameter_changes: Dict[str, Optional[float]] = field(default_factory=dict)
    parameter_importance: Dict[str, float] = field(default_factory=dict)
    status: Optional[str] = None
    trials_recorded: int = 0
    failed_trials: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to a JSON-ready dictionary with display-layer keys"""
        return {
            'bestParams': dict(self.best_params),
            'bestScore': self.best_score,
            'iterationsRun': self.iterations_run,
            'elapsedMs': self.elapsed_ms,
            'sensitivityRanking': self.sensitivity_ranking.to_dict() if self.sensitivity_ranking else None,
            'sensitivityError': self.sensitivity_error,
            'scoreHistogram': [dict(b) for b in self.score_histogram],
            'scoreSummary': dict(self.score_summary),
            'winRateAnalysis': dict(self.win_rate_analysis),
            'economyAnalysis': dict(self.economy_analysis),
            'improvement': dict(self.improvement),
            'parameterChanges': dict(self.parameter_changes),
            'parameterImportance': dict(self.parameter_importance),
            'status': self.status,
            'trialsRecorded': self.trials_recorded,
            'failedTrials': self.failed_trials,
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class BalanceReportBuilder:
    """
    Builds BalanceReport instances from optimization histories.

    Args:
        bins: Number of equal-width score bins over [0, 100]
    """

    def __init__(self, bins: int = 10):
        if bins < 1:
            raise ValueError(f"bins must be >= 1, got {bins}")
        self.bins = bins

    def from_engine(self, engine) -> BalanceReport:
        """Build a report from a finished OptimizationEngine."""
        return self.build(
            engine.history,
            bounds=engine.bounds,
            initial_params=engine.initial_params,
            elapsed_ms=engine.elapsed_ms,
            status=engine.state.value,
        )

    def build(self,
              history: Iterable[TrialResult],
              bounds: Optional[Mapping[str, Any]] = None,
              initial_params: Optional[Mapping[str, float]] = None,
              elapsed_ms: Optional[float] = None,
              status: Optional[str] = None) -> BalanceReport:
        """
        Build a report.

        Args:
            history: Trial results in evaluation order (first is the initial evaluation)
            bounds: Search space; restricts sensitivity keys and importance distributions
            initial_params: Starting point (defaults to the first trial's params)
            elapsed_ms: Run duration (defaults to the last trial's timestamp)
            status: Terminal engine state

        Returns:
            BalanceReport
        """
        if not isinstance(history, OptimizationHistory):
            records = OptimizationHistory()
            for result in history:
                records.append(result)
            history = records
        if not history:
            raise ValueError("Cannot build a report from an empty history")

        bounds = ParameterBounds(bounds) if bounds is not None else None
        best = history.best()
        initial_params = dict(initial_params) if initial_params is not None else dict(history[0].params)

        ranking, ranking_error = self._sensitivity(history, bounds)

        report = BalanceReport(
            best_params=dict(best.params),
            best_score=best.balance_score,
            iterations_run=max(r.metadata.iteration_count for r in history),
            elapsed_ms=float(elapsed_ms if elapsed_ms is not None
                             else max(r.metadata.elapsed_ms for r in history)),
            sensitivity_ranking=ranking,
            sensitivity_error=ranking_error,
            score_histogram=self.histogram(history.scores()),
            score_summary=self._score_summary(history),
            win_rate_analysis=self._mean_metrics(r.win_rates for r in history),
            economy_analysis=self._mean_metrics(r.economy_metrics for r in history),
            improvement=self._improvement(history[0].balance_score, best.balance_score),
            parameter_changes=self._parameter_changes(initial_params, best.params),
            parameter_importance=self._calculate_parameter_importance(history, bounds),
            status=status,
            trials_recorded=len(history),
            failed_trials=history.failed_count(),
        )

        logger.info(f"Report built: best_score={report.best_score:.2f}, "
                    f"trials={report.trials_recorded}, failed={report.failed_trials}")
        return report

    def histogram(self, scores: List[float]) -> List[Dict[str, Any]]:
        """Counts per fixed-width score bin; a score of 100 lands in the last bin."""
        counts, edges = np.histogram(np.asarray(scores, dtype=float), bins=self.bins, range=SCORE_RANGE)
        return [
            {'range': f"{edges[i]:g}-{edges[i + 1]:g}", 'count': int(counts[i])}
            for i in range(self.bins)
        ]

    @staticmethod
    def _sensitivity(history: OptimizationHistory, bounds: Optional[ParameterBounds]):
        try:
            ranking = analyze(history, parameter_names=bounds.names if bounds else None)
            return ranking, None
        except InsufficientHistoryError as e:
            logger.info(f"Skipping sensitivity ranking: {e.message}")
            return None, e.message

    @staticmethod
    def _score_summary(history: OptimizationHistory) -> Dict[str, float]:
        frame = history.to_frame()
        scores = frame.loc[~frame['failed'].astype(bool), 'balance_score']
        if scores.empty:
            scores = frame['balance_score']
        return {
            'mean': float(scores.mean()),
            'median': float(scores.median()),
            'std': float(scores.std(ddof=0)),
            'min': float(scores.min()),
            'max': float(scores.max()),
        }

    @staticmethod
    def _mean_metrics(metrics: Iterable[Mapping[str, float]]) -> Dict[str, float]:
        rows = [dict(m) for m in metrics if m]
        if not rows:
            return {}
        means = pd.DataFrame(rows).mean()
        return {str(name): float(value) for name, value in means.items()}

    @staticmethod
    def _improvement(initial: float, final: float) -> Dict[str, Optional[float]]:
        return {
            'initial': initial,
            'final': final,
            'absolute': final - initial,
            'percent': (final - initial) / initial * 100 if initial > 0 else None,
        }

    @staticmethod
    def _parameter_changes(initial: Mapping[str, float], best: Mapping[str, float]) -> Dict[str, Optional[float]]:
        changes: Dict[str, Optional[float]] = {}
        for name, value in best.items():
            start = initial.get(name)
            if start is None or start == 0:
                changes[name] = None
            else:
                changes[name] = (value - start) / abs(start) * 100
        return changes

    def _calculate_parameter_importance(self, history: OptimizationHistory,
                                        bounds: Optional[ParameterBounds]) -> Dict[str, float]:
        """Calculate parameter importance using Optuna's fANOVA evaluator"""
        try:
            usable = [r for r in history if not r.failed]
            if len(usable) < MIN_HISTORY:  # Need minimum trials for importance
                return {}

            distributions = self._distributions(usable, bounds)
            if not distributions:
                return {}

            optuna.logging.set_verbosity(optuna.logging.WARNING)
            study = optuna.create_study(direction="maximize")
            study.add_trials([
                optuna.trial.create_trial(
                    params={name: r.params[name] for name in distributions},
                    distributions=distributions,
                    value=r.balance_score,
                )
                for r in usable
                if all(name in r.params for name in distributions)
            ])

            importance = optuna.importance.get_param_importances(
                study,
                evaluator=optuna.importance.FanovaImportanceEvaluator(seed=0)
            )

            return {param: float(imp) for param, imp in importance.items()}

        except Exception as e:
            logger.warning(f"Failed to calculate parameter importance: {e}")
            return {}

    @staticmethod
    def _distributions(usable: List[TrialResult], bounds: Optional[ParameterBounds]):
        """Float distributions for every parameter with a non-degenerate range."""
        if bounds is not None:
            ranges = {name: bounds[name] for name in bounds}
        else:
            frame = pd.DataFrame([r.params for r in usable])
            ranges = {name: (float(frame[name].min()), float(frame[name].max())) for name in frame.columns}

        return {
            name: optuna.distributions.FloatDistribution(low, high)
            for name, (low, high) in ranges.items()
            if high > low
        }
