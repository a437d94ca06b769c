"""
Balance Optimization Engine
===========================

Main orchestrator for searching game-tuning coefficients that maximize the
balance score reported by a scoring collaborator.

This module provides the OptimizationEngine class that owns one optimization
run at a time: it validates the search space, drives the search loop,
tracks history and the incumbent best, detects convergence and honors
cooperative cancellation.

Key Features:
- Sequential search alternating uniform exploration and finite-difference
  gradient steps from the incumbent (adaptive step size)
- Evolutionary batch search with concurrent evaluation via asyncio.gather
- Convergence detection over the last three trial boundaries
- Cooperative cancellation through stop()
- Per-trial failure recovery with a sentinel worst score
- Reproducible runs from a single integer seed
- Standardized result dictionaries from the synchronous run() entry point

Lifecycle: IDLE -> RUNNING -> {CONVERGED, EXHAUSTED, CANCELLED}
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..config.optimizer_config import OptimizationConfig
from ..simulation.scorers import BalanceScorer
from ..utils.error_handling import ErrorResultFactory
from ..utils.exceptions import AlreadyRunningError, EvaluationFailureError
from ..utils.logger import ProgressTracker
from ..utils.random_source import SeededRandom
from .evolution import EvolutionaryGenerator, random_point
from .models import (
    EngineState,
    OptimizationHistory,
    ParameterBounds,
    ParameterSet,
    TrialMetadata,
    TrialResult,
)
from .objective import EvaluationOutcome, Objective, ObjectiveFactory

logger = logging.getLogger(__name__)

# Trial boundaries inspected by the convergence check
CONVERGENCE_WINDOW = 3

ProgressCallback = Callable[[float, float], Any]
Evaluated = Tuple[ParameterSet, str, Union[EvaluationOutcome, EvaluationFailureError]]


class OptimizationEngine:
    """
    Black-box optimizer for balance parameters.

    One instance runs one optimization at a time; concurrent runs need
    separate instances. History and the incumbent stay readable after the
    run ends, until the next optimize() call resets them.
    """

    def __init__(self, config: Optional[OptimizationConfig] = None,
                 objective_factory: Optional[ObjectiveFactory] = None):
        """
        Initialize the optimization engine.

        Args:
            config: Optimization configuration (uses default if None)
            objective_factory: Adapter for scoring collaborators (built from
                the configured score weights if None)
        """
        self.config = config or OptimizationConfig()
        self.config.validate()

        self.objective_factory = objective_factory or ObjectiveFactory(
            BalanceScorer(self.config.score_weights, self.config.economy_weights))

        # Runtime state
        self._state = EngineState.IDLE
        self._history = OptimizationHistory()
        self._best: Optional[TrialResult] = None
        self._bounds: Optional[ParameterBounds] = None
        self._initial_params: Optional[ParameterSet] = None
        self._rng: Optional[SeededRandom] = None
        self._stop_requested = False
        self._terminated_early = False
        self._start_time: Optional[float] = None
        self._elapsed_ms = 0.0
        self._evaluation_count = 0
        self._iteration_count = 0
        self._trials_completed = 0
        self._step_scale = 1.0
        self._snapshots: List[Tuple[float, ParameterSet]] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def history(self) -> OptimizationHistory:
        return self._history

    @property
    def best(self) -> Optional[TrialResult]:
        return self._best

    @property
    def bounds(self) -> Optional[ParameterBounds]:
        return self._bounds

    @property
    def initial_params(self) -> Optional[ParameterSet]:
        return self._initial_params

    @property
    def terminated_early(self) -> bool:
        return self._terminated_early

    @property
    def evaluation_count(self) -> int:
        """Collaborator calls made by the last run, gradient probes included."""
        return self._evaluation_count

    @property
    def random_seed(self) -> Optional[int]:
        return self._rng.seed if self._rng else None

    @property
    def elapsed_ms(self) -> float:
        if self._state is EngineState.RUNNING and self._start_time is not None:
            return (time.time() - self._start_time) * 1000.0
        return self._elapsed_ms

    def stop(self) -> None:
        """Request cooperative cancellation of the current run."""
        if self._state is not EngineState.RUNNING:
            logger.debug(f"stop() ignored in state {self._state.value}")
            return
        logger.info("Stop requested, finishing in-flight evaluations")
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def optimize(self,
                       initial_params: Optional[Mapping[str, float]],
                       bounds: Mapping[str, Any],
                       evaluate: Callable[[ParameterSet], Any],
                       on_progress: Optional[ProgressCallback] = None) -> TrialResult:
        """
        Run one optimization and return the incumbent best at termination.

        Args:
            initial_params: Starting point (missing names default to the
                bound midpoint, out-of-range values are clamped)
            bounds: Parameter name -> (min, max)
            evaluate: Scoring collaborator, sync or async, returning a score
                in [0, 100] or a result carrying one
            on_progress: Optional ``(fraction, best_score)`` callback, sync or
                async, invoked after every inner step

        Returns:
            Best TrialResult found

        Raises:
            AlreadyRunningError: If this instance is mid-run
            InvalidBoundsError: If bounds are empty or inverted
            EvaluationFailureError: If every evaluation of the run failed
        """
        if self._state is EngineState.RUNNING:
            raise AlreadyRunningError()

        validated = ParameterBounds(bounds)
        objective = self.objective_factory.create_objective(evaluate)

        self._reset(validated)
        self._state = EngineState.RUNNING
        self._start_time = time.time()

        search = self.config.search
        mode = 'evolution' if self.config.uses_evolution else 'gradient'
        logger.info(f"Starting balance optimization: {len(validated)} parameters, "
                    f"{search.max_trials} trials x {search.iterations_per_trial} steps, "
                    f"mode={mode}, seed={self._rng.seed}")

        try:
            start = self._prepare_initial_params(initial_params or {})
            self._initial_params = start

            (evaluated,) = await self._evaluate_batch(objective, [(start, 'initial')])
            self._record(evaluated, trial_index=0, iteration_index=0)

            await self._search(objective, on_progress)

            if self._state is EngineState.RUNNING:
                if self._stop_requested:
                    self._state = EngineState.CANCELLED
                    self._terminated_early = True
                else:
                    self._state = EngineState.EXHAUSTED
        finally:
            if not self._state.is_terminal:
                self._state = EngineState.CANCELLED
                self._terminated_early = True
            self._elapsed_ms = (time.time() - self._start_time) * 1000.0

        logger.info(f"Optimization finished: state={self._state.value}, "
                    f"best_score={self._best.balance_score:.2f}, "
                    f"trials={len(self._history)}, evaluations={self._evaluation_count}, "
                    f"elapsed={self._elapsed_ms:.0f}ms")

        if self._history.failed_count() == len(self._history):
            raise EvaluationFailureError(
                f"all {len(self._history)} evaluations failed", params=self._initial_params)

        return self._best

    def run(self,
            initial_params: Optional[Mapping[str, float]],
            bounds: Mapping[str, Any],
            evaluate: Callable[[ParameterSet], Any],
            on_progress: Optional[ProgressCallback] = None) -> Dict[str, Any]:
        """
        Run an optimization synchronously.

        This is the entry point for callers without an event loop. Engine
        errors come back as standardized error results instead of raising.

        Returns:
            Result dictionary including:
            - best_params / best_score: incumbent at termination
            - best_result: the incumbent TrialResult as a dictionary
            - status: terminal engine state
            - optimization_metadata: run summary
        """
        try:
            best = asyncio.run(self.optimize(initial_params, bounds, evaluate, on_progress))
        except Exception as e:
            logger.error(f"Optimization engine error: {e}", exc_info=True)
            result = ErrorResultFactory.from_exception(e, error_context='optimize')
            result['optimization_metadata'] = self.run_summary()
            return result

        return ErrorResultFactory.create_success_result({
            'best_params': dict(best.params),
            'best_score': best.balance_score,
            'best_result': best.to_dict(),
            'status': self._state.value,
            'terminated_early': self._terminated_early,
            'optimization_metadata': self.run_summary(),
        })

    def run_summary(self) -> Dict[str, Any]:
        """Execution statistics of the current or last run."""
        return {
            'state': self._state.value,
            'mode': 'evolution' if self.config.uses_evolution else 'gradient',
            'trials_completed': self._trials_completed,
            'iterations_run': self._iteration_count,
            'history_size': len(self._history),
            'failed_trials': self._history.failed_count(),
            'evaluation_count': self._evaluation_count,
            'best_score': self._best.balance_score if self._best else None,
            'best_params': dict(self._best.params) if self._best else {},
            'terminated_early': self._terminated_early,
            'elapsed_ms': self.elapsed_ms,
            'random_seed': self.random_seed,
            'step_scale': self._step_scale,
            'configuration': self.config.to_dict(),
        }

    # ------------------------------------------------------------------
    # Search loop
    # ------------------------------------------------------------------

    def _reset(self, bounds: ParameterBounds) -> None:
        self._bounds = bounds
        self._history = OptimizationHistory()
        self._best = None
        self._initial_params = None
        self._rng = SeededRandom(self.config.search.random_seed)
        self._stop_requested = False
        self._terminated_early = False
        self._elapsed_ms = 0.0
        self._evaluation_count = 0
        self._iteration_count = 0
        self._trials_completed = 0
        self._step_scale = 1.0
        self._snapshots = []

    def _prepare_initial_params(self, initial_params: Mapping[str, float]) -> ParameterSet:
        start = self._bounds.clamp_params(initial_params)

        dropped = sorted(set(initial_params) - set(start))
        adjusted = [name for name in start
                    if name not in initial_params or float(initial_params[name]) != start[name]]
        if dropped:
            logger.warning(f"Ignoring initial params without bounds: {dropped}")
        if adjusted:
            logger.warning(f"Initial params filled or clamped into bounds: {adjusted}")
        return start

    async def _search(self, objective: Objective, on_progress: Optional[ProgressCallback]) -> None:
        search = self.config.search
        total_steps = search.max_trials * search.iterations_per_trial
        progress = ProgressTracker(total_steps, name="Balance optimization", logger=logger)
        completed = 0

        for trial_index in range(1, search.max_trials + 1):
            if self._stop_requested:
                break

            for iteration_index in range(search.iterations_per_trial):
                if self._stop_requested:
                    break

                self._iteration_count += 1
                if self.config.uses_evolution:
                    await self._evolution_step(objective, trial_index, iteration_index)
                else:
                    await self._sequential_step(objective, trial_index, iteration_index)

                completed += 1
                progress.update()
                await self._notify(on_progress, completed / total_steps)

            if self._stop_requested:
                break

            self._trials_completed = trial_index
            if self._check_convergence():
                self._state = EngineState.CONVERGED
                logger.info(f"Converged after {trial_index} trials "
                            f"(best_score={self._best.balance_score:.4f})")
                break

        progress.finish()

    async def _sequential_step(self, objective: Objective, trial_index: int, iteration_index: int) -> None:
        if self._rng.next() < self.config.search.exploration_weight:
            candidate = (random_point(self._bounds, self._rng), 'explore')
            (evaluated,) = await self._evaluate_batch(objective, [candidate])
            self._record(evaluated, trial_index, iteration_index)
            return

        params = await self._gradient_candidate(objective)
        if params is None or self._stop_requested:
            logger.debug("Stop requested during gradient estimation, candidate discarded")
            return

        (evaluated,) = await self._evaluate_batch(objective, [(params, 'gradient')])
        improved = self._record(evaluated, trial_index, iteration_index)
        self._adapt_step_scale(improved)

    async def _evolution_step(self, objective: Objective, trial_index: int, iteration_index: int) -> None:
        search = self.config.search
        generator = EvolutionaryGenerator(self._bounds, self.config.evolution, self._rng)
        batch = generator.generate_batch(self._history, self._best.params,
                                         search.parallel_trials, search.exploration_weight)

        for evaluated in await self._evaluate_batch(objective, batch):
            self._record(evaluated, trial_index, iteration_index)

    async def _gradient_candidate(self, objective: Objective) -> Optional[ParameterSet]:
        """
        Central finite difference step from the incumbent, clamped into bounds.

        Returns None when stop() arrives between probes; no further probe is
        started once the flag is set.
        """
        search = self.config.search
        settings = self.config.gradient
        base = dict(self._best.params)
        candidate = {}

        for name, value in base.items():
            h = abs(value) * settings.relative_step if value != 0 else settings.zero_step
            upper = self._bounds.clamp(name, value + h)
            lower = self._bounds.clamp(name, value - h)

            gradient = 0.0
            if upper != lower:
                if self._stop_requested:
                    return None
                score_upper = await self._probe(objective, {**base, name: upper})
                if self._stop_requested:
                    return None
                score_lower = await self._probe(objective, {**base, name: lower})
                if score_upper is not None and score_lower is not None:
                    gradient = (score_upper - score_lower) / (upper - lower)

            updated = (value + search.learning_rate * self._step_scale * gradient
                       - search.regularization_strength * value)
            candidate[name] = self._bounds.clamp(name, updated)

        return candidate

    async def _probe(self, objective: Objective, params: ParameterSet) -> Optional[float]:
        self._evaluation_count += 1
        try:
            return (await objective(params)).score
        except EvaluationFailureError as e:
            logger.debug(f"Gradient probe failed, treating slope as flat: {e.message}")
            return None

    def _adapt_step_scale(self, improved: bool) -> None:
        settings = self.config.gradient
        if improved:
            self._step_scale = min(1.0, self._step_scale * settings.step_growth)
        else:
            self._step_scale = max(settings.min_step_scale, self._step_scale * settings.step_shrink)

    async def _evaluate_batch(self, objective: Objective,
                              candidates: List[Tuple[ParameterSet, str]]) -> List[Evaluated]:
        """Evaluate candidates concurrently; failures are returned, not raised."""

        async def evaluate_one(params: ParameterSet, strategy: str) -> Evaluated:
            try:
                return params, strategy, await objective(params)
            except EvaluationFailureError as e:
                return params, strategy, e

        self._evaluation_count += len(candidates)
        return list(await asyncio.gather(*(evaluate_one(p, s) for p, s in candidates)))

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record(self, evaluated: Evaluated, trial_index: int, iteration_index: int) -> bool:
        """Append a TrialResult and update the incumbent. Returns True on improvement."""
        params, strategy, outcome = evaluated
        failed = isinstance(outcome, EvaluationFailureError)

        if failed:
            logger.warning(f"Evaluation failed at iteration {self._iteration_count} "
                           f"({strategy}): {outcome.message}")
            score, win_rates, economy, interval = 0.0, {}, {}, None
        else:
            score = outcome.score
            win_rates = dict(outcome.win_rates)
            economy = dict(outcome.economy_metrics)
            interval = self._confidence_interval(score, self._iteration_count)

        result = TrialResult(
            params=dict(params),
            balance_score=score,
            metadata=TrialMetadata(
                trial_index=trial_index,
                iteration_index=iteration_index,
                iteration_count=self._iteration_count,
                elapsed_ms=self.elapsed_ms,
                random_seed=self._rng.seed,
                strategy=strategy,
                failed=failed,
                error=outcome.message if failed else None,
            ),
            win_rates=win_rates,
            economy_metrics=economy,
            confidence_interval=interval,
        )
        self._history.append(result)

        if self._is_improvement(result):
            if self._best is not None:
                logger.debug(f"New best at iteration {self._iteration_count}: "
                             f"{self._best.balance_score:.4f} -> {score:.4f} ({strategy})")
            self._best = result
            return True
        return False

    def _is_improvement(self, result: TrialResult) -> bool:
        if self._best is None:
            return True
        if result.balance_score > self._best.balance_score:
            return True
        # A successful evaluation replaces a failed incumbent of equal score
        return self._best.failed and not result.failed and result.balance_score == self._best.balance_score

    def _confidence_interval(self, score: float, iteration_count: int) -> Tuple[float, float]:
        settings = self.config.confidence
        relative = min(settings.max_relative_width, settings.base_width / (iteration_count + 1))
        half_width = relative * score
        return max(0.0, score - half_width), min(100.0, score + half_width)

    def _check_convergence(self) -> bool:
        """Snapshot the incumbent at a trial boundary and test the last window."""
        self._snapshots.append((self._best.balance_score, dict(self._best.params)))

        if not self.config.search.early_stopping or len(self._snapshots) < CONVERGENCE_WINDOW:
            return False

        window = self._snapshots[-CONVERGENCE_WINDOW:]
        scores = [score for score, _ in window]
        score_range = max(scores) - min(scores)

        max_change = 0.0
        for name in self._bounds:
            values = [params[name] for _, params in window]
            max_change = max(max_change, max(values) - min(values))

        tolerance = self.config.search.convergence_tolerance
        logger.debug(f"Convergence check: score_range={score_range:.6f}, "
                     f"max_param_change={max_change:.6f}, tolerance={tolerance}")
        return score_range < tolerance and max_change < tolerance

    async def _notify(self, on_progress: Optional[ProgressCallback], fraction: float) -> None:
        if on_progress is None:
            return
        try:
            result = on_progress(min(1.0, fraction), self._best.balance_score)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Progress callback error: {e}")
