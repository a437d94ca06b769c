"""
Optimizer Configuration
=======================

Typed configuration for the balance optimization engine.

This configuration module defines:
- Search loop settings (trial budget, exploration, gradient step, convergence)
- Evolutionary batch settings (elitism, crossover, mutation, batch diversity)
- Confidence interval and finite-difference heuristics
- Balance score weights used by the canonical balance objective
- Environment variable overrides for quick experiments

Every field has a default; partial configurations are built by passing only
the fields that differ, never by merging dictionaries at runtime.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from ..utils.exceptions import ConfigurationError

SEARCH_STRATEGIES = ('gradient', 'evolution')


@dataclass
class SearchSettings:
    """
    Core search loop settings.

    Defaults mirror the values the balance designers tuned against:
    20 outer trials of 10 steps each, 30% exploration.
    """
    # Outer iteration cap
    max_trials: int = 20

    # Inner steps per outer trial; convergence is checked between trials
    iterations_per_trial: int = 10

    # Probability that a step samples a fresh uniform point
    exploration_weight: float = 0.3

    learning_rate: float = 0.05
    regularization_strength: float = 0.01
    convergence_tolerance: float = 0.001
    early_stopping: bool = True

    # Batch width for concurrent evaluations (> 1 switches to evolution)
    parallel_trials: int = 1

    random_seed: Optional[int] = None

    # 'gradient' or 'evolution'
    search_strategy: str = 'gradient'


@dataclass
class EvolutionSettings:
    """Evolutionary candidate generation used by batch/parallel runs."""
    # Parents are drawn from this top fraction of history by score
    elite_fraction: float = 0.3

    # Per dimension: copy one parent's value, otherwise average both parents
    crossover_copy_probability: float = 0.8

    # Per-dimension mutation probability and noise amplitude (fraction of range)
    mutation_rate: float = 0.1
    mutation_scale: float = 0.2

    # Minimum mean normalized distance between members of one batch
    similarity_threshold: float = 0.05
    max_diversity_attempts: int = 10

    # Noise amplitude (fraction of range) for perturbing the incumbent
    perturbation_scale: float = 0.1


@dataclass
class GradientSettings:
    """Central finite difference settings."""
    relative_step: float = 0.01
    zero_step: float = 1e-4

    # Adaptive multiplier on the learning rate
    min_step_scale: float = 1.0 / 1024
    step_shrink: float = 0.5
    step_growth: float = 1.5


@dataclass
class ConfidenceSettings:
    """Heuristic confidence interval: half-width = min(max, base / (n + 1)) * score."""
    base_width: float = 0.5
    max_relative_width: float = 0.2


@dataclass
class BalanceScoreWeights:
    """
    Weights of the four balance components.

    Win rate parity dominates; economy second; counter and bond systems
    share the rest. Weights must sum to 1.0.
    """
    win_rate: float = 0.5
    economy: float = 0.3
    counter: float = 0.1
    bond: float = 0.1

    def __post_init__(self):
        """Validate weights sum to 1.0"""
        total = self.win_rate + self.economy + self.counter + self.bond
        if abs(total - 1.0) > 1e-6:
            raise ConfigurationError([f"balance score weights must sum to 1.0, got {total}"])


@dataclass
class EconomyWeights:
    """Weights of the normalized economy sub-metrics (sum to 1.0)."""
    gold_efficiency: float = 0.3
    item_utilization: float = 0.3
    resource_balance: float = 0.2
    unit_economy: float = 0.1
    market_dynamics: float = 0.1

    def __post_init__(self):
        total = (self.gold_efficiency + self.item_utilization + self.resource_balance +
                 self.unit_economy + self.market_dynamics)
        if abs(total - 1.0) > 1e-6:
            raise ConfigurationError([f"economy weights must sum to 1.0, got {total}"])


# Accepted external spellings for SearchSettings fields
_SEARCH_ALIASES = {
    'maxTrials': 'max_trials',
    'iterationsPerTrial': 'iterations_per_trial',
    'explorationWeight': 'exploration_weight',
    'learningRate': 'learning_rate',
    'regularizationStrength': 'regularization_strength',
    'convergenceTolerance': 'convergence_tolerance',
    'earlyStopping': 'early_stopping',
    'parallelTrials': 'parallel_trials',
    'randomSeed': 'random_seed',
    'searchStrategy': 'search_strategy',
}


@dataclass
class OptimizationConfig:
    """
    Master configuration class combining all optimizer settings.

    Provides single entry point for all optimization configuration
    with validation and environment variable overrides.
    """
    search: SearchSettings = field(default_factory=SearchSettings)
    evolution: EvolutionSettings = field(default_factory=EvolutionSettings)
    gradient: GradientSettings = field(default_factory=GradientSettings)
    confidence: ConfidenceSettings = field(default_factory=ConfidenceSettings)
    score_weights: BalanceScoreWeights = field(default_factory=BalanceScoreWeights)
    economy_weights: EconomyWeights = field(default_factory=EconomyWeights)

    debug_mode: bool = field(default_factory=lambda: os.getenv('AUTOBALANCE_DEBUG', 'false').lower() == 'true')

    def __post_init__(self):
        """Apply environment variable overrides"""
        if 'AUTOBALANCE_MAX_TRIALS' in os.environ:
            self.search.max_trials = int(os.environ['AUTOBALANCE_MAX_TRIALS'])

        if 'AUTOBALANCE_ITERATIONS_PER_TRIAL' in os.environ:
            self.search.iterations_per_trial = int(os.environ['AUTOBALANCE_ITERATIONS_PER_TRIAL'])

        if 'AUTOBALANCE_PARALLEL_TRIALS' in os.environ:
            self.search.parallel_trials = max(1, int(os.environ['AUTOBALANCE_PARALLEL_TRIALS']))

        if 'AUTOBALANCE_SEED' in os.environ:
            self.search.random_seed = int(os.environ['AUTOBALANCE_SEED'])

    @property
    def uses_evolution(self) -> bool:
        return self.search.parallel_trials > 1 or self.search.search_strategy == 'evolution'

    def validate(self) -> bool:
        """
        Validate configuration consistency.

        Raises:
            ConfigurationError: listing every violated constraint
        """
        s = self.search
        e = self.evolution
        issues: List[str] = []

        if s.max_trials <= 0:
            issues.append(f"max_trials must be > 0, got {s.max_trials}")
        if s.iterations_per_trial <= 0:
            issues.append(f"iterations_per_trial must be > 0, got {s.iterations_per_trial}")
        if not 0.0 <= s.exploration_weight <= 1.0:
            issues.append(f"exploration_weight must be in [0, 1], got {s.exploration_weight}")
        if s.learning_rate <= 0:
            issues.append(f"learning_rate must be > 0, got {s.learning_rate}")
        if s.regularization_strength < 0:
            issues.append(f"regularization_strength must be >= 0, got {s.regularization_strength}")
        if s.convergence_tolerance <= 0:
            issues.append(f"convergence_tolerance must be > 0, got {s.convergence_tolerance}")
        if s.parallel_trials < 1:
            issues.append(f"parallel_trials must be >= 1, got {s.parallel_trials}")
        if s.search_strategy not in SEARCH_STRATEGIES:
            issues.append(f"search_strategy must be one of {SEARCH_STRATEGIES}, got {s.search_strategy!r}")

        if not 0.0 < e.elite_fraction <= 1.0:
            issues.append(f"elite_fraction must be in (0, 1], got {e.elite_fraction}")
        for name in ('crossover_copy_probability', 'mutation_rate'):
            value = getattr(e, name)
            if not 0.0 <= value <= 1.0:
                issues.append(f"{name} must be in [0, 1], got {value}")
        if e.mutation_scale < 0 or e.perturbation_scale < 0 or e.similarity_threshold < 0:
            issues.append("mutation_scale, perturbation_scale and similarity_threshold must be >= 0")
        if e.max_diversity_attempts < 0:
            issues.append(f"max_diversity_attempts must be >= 0, got {e.max_diversity_attempts}")

        if self.gradient.relative_step <= 0 or self.gradient.zero_step <= 0:
            issues.append("finite difference steps must be > 0")
        if not 0.0 < self.gradient.min_step_scale <= 1.0:
            issues.append(f"min_step_scale must be in (0, 1], got {self.gradient.min_step_scale}")
        if self.confidence.base_width < 0 or self.confidence.max_relative_width < 0:
            issues.append("confidence widths must be >= 0")

        if issues:
            raise ConfigurationError(issues)

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization"""
        return {
            'search': {
                'max_trials': self.search.max_trials,
                'iterations_per_trial': self.search.iterations_per_trial,
                'exploration_weight': self.search.exploration_weight,
                'learning_rate': self.search.learning_rate,
                'regularization_strength': self.search.regularization_strength,
                'convergence_tolerance': self.search.convergence_tolerance,
                'early_stopping': self.search.early_stopping,
                'parallel_trials': self.search.parallel_trials,
                'random_seed': self.search.random_seed,
                'search_strategy': self.search.search_strategy,
            },
            'evolution': {
                'elite_fraction': self.evolution.elite_fraction,
                'crossover_copy_probability': self.evolution.crossover_copy_probability,
                'mutation_rate': self.evolution.mutation_rate,
                'mutation_scale': self.evolution.mutation_scale,
                'similarity_threshold': self.evolution.similarity_threshold,
                'max_diversity_attempts': self.evolution.max_diversity_attempts,
                'perturbation_scale': self.evolution.perturbation_scale,
            },
            'confidence': {
                'base_width': self.confidence.base_width,
                'max_relative_width': self.confidence.max_relative_width,
            },
            'gradient': {
                'relative_step': self.gradient.relative_step,
                'zero_step': self.gradient.zero_step,
                'min_step_scale': self.gradient.min_step_scale,
                'step_shrink': self.gradient.step_shrink,
                'step_growth': self.gradient.step_growth,
            },
            'score_weights': {
                'win_rate': self.score_weights.win_rate,
                'economy': self.score_weights.economy,
                'counter': self.score_weights.counter,
                'bond': self.score_weights.bond,
            },
            'economy_weights': {
                'gold_efficiency': self.economy_weights.gold_efficiency,
                'item_utilization': self.economy_weights.item_utilization,
                'resource_balance': self.economy_weights.resource_balance,
                'unit_economy': self.economy_weights.unit_economy,
                'market_dynamics': self.economy_weights.market_dynamics,
            },
            'debug_mode': self.debug_mode,
        }

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> 'OptimizationConfig':
        """
        Build a configuration from flat search options.

        Accepts both ``max_trials`` and ``maxTrials`` spellings. Unknown keys
        are rejected instead of silently ignored.

        Args:
            options: Flat mapping of SearchSettings fields

        Returns:
            Validated OptimizationConfig
        """
        known = {f.name for f in fields(SearchSettings)}
        search_kwargs: Dict[str, Any] = {}
        unknown: List[str] = []

        for key, value in options.items():
            name = _SEARCH_ALIASES.get(key, key)
            if name in known:
                search_kwargs[name] = value
            else:
                unknown.append(key)

        if unknown:
            raise ConfigurationError([f"unknown option {key!r}" for key in unknown])

        config = cls(search=SearchSettings(**search_kwargs))
        config.validate()
        return config


def get_optimization_config(**search_overrides) -> OptimizationConfig:
    """
    Get optimization configuration with validation.

    Args:
        **search_overrides: SearchSettings fields to override

    Returns:
        Validated OptimizationConfig instance
    """
    config = OptimizationConfig(search=SearchSettings(**search_overrides))
    config.validate()
    return config
