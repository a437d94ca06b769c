"""
Configuration Module
====================

Typed settings for the optimizer, the evolutionary batch generator and the
canonical balance objective.

Quick Start:

    from autobalance.config import OptimizationConfig, SearchSettings

    config = OptimizationConfig(search=SearchSettings(max_trials=30, random_seed=7))
    config.validate()
"""

from .optimizer_config import (
    SEARCH_STRATEGIES,
    SearchSettings,
    EvolutionSettings,
    GradientSettings,
    ConfidenceSettings,
    BalanceScoreWeights,
    EconomyWeights,
    OptimizationConfig,
    get_optimization_config,
)

__all__ = [
    'SEARCH_STRATEGIES',
    'SearchSettings',
    'EvolutionSettings',
    'GradientSettings',
    'ConfidenceSettings',
    'BalanceScoreWeights',
    'EconomyWeights',
    'OptimizationConfig',
    'get_optimization_config',
]
