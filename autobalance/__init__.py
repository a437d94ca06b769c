"""
Auto-Balance Optimization Engine
================================

Black-box parameter optimization for game-balance coefficients.

This package searches a multi-dimensional space of tuning coefficients
(combat multipliers, economy rates, counter and bond bonuses) for parameter
sets that maximize a 0-100 balance score, then summarizes the run.

Key Components:
- OptimizationEngine: gradient-step and evolutionary search with convergence
  detection and cooperative cancellation
- sample: Sobol / Latin hypercube / random space-filling samplers
- BalanceScorer: canonical four-component balance score
- BalanceSimulator: formula-based stand-in scoring collaborator
- analyze / BalanceReportBuilder: sensitivity ranking and run report

Usage:
    from autobalance import OptimizationEngine, BalanceSimulator, BalanceReportBuilder

    simulator = BalanceSimulator(seed=7)
    engine = OptimizationEngine()
    result = engine.run(simulator.bounds.midpoint(), simulator.bounds, simulator.evaluate)

    report = BalanceReportBuilder().from_engine(engine)
    print(report.to_json())
"""

from .utils import (
    BalanceOptimizationError,
    ConfigurationError,
    InvalidBoundsError,
    EvaluationFailureError,
    InsufficientHistoryError,
    AlreadyRunningError,
    SeededRandom,
    setup_logging,
)
from .config import OptimizationConfig, SearchSettings, get_optimization_config
from .optimization import (
    ParameterBounds,
    TrialResult,
    EngineState,
    OptimizationHistory,
    sample,
    ObjectiveFactory,
    OptimizationEngine,
)
from .simulation import BalanceScorer, BalanceSimulator, DEFAULT_PARAMETER_SPACE
from .analytics import SensitivityRanking, analyze, BalanceReport, BalanceReportBuilder

__version__ = "1.0.0"

__all__ = [
    'BalanceOptimizationError',
    'ConfigurationError',
    'InvalidBoundsError',
    'EvaluationFailureError',
    'InsufficientHistoryError',
    'AlreadyRunningError',
    'SeededRandom',
    'setup_logging',
    'OptimizationConfig',
    'SearchSettings',
    'get_optimization_config',
    'ParameterBounds',
    'TrialResult',
    'EngineState',
    'OptimizationHistory',
    'sample',
    'ObjectiveFactory',
    'OptimizationEngine',
    'BalanceScorer',
    'BalanceSimulator',
    'DEFAULT_PARAMETER_SPACE',
    'SensitivityRanking',
    'analyze',
    'BalanceReport',
    'BalanceReportBuilder',
]
