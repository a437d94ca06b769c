"""
Balance Optimization Module
===========================

Search engine for game-balance parameters.

Components:
- models: bounds, trial results, history and engine states
- sampling: Sobol / Latin hypercube / random space-filling samplers
- objective: adapter turning any scoring collaborator into an async objective
- evolution: crossover, mutation and diversity-aware batch generation
- engine: OptimizationEngine orchestrating a run

Quick Start:

    from autobalance.optimization import OptimizationEngine

    engine = OptimizationEngine()
    result = engine.run({'a': 0.2}, {'a': (0.0, 1.0)}, lambda p: 100 - 100 * (p['a'] - 0.5) ** 2)
"""

from .models import (
    ParameterSet,
    ParameterBounds,
    TrialMetadata,
    TrialResult,
    EngineState,
    OptimizationHistory,
)
from .sampling import SAMPLING_METHODS, sample
from .objective import EvaluationOutcome, ObjectiveFactory
from .evolution import EvolutionaryGenerator
from .engine import OptimizationEngine

__all__ = [
    'ParameterSet',
    'ParameterBounds',
    'TrialMetadata',
    'TrialResult',
    'EngineState',
    'OptimizationHistory',
    'SAMPLING_METHODS',
    'sample',
    'EvaluationOutcome',
    'ObjectiveFactory',
    'EvolutionaryGenerator',
    'OptimizationEngine',
]
