"""
Balance Simulation Module
=========================

Canonical balance scoring and the formula-based simulator used as a
stand-in scoring collaborator.
"""

from .scorers import BalanceScorer, ComponentResult
from .simulator import (
    DEFAULT_PARAMETER_SPACE,
    UNIT_TYPES,
    DEFAULT_COUNTERS,
    BOND_TABLE,
    SimulationOutcome,
    BalanceSimulator,
)

__all__ = [
    'BalanceScorer',
    'ComponentResult',
    'DEFAULT_PARAMETER_SPACE',
    'UNIT_TYPES',
    'DEFAULT_COUNTERS',
    'BOND_TABLE',
    'SimulationOutcome',
    'BalanceSimulator',
]
