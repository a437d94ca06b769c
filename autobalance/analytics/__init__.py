"""
Analytics Module
================

Post-run analysis of an optimization history: parameter sensitivity
ranking and the serializable balance report.
"""

from .sensitivity import SensitivityRanking, analyze
from .report import BalanceReport, BalanceReportBuilder

__all__ = [
    'SensitivityRanking',
    'analyze',
    'BalanceReport',
    'BalanceReportBuilder',
]
