"""
Custom Exception Classes
========================

Exception hierarchy for the balance optimization engine.

Every error carries a human-readable message plus optional structured
context, a recovery suggestion and a machine-readable code, so callers can
either catch a precise subclass or log the detailed message as-is.

Taxonomy:
- ConfigurationError: optimizer settings violate their documented ranges
- InvalidBoundsError: empty bounds map or a range with min > max
- EvaluationFailureError: the scoring collaborator raised or returned junk
- InsufficientHistoryError: too few trials for sensitivity analysis
- AlreadyRunningError: optimize() called on an engine mid-run
"""

import traceback
from datetime import datetime
from typing import Any, Dict, List, Optional


class BalanceOptimizationError(Exception):
    """
    Base exception for all balance engine errors.

    Features:
    - Rich error context
    - Automatic timestamp recording
    - Recovery suggestions
    - Error classification
    """

    def __init__(self, message: str,
                 context: Optional[Dict[str, Any]] = None,
                 recovery_suggestion: Optional[str] = None,
                 error_code: Optional[str] = None):
        """
        Initialize base exception

        Args:
            message: Human-readable error description
            context: Additional context data
            recovery_suggestion: Suggested fix for the error
            error_code: Machine-readable error code
        """
        super().__init__(message)

        self.message = message
        self.context = context or {}
        self.recovery_suggestion = recovery_suggestion
        self.error_code = error_code
        self.timestamp = datetime.now()
        self.traceback_info = self._capture_traceback()

    def _capture_traceback(self) -> str:
        """Capture current traceback for debugging"""
        try:
            return ''.join(traceback.format_stack()[:-1])
        except Exception:
            return "Traceback unavailable"

    def get_detailed_message(self) -> str:
        """Get detailed error message with context"""
        details = [f"Error: {self.message}"]

        if self.error_code:
            details.append(f"Code: {self.error_code}")

        if self.context:
            context_str = ", ".join([f"{k}={v}" for k, v in self.context.items()])
            details.append(f"Context: {context_str}")

        if self.recovery_suggestion:
            details.append(f"Suggestion: {self.recovery_suggestion}")

        details.append(f"Time: {self.timestamp.isoformat()}")

        return " | ".join(details)

    def __str__(self) -> str:
        return self.get_detailed_message()


class ConfigurationError(BalanceOptimizationError):
    """Optimizer configuration is out of its valid ranges"""

    def __init__(self, issues: List[str], **kwargs):
        message = f"Invalid optimization configuration: {'; '.join(issues[:3])}"
        if len(issues) > 3:
            message += f" (and {len(issues) - 3} more issues)"
        context = {"issues": issues}
        recovery = "Fix the listed settings or fall back to OptimizationConfig() defaults"
        super().__init__(message, context=context, recovery_suggestion=recovery,
                         error_code="CONFIGURATION", **kwargs)


class InvalidBoundsError(BalanceOptimizationError):
    """Parameter bounds are empty or contain an inverted/non-numeric range"""

    def __init__(self, reason: str, parameter: Optional[str] = None, **kwargs):
        if parameter:
            message = f"Invalid bounds for '{parameter}': {reason}"
        else:
            message = f"Invalid parameter bounds: {reason}"
        context = {"parameter": parameter, "reason": reason} if parameter else {"reason": reason}
        recovery = "Provide at least one parameter with a finite [min, max] range where min <= max"
        super().__init__(message, context=context, recovery_suggestion=recovery,
                         error_code="INVALID_BOUNDS", **kwargs)


class EvaluationFailureError(BalanceOptimizationError):
    """The scoring collaborator failed or produced an unusable score"""

    def __init__(self, reason: str, params: Optional[Dict[str, float]] = None, **kwargs):
        message = f"Evaluation failed: {reason}"
        context = {"reason": reason}
        if params is not None:
            context["params"] = dict(params)
        recovery = "Check the scoring function returns a number in [0, 100] and does not raise"
        super().__init__(message, context=context, recovery_suggestion=recovery,
                         error_code="EVALUATION_FAILURE", **kwargs)


class InsufficientHistoryError(BalanceOptimizationError):
    """Not enough recorded trials for sensitivity analysis"""

    def __init__(self, required: int, available: int, **kwargs):
        message = f"Insufficient history for sensitivity analysis: need {required}, have {available}"
        context = {"required": required, "available": available}
        recovery = "Run more optimization trials before requesting a sensitivity ranking"
        super().__init__(message, context=context, recovery_suggestion=recovery,
                         error_code="INSUFFICIENT_HISTORY", **kwargs)


class AlreadyRunningError(BalanceOptimizationError):
    """optimize() was called while the same engine instance is mid-run"""

    def __init__(self, **kwargs):
        message = "Optimization already running on this engine instance"
        recovery = "Wait for the current run to finish, call stop(), or use a separate engine"
        super().__init__(message, recovery_suggestion=recovery,
                         error_code="ALREADY_RUNNING", **kwargs)


def get_exception_summary(exception: Exception) -> Dict[str, Any]:
    """
    Summarize any exception into a serializable dictionary.

    Args:
        exception: Exception to summarize

    Returns:
        Dictionary with type, message and, for engine errors, code/context
    """
    summary = {
        'type': type(exception).__name__,
        'message': str(exception),
    }

    if isinstance(exception, BalanceOptimizationError):
        summary['message'] = exception.message
        summary['error_code'] = exception.error_code
        summary['context'] = exception.context
        summary['recovery_suggestion'] = exception.recovery_suggestion
        summary['timestamp'] = exception.timestamp.isoformat()

    return summary
