"""
Standardized Error Handling Utilities
=====================================

Factory for the standardized result dictionaries returned by the synchronous
engine entry point: success results carry the run payload, error results
carry the message, the exception type and its structured details.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from .exceptions import get_exception_summary


class ErrorResultFactory:
    """Factory for creating standardized result dictionaries."""

    @staticmethod
    def create_error_result(error_message: str,
                            error_context: Optional[str] = None,
                            additional_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Create a standardized error result dictionary.

        Args:
            error_message: The error message
            error_context: Optional context about where the error occurred
            additional_data: Optional additional data to include

        Returns:
            Standardized error result dictionary
        """
        result = {
            'success': False,
            'error': error_message,
            'timestamp': datetime.now().isoformat(),
            'best_params': {},
            'optimization_metadata': {}
        }

        if error_context:
            result['error_context'] = error_context

        if additional_data:
            result.update(additional_data)

        return result

    @staticmethod
    def create_success_result(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a standardized success result dictionary.

        Args:
            data: Result data to include

        Returns:
            Standardized success result dictionary
        """
        result = {
            'success': True,
            'timestamp': datetime.now().isoformat(),
        }
        result.update(data)
        return result

    @staticmethod
    def from_exception(error: Exception, error_context: Optional[str] = None) -> Dict[str, Any]:
        """
        Create an error result from an exception, keeping its structured details.

        Args:
            error: The exception that occurred
            error_context: Optional context about where the error occurred

        Returns:
            Standardized error result dictionary
        """
        summary = get_exception_summary(error)
        return ErrorResultFactory.create_error_result(
            error_message=summary['message'],
            error_context=error_context,
            additional_data={
                'error_type': summary['type'],
                'error_details': summary,
            }
        )
