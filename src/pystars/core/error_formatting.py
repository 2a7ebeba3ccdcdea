"""
Error formatting and logging utilities for the STARS client.

Provides consistent error formatting for both user display (CLI output)
and technical logging.
"""

import json
import logging
import traceback
from typing import Any, Dict, Optional

from pystars.core.errors import StarsError


class ErrorFormatter:
    """
    Formats errors for consistent presentation.

    Handles both StarsError instances and standard Python exceptions.
    """

    def format_for_user(self, error: Exception) -> str:
        """
        Format error for end-user display.

        Args:
            error: The error to format

        Returns:
            User-friendly error message
        """
        if isinstance(error, StarsError):
            return error.format_user_message()
        return f"An error occurred: {str(error)}"

    def format_for_log(self, error: Exception, include_trace: bool = True) -> str:
        """
        Format error for technical logging.

        Args:
            error: The error to format
            include_trace: Whether to include stack trace

        Returns:
            Detailed error information for logging
        """
        if isinstance(error, StarsError):
            return error.format_log_message()

        msg = f"{error.__class__.__name__}: {str(error)}"
        if include_trace and error.__traceback__ is not None:
            trace = ''.join(traceback.format_tb(error.__traceback__))
            msg += f"\nStack trace:\n{trace}"
        return msg


class ErrorLogger:
    """
    Error logging with consistent formatting.

    User-facing text goes out at the requested level, technical details
    (context, cause, trace) at debug level.
    """

    def __init__(self, logger_name: str = 'pystars.errors'):
        self.logger = logging.getLogger(logger_name)
        self.formatter = ErrorFormatter()

    def log_error(
        self,
        error: Exception,
        level: int = logging.ERROR,
        include_trace: bool = True,
        extra_context: Optional[Dict[str, Any]] = None
    ):
        """
        Log an error with appropriate formatting.

        Args:
            error: The error to log
            level: Logging level
            include_trace: Whether to include stack trace
            extra_context: Additional context to include
        """
        context = {}
        if isinstance(error, StarsError) and error.context:
            context.update(error.context)
        if extra_context:
            context.update(extra_context)

        if isinstance(error, StarsError):
            self.logger.log(level, self.formatter.format_for_user(error))
            self.logger.debug(self.formatter.format_for_log(error, include_trace))
            if context:
                self.logger.debug(f"Error context: {json.dumps(context, indent=2, default=str)}")
        else:
            self.logger.log(level, self.formatter.format_for_log(error, include_trace))


_error_logger: Optional[ErrorLogger] = None


def get_error_logger() -> ErrorLogger:
    """Get the shared error logger instance, creating it on first use."""
    global _error_logger
    if _error_logger is None:
        _error_logger = ErrorLogger()
    return _error_logger


def log_error(error: Exception, **kwargs):
    """
    Convenience function to log an error using the shared logger.

    Args:
        error: The error to log
        **kwargs: Additional arguments passed to ErrorLogger.log_error
    """
    get_error_logger().log_error(error, **kwargs)


def format_error(error: Exception, format_type: str = 'user') -> str:
    """
    Convenience function to format an error.

    Args:
        error: The error to format
        format_type: Either 'user' or 'log'

    Returns:
        Formatted error based on type
    """
    formatter = ErrorFormatter()

    if format_type == 'user':
        return formatter.format_for_user(error)
    elif format_type == 'log':
        return formatter.format_for_log(error)
    else:
        raise ValueError(f"Unknown format type: {format_type}")
