"""
Error hierarchy for the STARS client.

Every failure surfaced to a synchronous caller is a StarsError subclass
carrying the underlying cause, a numeric code and free-form context.

Error Code Ranges:
- 1000-1999: Connection, receive and transmit errors
- 2000-2999: Protocol errors
- 6000-6999: Configuration errors
- 8000-8999: Timeout errors
- 9000-9999: Unknown/System errors
"""

from typing import Optional, Dict, Any, List
from datetime import datetime
import traceback


class ErrorCodes:
    """Standard error codes for common error scenarios."""

    # Connection errors (1000-1999)
    CONNECTION_REFUSED = 1001
    CONNECTION_TIMEOUT = 1002
    CONNECTION_LOST = 1003
    SOCKET_ERROR = 1004
    HOST_NOT_FOUND = 1005
    NOT_CONNECTED = 1006

    # Protocol errors (2000-2999)
    INVALID_CHALLENGE = 2001
    HANDSHAKE_REJECTED = 2002

    # Configuration errors (6000-6999)
    CONFIG_NOT_FOUND = 6001
    CONFIG_INVALID = 6002
    KEYWORD_FILE_UNREADABLE = 6003
    KEYWORD_LIST_EMPTY = 6004

    # Timeout errors (8000-8999)
    RECEIVE_TIMEOUT = 8001

    # System errors (9000-9999)
    UNKNOWN_ERROR = 9000


class StarsError(Exception):
    """
    Base exception for all STARS client errors.

    Provides structured error information with context tracking.
    """

    DEFAULT_CODE = ErrorCodes.UNKNOWN_ERROR
    CATEGORY = 'SYSTEM'

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        suggestions: Optional[List[str]] = None
    ):
        """
        Initialize a STARS error.

        Args:
            message: Human-readable error description
            error_code: Numeric error code for categorization
            context: Additional context information
            cause: Original exception if this wraps another error
            suggestions: List of possible solutions or next steps
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.DEFAULT_CODE
        self.context = dict(context) if context else {}
        self.context.setdefault('category', self.CATEGORY)
        self.cause = cause
        self.suggestions = suggestions or []
        self.timestamp = datetime.now()

        self.stack_trace = None
        if cause is not None:
            self.context['original_error'] = str(cause)
            self.context['original_type'] = type(cause).__name__
            self.stack_trace = ''.join(
                traceback.format_exception(type(cause), cause, cause.__traceback__)
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'code': self.error_code,
            'context': self.context,
            'suggestions': self.suggestions,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'stack_trace': self.stack_trace
        }

    def format_user_message(self) -> str:
        """Format error for user display (without technical details)."""
        msg = f"{self.message}"
        if self.suggestions:
            msg += "\n\nSuggestions:"
            for i, suggestion in enumerate(self.suggestions, 1):
                msg += f"\n  {i}. {suggestion}"
        return msg

    def format_log_message(self) -> str:
        """Format error for logging (with all details)."""
        parts = [
            f"[{self.error_code}] {self.__class__.__name__}: {self.message}"
        ]

        if self.context:
            parts.append(f"Context: {self.context}")

        if self.cause:
            parts.append(f"Caused by: {self.cause}")

        if self.stack_trace:
            parts.append(f"Stack trace:\n{self.stack_trace}")

        return " | ".join(parts)


class ConfigError(StarsError):
    """Keyword source or configuration file could not be used."""
    DEFAULT_CODE = ErrorCodes.CONFIG_NOT_FOUND
    CATEGORY = 'CONFIGURATION'

    def __init__(self, message: str, setting_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if setting_name:
            self.context['setting'] = setting_name


class ConnectionError(StarsError):
    """DNS lookup or TCP connect failed, or the connection is not open."""
    DEFAULT_CODE = ErrorCodes.CONNECTION_REFUSED
    CATEGORY = 'CONNECTION'

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if host is not None:
            self.context['host'] = host
        if port is not None:
            self.context['port'] = port


class ProtocolError(StarsError):
    """The server violated or rejected the handshake."""
    DEFAULT_CODE = ErrorCodes.INVALID_CHALLENGE
    CATEGORY = 'PROTOCOL'

    def __init__(self, message: str, server_message: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if server_message is not None:
            self.context['server_message'] = server_message


class TimeoutError(StarsError):
    """A synchronous receive did not complete in time."""
    DEFAULT_CODE = ErrorCodes.RECEIVE_TIMEOUT
    CATEGORY = 'TIMEOUT'

    def __init__(self, message: str, timeout_seconds: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        if timeout_seconds is not None:
            self.context['timeout_seconds'] = timeout_seconds


class ReceiveError(StarsError):
    """The socket was closed or failed while reading."""
    DEFAULT_CODE = ErrorCodes.CONNECTION_LOST
    CATEGORY = 'RECEIVE'


class TransmitError(StarsError):
    """Writing a frame to the socket failed."""
    DEFAULT_CODE = ErrorCodes.SOCKET_ERROR
    CATEGORY = 'TRANSMIT'


def wrap_external_error(
    e: Exception,
    message: str,
    error_class=StarsError,
    error_code: Optional[int] = None,
    suggestions: Optional[List[str]] = None,
    **context
) -> StarsError:
    """
    Wrap an external exception in a StarsError.

    Args:
        e: The original exception
        message: Context-specific error message
        error_class: The StarsError subclass to use
        error_code: Error code (default: the class default)
        suggestions: Possible solutions or next steps
        **context: Additional context information

    Returns:
        A StarsError instance wrapping the original exception

    Example:
        >>> try:
        ...     open("term1.key")
        ... except OSError as e:
        ...     raise wrap_external_error(e, "Keyword file unreadable", ConfigError,
        ...                               path="term1.key") from e
    """
    return error_class(
        message=message,
        error_code=error_code,
        cause=e,
        suggestions=suggestions,
        context=context
    )
