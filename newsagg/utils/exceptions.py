"""
NewsAgg Exceptions
==================

Exception hierarchy for the ingestion pipeline. Every error carries a
categorized code, a context dict for structured logging and a message that
is safe to show an operator.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes grouped by subsystem prefix."""

    # Configuration (C)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Database (D)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed download and parsing (F)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_ACCESS_DENIED = "F005"
    FEED_NOT_FOUND = "F006"

    # AI enrichment (A)
    AI_API_ERROR = "A001"
    AI_INVALID_RESPONSE = "A003"
    AI_TIMEOUT = "A004"
    AI_RATE_LIMIT = "A006"
    AI_PROVIDER_UNAVAILABLE = "A008"
    AI_CONNECTION_ERROR = "A010"

    # Source management (S)
    SOURCE_NOT_FOUND = "S001"
    SOURCE_DUPLICATE = "S002"
    SOURCE_DISABLED = "S003"

    # Validation (V)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_OUT_OF_RANGE = "V003"

    # System (X)
    SYSTEM_PERMISSION_DENIED = "X002"
    SYSTEM_MEMORY_ERROR = "X004"


class NewsAggError(Exception):
    """Base exception for all NewsAgg errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize the error.

        Args:
            message: Technical message for logs
            error_code: Categorized error code
            context: Additional context information
            user_message: Operator-facing message
            recoverable: Whether retrying later may succeed
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _with_context(kwargs: Dict[str, Any], **values: Any) -> Dict[str, Any]:
    """Pop ``context`` from kwargs and add the non-empty values to it."""
    context = kwargs.pop("context", None) or {}
    for key, value in values.items():
        if value is not None:
            context[key] = value
    return context


class ConfigurationError(NewsAggError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, config_key=config_key)
        kwargs.setdefault("error_code", ErrorCode.CONFIG_INVALID)
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        super().__init__(message, context=context, **kwargs)


class DatabaseError(NewsAggError):
    """Storage layer failures."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, query=query)
        kwargs.setdefault("error_code", ErrorCode.DATABASE_CONNECTION)
        kwargs.setdefault("user_message", "Database operation failed")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class FeedError(NewsAggError):
    """Feed download and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for NewsAggError
        """
        context = _with_context(kwargs, feed_url=feed_url)
        kwargs.setdefault("error_code", ErrorCode.FEED_NETWORK_ERROR)
        kwargs.setdefault("user_message", f"Feed processing failed: {message}")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class FeedFetchError(FeedError):
    """The feed could not be downloaded."""

    pass


class FeedParseError(FeedError):
    """The feed document could not be parsed into entries."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        super().__init__(message, feed_url=feed_url, **kwargs)


class AIError(NewsAggError):
    """AI backend errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        **kwargs,
    ):
        """Initialize AI error.

        Args:
            message: Error message
            provider: Provider name (e.g. 'completion')
            model: Model identifier used for the call
            **kwargs: Additional arguments for NewsAggError
        """
        context = _with_context(kwargs, ai_provider=provider, model=model)
        kwargs.setdefault("error_code", ErrorCode.AI_API_ERROR)
        kwargs.setdefault("user_message", "AI enrichment temporarily unavailable")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class SourceManagementError(NewsAggError):
    """Source administration errors (unknown id, duplicate URL...)."""

    def __init__(self, message: str, source_id: Optional[int] = None, **kwargs):
        context = _with_context(kwargs, source_id=source_id)
        kwargs.setdefault("error_code", ErrorCode.SOURCE_NOT_FOUND)
        kwargs.setdefault("user_message", "Source management operation failed")
        super().__init__(message, context=context, **kwargs)


class ValidationError(NewsAggError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, field_name=field_name)
        kwargs.setdefault("error_code", ErrorCode.VALIDATION_INVALID_FORMAT)
        kwargs.setdefault("user_message", f"Invalid {field_name or 'input'}: {message}")
        super().__init__(message, context=context, **kwargs)


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> NewsAggError:
    """Convert an arbitrary exception into a NewsAggError and log it.

    Args:
        exception: Original exception
        logger: Logger used for the error record
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        Categorized NewsAgg exception
    """
    if isinstance(exception, NewsAggError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    context = dict(context or {})
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, (ConnectionError, TimeoutError)):
        error = NewsAggError(
            message=f"Network error during {operation}: {exception}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )
    elif isinstance(exception, PermissionError):
        error = NewsAggError(
            message=f"Permission denied during {operation}: {exception}",
            error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
            context=context,
            user_message="Access denied",
        )
    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            message=f"Required file not found during {operation}: {exception}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
        )
    elif isinstance(exception, MemoryError):
        error = NewsAggError(
            message=f"Memory exhausted during {operation}: {exception}",
            error_code=ErrorCode.SYSTEM_MEMORY_ERROR,
            context=context,
            recoverable=True,
        )
    else:
        error = NewsAggError(
            message=f"Unexpected error during {operation}: {exception}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def is_retryable_error(exception: NewsAggError) -> bool:
    """Check whether a later attempt may succeed."""
    if not exception.recoverable:
        return False

    retryable_codes = {
        ErrorCode.FEED_NETWORK_ERROR,
        ErrorCode.FEED_FETCH_TIMEOUT,
        ErrorCode.AI_TIMEOUT,
        ErrorCode.AI_RATE_LIMIT,
        ErrorCode.AI_CONNECTION_ERROR,
        ErrorCode.DATABASE_CONNECTION,
    }
    return exception.error_code in retryable_codes
