"""
Cashbox - Core Error Types

Defines the exception hierarchy for the cache facade and its stores.
All exceptions inherit from CashboxError for consistent error handling.

Taxonomy:
- ValidationError: bad arguments, raised before any store call
- CacheOperationError / CacheConnectionError: store failures
- LoaderError: a caller-supplied miss loader failed
- WriteBackError: a loaded value could not be written back to the store
- TaggingNotSupportedError: the configured store has no tag index
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Stable error codes for structured error reporting.
    """

    # Argument errors
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_KEY = "INVALID_KEY"
    INVALID_TAGS = "INVALID_TAGS"
    INVALID_TTL = "INVALID_TTL"

    # Store errors
    CACHE_FAILURE = "CACHE_FAILURE"
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"
    SERIALIZATION_FAILURE = "SERIALIZATION_FAILURE"
    WRITE_BACK_FAILURE = "WRITE_BACK_FAILURE"

    # Loader errors
    LOADER_FAILURE = "LOADER_FAILURE"

    # Capability errors
    TAGGING_NOT_SUPPORTED = "TAGGING_NOT_SUPPORTED"

    # Setup errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    MISSING_DEPENDENCY = "MISSING_DEPENDENCY"


class CashboxError(Exception):
    """Base exception for all Cashbox errors."""

    code: ErrorCode = ErrorCode.CACHE_FAILURE

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for structured logs and responses."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(CashboxError):
    """Raised when configuration is invalid or a store cannot be built."""

    code = ErrorCode.CONFIGURATION_ERROR


class DependencyError(ConfigurationError):
    """Raised when a store's client library is not installed."""

    code = ErrorCode.MISSING_DEPENDENCY

    def __init__(
        self,
        package: str,
        feature: str | None = None,
        install_hint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        if feature:
            message = f"Required dependency '{package}' is missing for {feature}"
        else:
            message = f"Required dependency '{package}' is missing"

        if install_hint:
            message += f". Install with: {install_hint}"

        error_details = details or {}
        error_details.update(
            {
                "package": package,
                "feature": feature,
                "install_hint": install_hint,
            }
        )

        super().__init__(message, error_details)


class ValidationError(CashboxError):
    """Raised when an argument has the wrong type or shape."""

    code = ErrorCode.INVALID_INPUT

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode | None = None,
    ):
        super().__init__(message, details)
        if code is not None:
            self.code = code


class CacheError(CashboxError):
    """Base exception for store-related errors."""


class CacheConnectionError(CacheError):
    """Raised when the store cannot be reached."""

    code = ErrorCode.CACHE_UNAVAILABLE

    def __init__(self, backend: str, details: dict[str, Any] | None = None):
        message = f"Failed to connect to cache backend: {backend}"
        super().__init__(message, details)


class CacheOperationError(CacheError):
    """Raised when a store command fails."""


class SerializationError(CacheOperationError):
    """Raised when a value cannot be encoded for, or decoded from, a store."""

    code = ErrorCode.SERIALIZATION_FAILURE


class WriteBackError(CacheOperationError):
    """
    Raised when loaded values could not be written back to the store.

    The loaded data is kept on the exception so callers can still use it.
    """

    code = ErrorCode.WRITE_BACK_FAILURE

    def __init__(self, message: str, value: Any, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.value = value


class LoaderError(CashboxError):
    """Raised when a miss loader fails or returns an unusable result."""

    code = ErrorCode.LOADER_FAILURE


class TaggingNotSupportedError(CashboxError):
    """Raised when tags are used with a store that has no tag index."""

    code = ErrorCode.TAGGING_NOT_SUPPORTED

    def __init__(self, backend: str, operation: str):
        message = f"Cache store '{backend}' does not support tagging ({operation})"
        super().__init__(message, {"backend": backend, "operation": operation})


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract the ErrorCode for an exception.

    Non-Cashbox exceptions map to CACHE_FAILURE.
    """
    if isinstance(error, CashboxError):
        return error.code
    return ErrorCode.CACHE_FAILURE
