"""
Bitrix Cache - Core Error Types

Defines the exception hierarchy for the cache facade and its engines.
All exceptions inherit from BitrixCacheError for consistent error handling.

- ErrorCode enum for structured error responses
- Packing / TTL errors raised by the facade
- Operation errors raised by storage engines (never translated by the facade)
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Standard error codes for cache failures.

    Lets callers report the error kind without matching on exception types.
    """

    PACKING_NOT_ALLOWED = "PACKING_NOT_ALLOWED"
    INVALID_TTL = "INVALID_TTL"
    CACHE_FAILURE = "CACHE_FAILURE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class BitrixCacheError(Exception):
    """Base exception for all cache errors."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured reporting."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(BitrixCacheError):
    """Raised when configuration is invalid or missing."""

    error_code = ErrorCode.CONFIGURATION_ERROR


class CacheError(BitrixCacheError):
    """Base exception for cache-related errors."""

    error_code = ErrorCode.CACHE_FAILURE


class PackingNotAllowedError(CacheError):
    """Raised when a value cannot be packed for the engine.

    Objects may only be packed when their type is on the facade's allow-list.
    """

    error_code = ErrorCode.PACKING_NOT_ALLOWED

    def __init__(self, value_type: str, details: dict[str, Any] | None = None):
        message = f"Packing of {value_type} is not allowed"
        error_details = {"value_type": value_type}
        error_details.update(details or {})
        super().__init__(message, error_details)
        self.value_type = value_type


class InvalidTTLError(CacheError):
    """Raised when a TTL cannot be resolved to seconds."""

    error_code = ErrorCode.INVALID_TTL

    def __init__(self, ttl: Any):
        message = f"Invalid TTL: {ttl!r}"
        super().__init__(message, {"ttl": repr(ttl), "ttl_type": type(ttl).__name__})


class CacheOperationError(CacheError):
    """Raised by an engine when a physical read/write/clean fails."""

    pass


def make_error_response(
    error_code: ErrorCode,
    message: str,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        error_code: Standard error code
        message: Human-readable error message
        context: Additional context/details

    Returns:
        Standardized error response dictionary

    Example:
        >>> make_error_response(
        ...     ErrorCode.PACKING_NOT_ALLOWED,
        ...     "Packing of app.models.User is not allowed",
        ...     {"value_type": "app.models.User"}
        ... )
        {
            "success": False,
            "error_code": "PACKING_NOT_ALLOWED",
            "message": "Packing of app.models.User is not allowed",
            "details": {"value_type": "app.models.User"}
        }
    """
    return {
        "success": False,
        "error_code": error_code.value,
        "message": message,
        "details": context or {},
    }


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        Appropriate ErrorCode for the exception
    """
    if isinstance(error, BitrixCacheError):
        return error.error_code

    return ErrorCode.INTERNAL_ERROR
