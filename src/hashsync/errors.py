"""Exception taxonomy for hashsync.

Saturation is not an error: bounded operations return ``SATURATED`` (-1)
for a refused step. Everything below is raised synchronously and never
logged-and-ignored by the library.
"""

from typing import Optional

from hashsync.codes import ErrorCode


class HashSyncError(Exception):
    """Base class for all hashsync failures."""

    code: ErrorCode = ErrorCode.MAPPING_ERROR

    def __init__(self, message: str, *, key: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.key = key
        self.field = field


class MappingError(HashSyncError, TypeError):
    """Raised when a record cannot be converted to or from a field map."""

    code = ErrorCode.MAPPING_ERROR


class InvalidFieldError(HashSyncError, LookupError):
    """Raised when a field name does not exist on the record type."""

    code = ErrorCode.INVALID_FIELD


class ParseError(HashSyncError, ValueError):
    """Raised when a stored value is not a valid integer."""

    code = ErrorCode.PARSE_ERROR


class StoreUnavailableError(HashSyncError):
    """Raised when a gateway call cannot reach the store."""

    code = ErrorCode.STORE_UNAVAILABLE


class InvalidArgumentError(HashSyncError, ValueError):
    """Raised for a blank key or a non-positive step."""

    code = ErrorCode.INVALID_ARGUMENT


class InvalidBoundError(InvalidArgumentError):
    """Raised when a bound has minimum > maximum."""

    code = ErrorCode.INVALID_BOUND
