"""Error code constants for hashsync exceptions.

These constants prevent stringly-typed error codes and let callers
branch on a failure kind without matching exception messages.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes carried by every HashSyncError."""

    # Caller input (raised before any store call)
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_BOUND = "INVALID_BOUND"
    INVALID_FIELD = "INVALID_FIELD"

    # Record <-> string map boundary
    MAPPING_ERROR = "MAPPING_ERROR"
    PARSE_ERROR = "PARSE_ERROR"

    # Store
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
