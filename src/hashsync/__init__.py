"""hashsync: keep records in sync with key-value store hashes, with bounded counters."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("hashsync")
except PackageNotFoundError:
    __version__ = "dev"

from hashsync.codes import ErrorCode
from hashsync.contracts import FieldBound
from hashsync.errors import (
    HashSyncError,
    InvalidArgumentError,
    InvalidBoundError,
    InvalidFieldError,
    MappingError,
    ParseError,
    StoreUnavailableError,
)
from hashsync.gateway import InMemoryGateway, RedisGateway, StoreGateway
from hashsync.kernel.field_map import field_exists, from_field_map, to_field_map
from hashsync.kernel.record_schema import register_record
from hashsync.synchronizer import SATURATED, BoundedHashSynchronizer, StepOutcome

__all__ = [
    "__version__",
    "BoundedHashSynchronizer",
    "SATURATED",
    "StepOutcome",
    "FieldBound",
    "StoreGateway",
    "InMemoryGateway",
    "RedisGateway",
    "to_field_map",
    "from_field_map",
    "field_exists",
    "register_record",
    "ErrorCode",
    "HashSyncError",
    "MappingError",
    "InvalidFieldError",
    "ParseError",
    "StoreUnavailableError",
    "InvalidArgumentError",
    "InvalidBoundError",
]
