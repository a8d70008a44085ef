"""Record schemas: a registration-time table of field names per record type.

Field validation never probes attributes at call time. Instead each record
type is described once, the first time it is seen (or explicitly through
``register_record``), and every later lookup is a dict hit keyed by type
identity.

Supported record types:
- pydantic ``BaseModel`` subclasses (fields from ``model_fields``)
- dataclasses (fields from ``dataclasses.fields``)
"""

import dataclasses
import threading
import typing
from dataclasses import dataclass
from typing import Any, Dict, Literal, Tuple

from pydantic import BaseModel

from hashsync.errors import MappingError


@dataclass(frozen=True)
class RecordSchema:
    """Ordered field names and declared types of one record type."""
    record_type: type
    kind: Literal["model", "dataclass"]
    fields: Tuple[str, ...]
    annotations: Dict[str, Any]

    def has_field(self, name: str) -> bool:
        return name in self.annotations

    def annotation(self, name: str) -> Any:
        return self.annotations.get(name, Any)


_SCHEMAS: Dict[type, RecordSchema] = {}
_LOCK = threading.Lock()


def _build_schema(record_type: type) -> RecordSchema:
    if issubclass(record_type, BaseModel):
        model_fields = record_type.model_fields
        annotations = {name: info.annotation for name, info in model_fields.items()}
        return RecordSchema(
            record_type=record_type,
            kind="model",
            fields=tuple(model_fields),
            annotations=annotations,
        )

    if dataclasses.is_dataclass(record_type):
        dc_fields = dataclasses.fields(record_type)
        try:
            hints = typing.get_type_hints(record_type)
        except (NameError, TypeError):
            # Unresolvable forward reference: fall back to the raw declarations
            hints = {}
        annotations = {f.name: hints.get(f.name, f.type) for f in dc_fields}
        return RecordSchema(
            record_type=record_type,
            kind="dataclass",
            fields=tuple(f.name for f in dc_fields),
            annotations=annotations,
        )

    raise MappingError(
        f"Cannot introspect record type {record_type.__name__}: "
        f"expected a pydantic model or a dataclass"
    )


def register_record(record_type):
    """Register a record type and return it unchanged.

    Usable as a class decorator so the schema is built at import time:

        @register_record
        @dataclass
        class Player:
            hp: int

    Args:
        record_type: pydantic model class or dataclass type

    Returns:
        The same type

    Raises:
        MappingError: if the type is neither a pydantic model nor a dataclass
    """
    schema_for(record_type)
    return record_type


def schema_for(record_type: type) -> RecordSchema:
    """Return the cached schema for ``record_type``, building it on first use."""
    if not isinstance(record_type, type):
        raise MappingError(
            f"Expected a record type, got an instance of {type(record_type).__name__}"
        )
    schema = _SCHEMAS.get(record_type)
    if schema is not None:
        return schema
    with _LOCK:
        schema = _SCHEMAS.get(record_type)
        if schema is None:
            schema = _build_schema(record_type)
            _SCHEMAS[record_type] = schema
    return schema


def clear_registry() -> None:
    """Forget every registered schema (tests and hot reload)."""
    with _LOCK:
        _SCHEMAS.clear()
