"""Field mapping: the serialization boundary between records and hash entries.

The store holds only strings. Everything typed lives on the record side;
this module is the single place that formats values for the store and
parses them back.

Encoding rules (to_field_map):
- None values omitted (never stored as "")
- str as-is
- bool as "true" / "false"
- int and Decimal via str()
- float via repr() (round-trips exactly)
- Enum via its value, encoded with the same rules
- date / datetime via isoformat()
- anything else is a MappingError
"""

import enum
import re
import typing
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from hashsync.errors import InvalidFieldError, MappingError, ParseError
from hashsync.kernel.record_schema import schema_for

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INT_RE = re.compile(r"-?[0-9]+")


def encode_value(value: Any, field_name: str = "") -> str:
    """Encode one scalar field value as its store string."""
    if isinstance(value, enum.Enum):
        return encode_value(value.value, field_name)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, date):
        return value.isoformat()
    raise MappingError(
        f"Field '{field_name}' has unsupported type {type(value).__name__}; "
        f"only scalar fields can be stored in a hash",
        field=field_name or None,
    )


def to_field_map(record: Any) -> Dict[str, str]:
    """Convert a record into a flat mapping of field name to string value.

    Deterministic and pure: fields appear in declaration order and the
    record is not modified.

    Args:
        record: pydantic model instance or dataclass instance

    Returns:
        Dict of field name -> encoded value, without None-valued fields

    Raises:
        MappingError: if the record type cannot be introspected or a field
            holds a non-scalar value
    """
    if record is None or isinstance(record, type):
        raise MappingError(f"Expected a record instance, got {record!r}")
    schema = schema_for(type(record))
    field_map: Dict[str, str] = {}
    for name in schema.fields:
        value = getattr(record, name, None)
        if value is None:
            continue
        field_map[name] = encode_value(value, name)
    return field_map


def field_exists(record_type: type, field_name: str) -> bool:
    """Structural lookup: does ``record_type`` declare ``field_name``?

    Reads no value and touches no store.
    """
    return schema_for(record_type).has_field(field_name)


def require_field(record_type: type, field_name: str) -> None:
    """Raise InvalidFieldError unless ``record_type`` declares ``field_name``."""
    if not field_name or not field_exists(record_type, field_name):
        raise InvalidFieldError(
            f"Field '{field_name}' does not exist on {record_type.__name__}",
            field=field_name,
        )


def parse_int(value: str, field_name: str = "", key: Optional[str] = None) -> int:
    """Strictly parse a stored counter value.

    Accepts only an optionally signed run of decimal digits within the
    64-bit signed range. Whitespace, '+', '_' separators, and decimals are
    rejected; nothing is ever coerced to zero.
    """
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if not isinstance(value, str) or _INT_RE.fullmatch(value) is None:
        raise ParseError(
            f"Value {value!r} of field '{field_name}' is not an integer",
            key=key,
            field=field_name or None,
        )
    number = int(value)
    if number < INT64_MIN or number > INT64_MAX:
        raise ParseError(
            f"Value {value!r} of field '{field_name}' is out of 64-bit range",
            key=key,
            field=field_name or None,
        )
    return number


def _unwrap_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) is typing.Union:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _decode_value(text: str, annotation: Any, field_name: str) -> Any:
    annotation = _unwrap_optional(annotation)
    if not isinstance(annotation, type):
        return text
    try:
        if issubclass(annotation, enum.Enum):
            for member in annotation:
                if encode_value(member.value, field_name) == text:
                    return member
            raise ValueError(f"no {annotation.__name__} member with value {text!r}")
        if issubclass(annotation, bool):
            if text not in ("true", "false"):
                raise ValueError(f"expected 'true' or 'false', got {text!r}")
            return text == "true"
        if issubclass(annotation, int):
            return parse_int(text, field_name)
        if issubclass(annotation, float):
            return float(text)
        if issubclass(annotation, Decimal):
            return Decimal(text)
        if issubclass(annotation, datetime):
            return datetime.fromisoformat(text)
        if issubclass(annotation, date):
            return date.fromisoformat(text)
    except (ValueError, InvalidOperation, ParseError) as exc:
        raise MappingError(
            f"Cannot decode field '{field_name}' as {annotation.__name__}: {exc}",
            field=field_name,
        ) from exc
    return text


def from_field_map(record_type: type, mapping: Mapping[str, str]) -> Any:
    """Build a record of ``record_type`` from a hash entry's string mapping.

    Hash fields the record type does not declare are ignored. Pydantic
    models validate the strings themselves; dataclass fields are decoded
    according to their annotations.

    Raises:
        MappingError: if the mapping cannot produce a valid record
    """
    schema = schema_for(record_type)
    known = {name: value for name, value in mapping.items() if schema.has_field(name)}

    if schema.kind == "model":
        try:
            return record_type.model_validate(known)
        except ValidationError as exc:
            raise MappingError(
                f"Cannot build {record_type.__name__} from hash entry: {exc}"
            ) from exc

    kwargs = {
        name: _decode_value(value, schema.annotation(name), name)
        for name, value in known.items()
    }
    try:
        return record_type(**kwargs)
    except TypeError as exc:
        raise MappingError(
            f"Cannot build {record_type.__name__} from hash entry: {exc}"
        ) from exc
