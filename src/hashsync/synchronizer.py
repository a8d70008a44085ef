"""Bounded hash synchronizer.

Keeps a record in sync with a hash entry and runs clamped counter steps on
single numeric fields of that hash.

Bounded steps (default mode) are three store round trips:

    read -> atomic field increment -> corrective clamp (only on overshoot)

The synchronizer holds no lock. Between the increment and the clamp the
field briefly holds a value past the bound, and a clamp is a plain field
set, so it can overwrite a concurrent opposing step. Once no caller is in
flight the stored value is within the bound. ``strict=True`` moves the
whole step server side (gateway ``hash_increment_bounded``) so no
out-of-range value is ever visible.
"""

import logging
from typing import Any, Dict, NamedTuple, Optional

from hashsync.contracts import FieldBound
from hashsync.errors import InvalidArgumentError
from hashsync.gateway.base import StoreGateway
from hashsync.kernel.field_map import from_field_map, parse_int, require_field, to_field_map

logger = logging.getLogger(__name__)

# Returned by bounded steps that were refused (field unset or already saturated)
SATURATED = -1


class StepOutcome(NamedTuple):
    """Result of one bounded step: whether it was refused, and the stored value."""
    refused: bool
    # Stored value after the step; SATURATED when refused
    value: int


_REFUSED = StepOutcome(refused=True, value=SATURATED)


def _require_key(key: str) -> None:
    if not isinstance(key, str) or not key.strip():
        raise InvalidArgumentError(f"Key must be a non-blank string, got {key!r}")


def _require_step(delta: int, name: str = "delta") -> None:
    if isinstance(delta, bool) or not isinstance(delta, int) or delta <= 0:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {delta!r}")


class BoundedHashSynchronizer:
    """Record <-> hash sync plus bounded counter operations over a StoreGateway."""

    def __init__(self, gateway: StoreGateway, strict: bool = False):
        self.gateway = gateway
        self.strict = strict

    # ---- sync ----

    def full_sync(self, record: Any, key: str) -> Dict[str, str]:
        """Overwrite the whole hash at ``key`` with the record's fields.

        Fields stored at ``key`` but absent from the record are destroyed.
        An empty field map writes nothing.

        Args:
            record: pydantic model or dataclass instance
            key: hash key

        Returns:
            The computed field map, whether or not a write happened
        """
        _require_key(key)
        field_map = to_field_map(record)
        if field_map:
            logger.debug("full sync of %d fields to %s", len(field_map), key)
            self.gateway.hash_set_all(key, field_map)
        return field_map

    def incremental_sync(self, record: Any, key: str) -> Dict[str, str]:
        """Set each of the record's fields on ``key`` with its own store call.

        Merge semantics: fields absent from the record are left alone. Not
        atomic across fields; a concurrent reader can see a partial update.

        Returns:
            The computed field map
        """
        _require_key(key)
        field_map = to_field_map(record)
        for name, value in field_map.items():
            if value is None:
                continue
            self.gateway.hash_set_field(key, name, value)
        if field_map:
            logger.debug("incremental sync of %d fields to %s", len(field_map), key)
        return field_map

    def load(self, record_type: type, key: str) -> Optional[Any]:
        """Read the hash at ``key`` back into a ``record_type`` instance.

        Returns None when the entry does not exist.
        """
        _require_key(key)
        mapping = self.gateway.hash_get_all(key)
        if not mapping:
            return None
        return from_field_map(record_type, mapping)

    # ---- bounded counters ----

    def try_increment(
        self, record_type: type, key: str, field_name: str, delta: int, max_value: int
    ) -> StepOutcome:
        """Add ``delta`` to ``field_name`` without letting it exceed ``max_value``.

        Refused when the field is unset or already at or above ``max_value``.
        An overshoot is clamped to exactly ``max_value``. Unlike
        bounded_increment, a refusal is reported apart from the value, so a
        step that lands on -1 is not mistaken for one.

        Raises:
            InvalidArgumentError: blank key or non-positive delta
            InvalidFieldError: ``field_name`` not declared on ``record_type``
            ParseError: stored value is not an integer
            StoreUnavailableError: the store could not be reached
        """
        _require_key(key)
        _require_step(delta)
        require_field(record_type, field_name)
        return self._step(key, field_name, delta, max_value)

    def try_decrement(
        self, record_type: type, key: str, field_name: str, delta: int, min_value: int
    ) -> StepOutcome:
        """Mirror of try_increment against ``min_value``."""
        _require_key(key)
        _require_step(delta)
        require_field(record_type, field_name)
        return self._step(key, field_name, -delta, min_value)

    def bounded_increment(
        self, record_type: type, key: str, field_name: str, delta: int, max_value: int
    ) -> int:
        """Add ``delta`` to ``field_name`` without letting it exceed ``max_value``.

        Returns:
            The stored value after the step, or SATURATED when refused
        """
        return self.try_increment(record_type, key, field_name, delta, max_value).value

    def bounded_decrement(
        self, record_type: type, key: str, field_name: str, delta: int, min_value: int
    ) -> int:
        """Subtract ``delta`` from ``field_name`` without letting it drop below ``min_value``.

        Mirror of bounded_increment: refused when unset or already at or
        below ``min_value``; an undershoot is clamped to exactly ``min_value``.
        """
        return self.try_decrement(record_type, key, field_name, delta, min_value).value

    def adjust(
        self, record_type: type, key: str, field_name: str, delta: int, bound: FieldBound
    ) -> int:
        """Move ``field_name`` by a signed ``delta`` within ``bound``."""
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidArgumentError(f"delta must be a non-zero integer, got {delta!r}")
        if delta > 0:
            return self.bounded_increment(record_type, key, field_name, delta, bound.maximum)
        return self.bounded_decrement(record_type, key, field_name, -delta, bound.minimum)

    def _step(self, key: str, field_name: str, signed_delta: int, bound: int) -> StepOutcome:
        upward = signed_delta > 0

        if self.strict:
            result = self.gateway.hash_increment_bounded(key, field_name, signed_delta, bound)
            if result is None:
                logger.info("refused %+d on %s.%s (bound %d)", signed_delta, key, field_name, bound)
                return _REFUSED
            return StepOutcome(refused=False, value=result)

        raw = self.gateway.hash_get_field(key, field_name)
        if raw is None:
            logger.info("refused %+d on %s.%s: field unset", signed_delta, key, field_name)
            return _REFUSED
        current = parse_int(raw, field_name, key)
        if (upward and current >= bound) or (not upward and current <= bound):
            logger.info(
                "refused %+d on %s.%s: %d already at bound %d",
                signed_delta, key, field_name, current, bound,
            )
            return _REFUSED

        new_value = self.gateway.hash_increment_field(key, field_name, signed_delta)
        logger.debug("%s.%s %d -> %d", key, field_name, current, new_value)

        if (upward and new_value > bound) or (not upward and new_value < bound):
            # Plain set, no compare: may overwrite a concurrent opposing step
            self.gateway.hash_set_field(key, field_name, str(bound))
            logger.info("clamped %s.%s from %d to %d", key, field_name, new_value, bound)
            return StepOutcome(refused=False, value=bound)
        return StepOutcome(refused=False, value=new_value)
