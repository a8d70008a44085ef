"""In-process store gateway.

Thread-safe with one coarse lock: every primitive runs entirely under it,
which gives the same per-call atomicity a Redis server gives. Sequences of
calls interleave freely, exactly like they do against a real server.
For single-process runs and tests; multi-process needs RedisGateway.
"""

import logging
import math
import threading
import time
from typing import Callable, Dict, Optional, Union

from hashsync.errors import InvalidArgumentError, ParseError
from hashsync.kernel.field_map import INT64_MAX, INT64_MIN, parse_int

logger = logging.getLogger(__name__)

_Value = Union[str, Dict[str, str]]


class InMemoryGateway:
    """Dict-backed gateway with Redis-like semantics for strings and hashes."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._data: Dict[str, _Value] = {}
        self._expires_at: Dict[str, float] = {}
        self._lock = threading.RLock()
        self._clock = clock

    # ---- internals (caller holds the lock) ----

    def _purge(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            logger.debug("key %s expired", key)
            self._data.pop(key, None)
            self._expires_at.pop(key, None)

    def _hash(self, key: str, create: bool = False) -> Optional[Dict[str, str]]:
        self._purge(key)
        value = self._data.get(key)
        if value is None:
            if not create:
                return None
            value = {}
            self._data[key] = value
        if not isinstance(value, dict):
            raise InvalidArgumentError(f"WRONGTYPE key '{key}' holds a string, not a hash", key=key)
        return value

    def _string(self, key: str) -> Optional[str]:
        self._purge(key)
        value = self._data.get(key)
        if value is not None and not isinstance(value, str):
            raise InvalidArgumentError(f"WRONGTYPE key '{key}' holds a hash, not a string", key=key)
        return value

    def _remove_if_empty(self, key: str) -> None:
        if self._data.get(key) == {}:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)

    # ---- hash primitives ----

    def hash_set_all(self, key: str, mapping: Dict[str, str]) -> None:
        with self._lock:
            self._data[key] = dict(mapping)
            self._expires_at.pop(key, None)
            self._remove_if_empty(key)

    def hash_set_field(self, key: str, field: str, value: str) -> int:
        with self._lock:
            entry = self._hash(key, create=True)
            created = field not in entry
            entry[field] = str(value)
            return 1 if created else 0

    def hash_get_field(self, key: str, field: str) -> Optional[str]:
        with self._lock:
            entry = self._hash(key)
            return None if entry is None else entry.get(field)

    def hash_get_all(self, key: str) -> Dict[str, str]:
        with self._lock:
            entry = self._hash(key)
            return dict(entry) if entry else {}

    def hash_field_exists(self, key: str, field: str) -> bool:
        with self._lock:
            entry = self._hash(key)
            return entry is not None and field in entry

    def hash_increment_field(self, key: str, field: str, delta: int) -> int:
        with self._lock:
            entry = self._hash(key, create=True)
            current = parse_int(entry.get(field, "0"), field, key)
            new_value = self._checked_add(current, delta, key, field)
            entry[field] = str(new_value)
            return new_value

    def hash_increment_bounded(self, key: str, field: str, delta: int, bound: int) -> Optional[int]:
        with self._lock:
            entry = self._hash(key)
            if entry is None or field not in entry:
                return None
            current = parse_int(entry[field], field, key)
            if (delta > 0 and current >= bound) or (delta < 0 and current <= bound):
                return None
            new_value = current + delta
            if (delta > 0 and new_value > bound) or (delta < 0 and new_value < bound):
                new_value = bound
            entry[field] = str(new_value)
            return new_value

    def hash_delete_fields(self, key: str, *fields: str) -> int:
        with self._lock:
            entry = self._hash(key)
            if entry is None:
                return 0
            removed = sum(1 for f in fields if entry.pop(f, None) is not None)
            self._remove_if_empty(key)
            return removed

    # ---- key / string primitives ----

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._string(key)

    def set(self, key: str, value: str) -> bool:
        with self._lock:
            self._data[key] = str(value)
            self._expires_at.pop(key, None)
            return True

    def incr(self, key: str) -> int:
        with self._lock:
            current = parse_int(self._string(key) or "0", key=key)
            new_value = self._checked_add(current, 1, key, "")
            self._data[key] = str(new_value)
            return new_value

    def expire(self, key: str, seconds: int) -> int:
        with self._lock:
            self._purge(key)
            if key not in self._data:
                return 0
            self._expires_at[key] = self._clock() + seconds
            self._purge(key)
            return 1

    def delete(self, *keys: str) -> int:
        with self._lock:
            removed = 0
            for key in keys:
                self._purge(key)
                if self._data.pop(key, None) is not None:
                    removed += 1
                self._expires_at.pop(key, None)
            return removed

    def exists(self, key: str) -> bool:
        with self._lock:
            self._purge(key)
            return key in self._data

    def ttl(self, key: str) -> int:
        with self._lock:
            self._purge(key)
            if key not in self._data:
                return -2
            deadline = self._expires_at.get(key)
            if deadline is None:
                return -1
            return max(0, math.ceil(deadline - self._clock()))

    @staticmethod
    def _checked_add(current: int, delta: int, key: str, field: str) -> int:
        new_value = current + delta
        if new_value < INT64_MIN or new_value > INT64_MAX:
            # Redis refuses the increment and leaves the value unchanged
            raise ParseError("increment or decrement would overflow", key=key, field=field or None)
        return new_value
