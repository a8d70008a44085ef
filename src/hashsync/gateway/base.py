"""Store gateway protocol.

A gateway exposes the key-value store's primitives. Each call is atomic on
its own (per key, per field); no sequence of calls is. The synchronizer
relies on exactly that and nothing more.
"""

from typing import Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class StoreGateway(Protocol):
    """Protocol for hash-capable key-value store gateways."""

    def hash_set_all(self, key: str, mapping: Dict[str, str]) -> None:
        """Atomically replace the whole hash at ``key`` with ``mapping``.

        Fields previously stored at ``key`` and absent from ``mapping``
        are removed.
        """
        ...

    def hash_set_field(self, key: str, field: str, value: str) -> int:
        """Set one field.

        Returns:
            1 if the field was created, 0 if an existing field was updated
        """
        ...

    def hash_get_field(self, key: str, field: str) -> Optional[str]:
        """Return the field's value, or None when the key or field is absent."""
        ...

    def hash_get_all(self, key: str) -> Dict[str, str]:
        """Return every field of the hash; empty dict when the key is absent."""
        ...

    def hash_field_exists(self, key: str, field: str) -> bool:
        ...

    def hash_increment_field(self, key: str, field: str, delta: int) -> int:
        """Atomically add ``delta`` to an integer field and return the result.

        An absent field counts as 0.

        Raises:
            ParseError: if the stored value is not an integer
        """
        ...

    def hash_increment_bounded(self, key: str, field: str, delta: int, bound: int) -> Optional[int]:
        """Refuse, increment, and clamp as one atomic step.

        Refuses (returns None) when the field is absent, or when the current
        value is already at or past ``bound`` in the direction of ``delta``.
        Otherwise adds ``delta`` and clamps the result to ``bound``.

        Returns:
            The stored value after the step, or None on refusal
        """
        ...

    def hash_delete_fields(self, key: str, *fields: str) -> int:
        """Delete fields and return how many existed."""
        ...

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> bool:
        ...

    def incr(self, key: str) -> int:
        ...

    def expire(self, key: str, seconds: int) -> int:
        """Set a time-to-live. Returns 1 if set, 0 if the key does not exist."""
        ...

    def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        ...

    def exists(self, key: str) -> bool:
        ...

    def ttl(self, key: str) -> int:
        """Seconds left to live; -1 without expiry, -2 when the key is absent."""
        ...
