"""Public value models for hashsync."""

from pydantic import BaseModel, ConfigDict

from hashsync.errors import InvalidBoundError


class FieldBound(BaseModel):
    """Inclusive (minimum, maximum) range for a bounded counter field.

    Supplied by the caller on every bounded operation and never persisted.
    Frozen so a bound cannot drift between the check and the clamp.
    """
    minimum: int
    maximum: int

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data):
        super().__init__(**data)
        # Raised outside pydantic validation so callers see InvalidBoundError,
        # not a wrapped ValidationError.
        if self.minimum > self.maximum:
            raise InvalidBoundError(
                f"minimum ({self.minimum}) must be <= maximum ({self.maximum})"
            )

    def contains(self, value: int) -> bool:
        return self.minimum <= value <= self.maximum
