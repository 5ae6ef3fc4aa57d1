"""Usage Delta — validated, non-negative increments for per-call usage counters.

Invariants:
    - A UsageDelta never holds a negative value
    - Any negative field rejects the whole delta (no partial application)
    - Absent fields are 0; an all-zero delta is empty (caller treats as no-op)
    - tokens and characters are whole counts; a fractional value is rejected,
      never rounded
"""

import math
from dataclasses import dataclass

from callstore.core.errors import ErrorContext, EventValidationError, InvalidDeltaError


@dataclass(frozen=True)
class UsageDelta:
    tokens: int = 0
    characters: int = 0
    seconds: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not (self.tokens or self.characters or self.seconds)

    def as_increments(self) -> dict[str, int | float]:
        """Non-zero fields only, keyed by counter name."""
        return {
            name: value
            for name, value in (
                ("tokens", self.tokens),
                ("characters", self.characters),
                ("seconds", self.seconds),
            )
            if value
        }


def _as_number(
    value: object, field: str, context: ErrorContext | None, integral: bool = False,
) -> float:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EventValidationError(
            f"Usage delta '{field}' must be a number", field, context,
        )
    if not math.isfinite(value):
        raise EventValidationError(
            f"Usage delta '{field}' must be finite", field, context,
        )
    if integral and value != int(value):
        raise EventValidationError(
            f"Usage delta '{field}' must be a whole number", field, context,
        )
    return value


def build_usage_delta(
    tokens: object = None,
    characters: object = None,
    seconds: object = None,
    context: ErrorContext | None = None,
) -> UsageDelta:
    """Validate raw delta fields and build a UsageDelta.

    Raises InvalidDeltaError listing every negative field, and
    EventValidationError for non-numeric or fractional token/character values.
    """
    raw = {
        "tokens": _as_number(tokens, "tokens", context, integral=True),
        "characters": _as_number(characters, "characters", context, integral=True),
        "seconds": _as_number(seconds, "seconds", context),
    }
    negative = [name for name, value in raw.items() if value < 0]
    if negative:
        raise InvalidDeltaError(negative, context)
    return UsageDelta(
        tokens=int(raw["tokens"]),
        characters=int(raw["characters"]),
        seconds=float(raw["seconds"]),
    )
