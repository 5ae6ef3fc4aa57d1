"""Event Rules — pure validation and coercion for incoming call events.

Invariants:
    - Every function is pure: same input, same output, no IO
    - require_text rejects None, non-strings, whitespace-only and over-long values,
      and returns the value exactly as received (ids are opaque)
    - resolve_end_status never raises: unknown/missing status means COMPLETED
    - coerce_duration never raises: anything but a finite non-negative number is ignored

Design Decisions:
    - Lenient end-event coercion: terminal callbacks come from telephony
      providers that send numbers as strings, and an end event is never rejected
      for a malformed optional field
"""

import math

from callstore.core.domain_types import CallStatus, SpeakerRole
from callstore.core.errors import ErrorContext, EventValidationError


MAX_KEY_LENGTH = 128


def require_text(
    value: object,
    field: str,
    context: ErrorContext | None = None,
    max_length: int | None = MAX_KEY_LENGTH,
) -> str:
    """Return value unchanged, or raise EventValidationError if missing/blank/too long."""
    if not isinstance(value, str) or not value.strip():
        raise EventValidationError(
            f"Field '{field}' is required", field, context,
        )
    if max_length is not None and len(value) > max_length:
        raise EventValidationError(
            f"Field '{field}' exceeds {max_length} characters", field, context,
        )
    return value


def parse_speaker_role(value: object, context: ErrorContext | None = None) -> SpeakerRole:
    """Map raw role to SpeakerRole, or raise EventValidationError."""
    try:
        return SpeakerRole(value)
    except ValueError:
        raise EventValidationError(
            f"Invalid role '{value}' (expected caller or agent)", "role", context,
        )


def resolve_end_status(value: object) -> CallStatus:
    """Status to record on an end event. Falls back to COMPLETED."""
    if isinstance(value, CallStatus):
        return value
    try:
        return CallStatus(value)
    except ValueError:
        return CallStatus.COMPLETED


def coerce_duration(value: object) -> float | None:
    """Duration in seconds from a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            value = float(value)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return float(value)


def optional_key(
    value: str | None,
    field: str,
    context: ErrorContext | None = None,
    max_length: int = MAX_KEY_LENGTH,
) -> str | None:
    """Optional value as received. Blank means absent; over-long is rejected."""
    if value is None or not value.strip():
        return None
    return require_text(value, field, context, max_length)
