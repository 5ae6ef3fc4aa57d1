"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - All valid states encoded as Enums — no raw string matching
    - utc_now() is the only source of "now" used by services (injectable clock)

Design Decisions:
    - str Enums: serialize to JSON without custom encoders
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable


# ─── Enums ───────────────────────────────────────────────────────

class CallStatus(str, Enum):
    """Call lifecycle states — maps to DB `status` column."""
    INITIATED = "initiated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class SpeakerRole(str, Enum):
    """Who spoke a transcript turn."""
    CALLER = "caller"
    AGENT = "agent"


# ─── Time ────────────────────────────────────────────────────────

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
