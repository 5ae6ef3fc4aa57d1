"""Usage Window — pure resolution of aggregation windows and minute rounding.

Invariants:
    - Both dates given: [from_date 00:00:00.000, to_date 23:59:59.999] UTC, inclusive
    - Either date missing: [now - default_span, now]
    - minutes_billed rounds up; 0 seconds is 0 minutes
"""

import math
from datetime import date, datetime, time, timedelta, timezone

DEFAULT_WINDOW = timedelta(hours=24)

_DAY_END = time(23, 59, 59, 999_000)


def resolve_window(
    from_date: date | None,
    to_date: date | None,
    now: datetime,
    default_span: timedelta = DEFAULT_WINDOW,
) -> tuple[datetime, datetime]:
    """Return inclusive (start, end) bounds as UTC datetimes."""
    if from_date is not None and to_date is not None:
        start = datetime.combine(from_date, time.min, tzinfo=timezone.utc)
        end = datetime.combine(to_date, _DAY_END, tzinfo=timezone.utc)
        return start, end
    return now - default_span, now


def minutes_billed(duration_seconds: float) -> int:
    return math.ceil((duration_seconds or 0) / 60)
