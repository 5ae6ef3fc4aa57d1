"""Usage Aggregator — per-tenant usage totals over a time window.

Invariants:
    - Matches on tenant_id and started_at within the inclusive window
    - Missing duration counts as 0; minutes = ceil(total seconds / 60)
    - No matching calls yields all zeros, never an error
    - Read-only; not linearizable with concurrent writes (committed rows only)

Design Decisions:
    - One SQL aggregate over the (tenant_id, started_at) index instead of loading records
"""

import logging
from datetime import date, timedelta

from sqlalchemy import func, select

from callstore.core.domain_types import Clock, utc_now
from callstore.core.errors import ErrorContext
from callstore.core.event_rules import require_text
from callstore.core.usage_window import DEFAULT_WINDOW, minutes_billed, resolve_window
from callstore.infrastructure.database import DatabaseSessionManager, bounded
from callstore.models import CallRecord
from callstore.schemas.usage import UsageSummary

logger = logging.getLogger(__name__)


class UsageAggregator:
    """Computes UsageSummary for one tenant."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        timeout_seconds: float = 5.0,
        default_window: timedelta = DEFAULT_WINDOW,
        clock: Clock = utc_now,
    ):
        self._db = db
        self._timeout = timeout_seconds
        self._default_window = default_window
        self._clock = clock

    async def summarize(
        self,
        tenant_id: str,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> UsageSummary:
        context = ErrorContext(tenant_id=tenant_id, operation="summarize")
        tenant_id = require_text(tenant_id, "tenant_id", context)
        start, end = resolve_window(
            from_date, to_date, self._clock(), self._default_window,
        )
        calls, duration, tokens, characters = await bounded(
            self._aggregate(tenant_id, start, end), self._timeout, context,
        )
        return UsageSummary(
            tenant_id=tenant_id,
            window_from=start,
            window_to=end,
            calls=calls,
            duration_seconds=duration,
            minutes=minutes_billed(duration),
            tokens=tokens,
            characters=characters,
        )

    async def _aggregate(self, tenant_id, start, end) -> tuple[int, float, int, int]:
        stmt = (
            select(
                func.count(CallRecord.session_id),
                func.coalesce(func.sum(CallRecord.duration_seconds), 0),
                func.coalesce(func.sum(CallRecord.usage_tokens), 0),
                func.coalesce(func.sum(CallRecord.usage_characters), 0),
            )
            .where(CallRecord.tenant_id == tenant_id)
            .where(CallRecord.started_at >= start)
            .where(CallRecord.started_at <= end)
        )
        async with self._db.session() as db:
            row = (await db.execute(stmt)).one()
        return int(row[0]), float(row[1]), int(row[2]), int(row[3])
