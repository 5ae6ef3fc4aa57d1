"""Usage Counters — monotonic per-call tokens/characters/seconds.

Invariants:
    - Deltas are validated before the store is touched; a negative field
      rejects the whole delta and nothing changes
    - An all-zero delta is a successful no-op and never creates a record
    - There is no decrement or reset path
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from callstore.core.errors import ErrorContext
from callstore.core.event_rules import require_text
from callstore.core.usage_delta import build_usage_delta
from callstore.models import CallRecord
from callstore.services.call_record_store import CallRecordStore, MutationResult

logger = logging.getLogger(__name__)


class UsageCounters:

    def __init__(self, store: CallRecordStore):
        self.store = store

    async def apply_delta(
        self,
        session_id: str,
        tokens: object = None,
        characters: object = None,
        seconds: object = None,
    ) -> MutationResult:
        context = ErrorContext(session_id=session_id, operation="apply_usage_delta")
        session_id = require_text(session_id, "session_id", context)
        delta = build_usage_delta(tokens, characters, seconds, context)

        if delta.is_empty:
            return MutationResult(await self.store.find(session_id))

        async def increment(db: AsyncSession, record: CallRecord) -> bool:
            record.usage_tokens += delta.tokens
            record.usage_characters += delta.characters
            record.usage_seconds += delta.seconds
            return True

        result = await self.store.ensure_and_mutate(
            session_id, mutator=increment, operation="apply_usage_delta",
        )
        logger.debug(
            f"Usage delta {delta.as_increments()} applied",
            extra={"session_id": session_id, "operation": "apply_usage_delta"},
        )
        return result
