"""Event Log — append-only transcript and tool-invocation sequences per call.

Invariants:
    - An entry carrying turn_id/event_id is stored at most once per session;
      a redelivery returns the current record with noop=True
    - The existence check and the append run inside one store mutation, so two
      concurrent appends of the same key cannot both succeed
    - Entries without a key always append (no content-based dedup)
    - Sequence order is append order; omitted timestamps are server-assigned
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from callstore.core.domain_types import ensure_utc
from callstore.core.errors import ErrorContext
from callstore.core.event_rules import optional_key, parse_speaker_role, require_text
from callstore.models import CallRecord, ToolEvent, TranscriptEntry
from callstore.services.call_record_store import CallRecordStore, MutationResult

logger = logging.getLogger(__name__)


class EventLog:
    """Idempotent appends to a call's transcript and tool-event sequences."""

    def __init__(self, store: CallRecordStore):
        self.store = store

    def _timestamp(self, value: datetime | None) -> datetime:
        return ensure_utc(value) if value else self.store.clock()

    async def append_transcript(
        self,
        session_id: str,
        role: object,
        text: str,
        timestamp: datetime | None = None,
        turn_id: str | None = None,
    ) -> MutationResult:
        """Append one transcript turn unless turn_id was already recorded."""
        context = ErrorContext(session_id=session_id, operation="append_transcript")
        session_id = require_text(session_id, "session_id", context)
        speaker = parse_speaker_role(role, context)
        text = require_text(text, "text", context, max_length=None)
        turn_id = optional_key(turn_id, "turn_id", context)
        at = self._timestamp(timestamp)

        async def append(db: AsyncSession, record: CallRecord) -> bool:
            if turn_id is not None and await _has_key(
                db, TranscriptEntry.turn_id, TranscriptEntry.call_session_id,
                session_id, turn_id,
            ):
                return False
            record.transcript.append(TranscriptEntry(
                turn_id=turn_id, speaker_role=speaker.value, text=text, timestamp=at,
            ))
            return True

        result = await self.store.ensure_and_mutate(
            session_id, mutator=append, operation="append_transcript",
        )
        if result.noop:
            logger.info(
                f"Duplicate transcript turn {turn_id} ignored",
                extra={"session_id": session_id, "noop": True},
            )
        return result

    async def append_tool(
        self,
        session_id: str,
        tool_name: str,
        succeeded: bool | None = None,
        timestamp: datetime | None = None,
        event_id: str | None = None,
        payload: dict | None = None,
    ) -> MutationResult:
        """Append one tool invocation unless event_id was already recorded."""
        context = ErrorContext(session_id=session_id, operation="append_tool")
        session_id = require_text(session_id, "session_id", context)
        tool_name = require_text(tool_name, "tool", context, max_length=100)
        event_id = optional_key(event_id, "event_id", context)
        at = self._timestamp(timestamp)
        ok = succeeded if isinstance(succeeded, bool) else True

        async def append(db: AsyncSession, record: CallRecord) -> bool:
            if event_id is not None and await _has_key(
                db, ToolEvent.event_id, ToolEvent.call_session_id,
                session_id, event_id,
            ):
                return False
            record.tool_events.append(ToolEvent(
                event_id=event_id, tool_name=tool_name, succeeded=ok,
                timestamp=at, payload=payload,
            ))
            return True

        result = await self.store.ensure_and_mutate(
            session_id, mutator=append, operation="append_tool",
        )
        if result.noop:
            logger.info(
                f"Duplicate tool event {event_id} ignored",
                extra={"session_id": session_id, "noop": True},
            )
        return result


async def _has_key(db: AsyncSession, key_column, owner_column, session_id: str, key: str) -> bool:
    """Indexed existence check on (call_session_id, key)."""
    found = await db.scalar(
        select(key_column)
        .where(owner_column == session_id, key_column == key)
        .limit(1),
    )
    return found is not None
