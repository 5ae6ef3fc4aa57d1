"""Call Record Store — durable keyed storage with atomic insert-if-absent + mutate.

Invariants:
    - ensure_and_mutate is serialized per session_id: the keyed lock covers one
      process, SELECT ... FOR UPDATE covers concurrent workers on PostgreSQL
    - Creation-time fields come only from the initializer, and only on insert
    - A mutation either commits whole or not at all (single transaction)
    - Unchanged mutations roll back and report noop; "already exists" is never an error
    - Every operation is bounded by timeout_seconds (TransientStorageError on expiry)

Design Decisions:
    - Dialect INSERT ... ON CONFLICT DO NOTHING for creation: a second worker
      racing on the same session_id falls through to the row lock instead of
      failing on the primary key
    - Mutators are async callables receiving the open session: the event log
      needs an indexed existence query inside the same transaction
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from callstore.core.domain_types import CallStatus, Clock, utc_now
from callstore.core.errors import ConfigurationError, ErrorContext, ResourceNotFoundError
from callstore.infrastructure.database import DatabaseSessionManager, bounded
from callstore.infrastructure.keyed_lock import KeyedLock
from callstore.models import CallRecord
from callstore.schemas.call import CallRecordView

logger = logging.getLogger(__name__)

Initializer = Callable[[], dict[str, Any]]
Mutator = Callable[[AsyncSession, CallRecord], Awaitable[bool]]

CREATION_FIELDS = frozenset({
    "tenant_id", "from_address", "to_address", "status", "started_at",
})

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass(frozen=True)
class MutationResult:
    """Post-mutation snapshot plus what actually happened."""
    call: CallRecordView | None
    created: bool = False
    changed: bool = False

    @property
    def noop(self) -> bool:
        return not (self.created or self.changed)


async def _unchanged(db: AsyncSession, record: CallRecord) -> bool:
    return False


def _no_fields() -> dict[str, Any]:
    return {}


class CallRecordStore:
    """Keyed CallRecord persistence with per-session serializability."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        timeout_seconds: float = 5.0,
        clock: Clock = utc_now,
        locks: KeyedLock | None = None,
    ):
        if db.dialect_name not in _DIALECT_INSERTS:
            raise ConfigurationError(
                f"unsupported database dialect '{db.dialect_name}'", "database_url",
            )
        self._db = db
        self._timeout = timeout_seconds
        self._clock = clock
        self._locks = locks or KeyedLock()

    @property
    def clock(self) -> Clock:
        return self._clock

    async def ensure_and_mutate(
        self,
        session_id: str,
        initializer: Initializer = _no_fields,
        mutator: Mutator = _unchanged,
        operation: str = "mutate",
    ) -> MutationResult:
        """Create the record if absent, then apply mutator, atomically per session_id."""
        context = ErrorContext(session_id=session_id, operation=operation)
        result = await bounded(
            self._ensure_and_mutate(session_id, initializer, mutator),
            self._timeout, context,
        )
        logger.debug(
            f"{operation} on {session_id}: created={result.created} changed={result.changed}",
            extra={"session_id": session_id, "operation": operation, "noop": result.noop},
        )
        return result

    async def find(self, session_id: str) -> CallRecordView | None:
        """Read-only lookup. None when no record exists."""
        context = ErrorContext(session_id=session_id, operation="read")
        return await bounded(self._find(session_id), self._timeout, context)

    async def get(self, session_id: str) -> CallRecordView:
        """Read-only lookup. Raises ResourceNotFoundError when absent."""
        view = await self.find(session_id)
        if view is None:
            raise ResourceNotFoundError(
                "CallRecord", session_id,
                ErrorContext(session_id=session_id, operation="read"),
            )
        return view

    # ─── internals ──────────────────────────────────────────────

    async def _ensure_and_mutate(
        self, session_id: str, initializer: Initializer, mutator: Mutator,
    ) -> MutationResult:
        async with self._locks.hold(session_id):
            async with self._db.session() as db:
                record = await self._select_for_update(db, session_id)
                created = False
                if record is None:
                    created = await self._insert_if_absent(
                        db, session_id, initializer(),
                    )
                    record = await self._select_for_update(db, session_id)

                changed = await mutator(db, record)
                if not (created or changed):
                    view = CallRecordView.from_record(record)
                    await db.rollback()
                    return MutationResult(view)

                record.updated_at = self._clock()
                await db.commit()
                return MutationResult(
                    CallRecordView.from_record(record), created, changed,
                )

    async def _find(self, session_id: str) -> CallRecordView | None:
        async with self._db.session() as db:
            result = await db.execute(
                select(CallRecord).where(CallRecord.session_id == session_id),
            )
            record = result.scalar_one_or_none()
            return CallRecordView.from_record(record) if record else None

    @staticmethod
    async def _select_for_update(
        db: AsyncSession, session_id: str,
    ) -> CallRecord | None:
        result = await db.execute(
            select(CallRecord)
            .where(CallRecord.session_id == session_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _insert_if_absent(
        self, db: AsyncSession, session_id: str, fields: dict[str, Any],
    ) -> bool:
        """INSERT ... ON CONFLICT DO NOTHING. True when this call inserted the row."""
        unknown = set(fields) - CREATION_FIELDS
        if unknown:
            raise ValueError(f"initializer returned non-creation fields: {sorted(unknown)}")
        now = self._clock()
        values = {
            "status": CallStatus.INITIATED.value,
            "started_at": now,
            **{k: v for k, v in fields.items() if v is not None},
            "session_id": session_id,
            "usage_tokens": 0,
            "usage_characters": 0,
            "usage_seconds": 0.0,
            "created_at": now,
            "updated_at": now,
        }
        insert = _DIALECT_INSERTS[self._db.dialect_name]
        result = await db.execute(
            insert(CallRecord.__table__)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["session_id"]),
        )
        return result.rowcount == 1
