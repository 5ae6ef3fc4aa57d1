"""Lifecycle Controller — start/end transitions of a call record.

Invariants:
    - start never alters tenant_id/from/to/started_at once a start has landed
    - start on a record created by an earlier non-start event fills the
      creation fields exactly once (tenant_id is NULL until then)
    - end always succeeds: unknown status becomes "completed", a malformed
      duration is ignored, a missing record is created on the fly
    - Status transitions are not checked against the state machine (any -> any)
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from callstore.core.domain_types import CallStatus, ensure_utc
from callstore.core.errors import ErrorContext
from callstore.core.event_rules import (
    coerce_duration, optional_key, require_text, resolve_end_status,
)
from callstore.models import CallRecord
from callstore.services.call_record_store import CallRecordStore, MutationResult

logger = logging.getLogger(__name__)


class LifecycleController:
    """Drives the initiated -> in_progress -> completed/failed state machine."""

    def __init__(self, store: CallRecordStore):
        self.store = store

    async def start(
        self,
        session_id: str,
        tenant_id: str,
        from_address: str | None = None,
        to_address: str | None = None,
    ) -> MutationResult:
        """Create the call if absent. Idempotent on session_id."""
        context = ErrorContext(session_id=session_id, tenant_id=tenant_id, operation="start")
        session_id = require_text(session_id, "session_id", context)
        tenant_id = require_text(tenant_id, "tenant_id", context)
        from_address = optional_key(from_address, "from", context, max_length=64)
        to_address = optional_key(to_address, "to", context, max_length=64)

        def initializer() -> dict:
            return {
                "tenant_id": tenant_id,
                "from_address": from_address,
                "to_address": to_address,
                "status": CallStatus.INITIATED.value,
            }

        async def claim_tenant(db: AsyncSession, record: CallRecord) -> bool:
            if record.tenant_id is not None:
                return False
            record.tenant_id = tenant_id
            record.from_address = from_address
            record.to_address = to_address
            return True

        result = await self.store.ensure_and_mutate(
            session_id, initializer, claim_tenant, operation="start",
        )
        logger.info(
            f"Call {session_id} started" + (" (noop)" if result.noop else ""),
            extra={"session_id": session_id, "tenant_id": tenant_id, "noop": result.noop},
        )
        return result

    async def end(
        self,
        session_id: str,
        status: object = None,
        duration_seconds: object = None,
        ended_at: datetime | None = None,
    ) -> MutationResult:
        """Record the terminal state. Creates a minimal record if start never arrived."""
        context = ErrorContext(session_id=session_id, operation="end")
        session_id = require_text(session_id, "session_id", context)
        final_status = resolve_end_status(status)
        duration = coerce_duration(duration_seconds)

        async def finish(db: AsyncSession, record: CallRecord) -> bool:
            if record.ended_at is not None:
                logger.info(
                    f"Call {session_id} already ended as {record.status}, overwriting",
                    extra={"session_id": session_id, "operation": "end"},
                )
            record.status = final_status.value
            record.ended_at = ensure_utc(ended_at) if ended_at else self.store.clock()
            if duration is not None:
                record.duration_seconds = duration
            return True

        result = await self.store.ensure_and_mutate(
            session_id, mutator=finish, operation="end",
        )
        if result.created:
            logger.warning(
                f"End received before start for call {session_id}",
                extra={"session_id": session_id, "operation": "end"},
            )
        logger.info(
            f"Call {session_id} ended as {final_status.value}",
            extra={"session_id": session_id, "operation": "end"},
        )
        return result
