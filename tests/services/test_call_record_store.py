"""CallRecordStore — insert-if-absent, noop rollback, reads, and timeouts."""

import asyncio

import pytest
from sqlalchemy.exc import DataError, OperationalError

from callstore.core.errors import (
    EventValidationError, ResourceNotFoundError, TransientStorageError,
)
from callstore.services.call_record_store import CallRecordStore


async def test_ensure_creates_then_reports_existing(store):
    first = await store.ensure_and_mutate("CA1", lambda: {"tenant_id": "acme"})
    second = await store.ensure_and_mutate("CA1", lambda: {"tenant_id": "globex"})

    assert first.created is True
    assert first.call.tenant_id == "acme"
    assert second.created is False
    assert second.noop is True
    assert second.call.tenant_id == "acme"


async def test_unchanged_mutation_does_not_touch_updated_at(store):
    first = await store.ensure_and_mutate("CA1")
    second = await store.ensure_and_mutate("CA1")
    assert second.call.updated_at == first.call.updated_at


async def test_initializer_may_only_set_creation_fields(store):
    with pytest.raises(ValueError):
        await store.ensure_and_mutate("CA1", lambda: {"usage_tokens": 5})
    assert await store.find("CA1") is None


async def test_mutator_change_is_committed(store):
    async def mark(db, record):
        record.status = "in_progress"
        return True

    await store.ensure_and_mutate("CA1")
    result = await store.ensure_and_mutate("CA1", mutator=mark)

    assert result.changed is True
    assert (await store.get("CA1")).status == "in_progress"


async def test_failed_mutator_leaves_no_partial_state(store):
    async def explode(db, record):
        record.usage_tokens += 10
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await store.ensure_and_mutate("CA1", mutator=explode)
    assert await store.find("CA1") is None


async def test_get_unknown_raises_not_found(store):
    with pytest.raises(ResourceNotFoundError) as exc:
        await store.get("missing")
    assert exc.value.http_status == 404
    assert exc.value.context.session_id == "missing"


async def test_timeout_raises_transient_error_and_key_stays_usable(db_manager):
    store = CallRecordStore(db_manager, timeout_seconds=0.2)

    async def slow(db, record):
        await asyncio.sleep(2)
        return True

    with pytest.raises(TransientStorageError) as exc:
        await store.ensure_and_mutate("CA1", mutator=slow, operation="slow_write")

    assert exc.value.timed_out is True
    assert exc.value.retryable is True
    assert exc.value.code == "STORAGE_TIMEOUT"

    result = await store.ensure_and_mutate("CA1")
    assert result.created is True


async def test_operational_error_surfaces_as_transient_and_persists_nothing(store):
    async def connection_lost(db, record):
        record.usage_tokens += 1
        raise OperationalError("UPDATE call_records", {}, Exception("server closed the connection"))

    with pytest.raises(TransientStorageError) as exc:
        await store.ensure_and_mutate("CA1", mutator=connection_lost)

    assert exc.value.retryable is True
    assert exc.value.code == "STORAGE_UNAVAILABLE"
    assert exc.value.http_status == 503
    assert await store.find("CA1") is None


async def test_data_error_is_a_validation_error_not_transient(store):
    async def too_long(db, record):
        raise DataError("INSERT", {}, Exception("value too long for type character varying(128)"))

    with pytest.raises(EventValidationError) as exc:
        await store.ensure_and_mutate("CA1", mutator=too_long)

    assert not isinstance(exc.value, TransientStorageError)
    assert exc.value.retryable is False
    assert exc.value.http_status == 400
    assert await store.find("CA1") is None
