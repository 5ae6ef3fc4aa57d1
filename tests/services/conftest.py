"""Service test fixtures — file-backed SQLite store, services, and FastAPI test client.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - All services share one CallRecordStore (same keyed lock), as in production
    - get_services dependency overridden; app.state.services set for the readiness probe

Design Decisions:
    - File database over :memory:: concurrent tests need a real connection pool,
      in-memory SQLite pins every session to one connection
"""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from callstore.api.dependencies import build_call_services, get_services
from callstore.db.base import Base
from callstore.infrastructure.database import DatabaseSessionManager
from callstore.main import app
from callstore.models import CallRecord


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'calls.db'}",
    )
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()


@pytest.fixture
def services(db_manager):
    return build_call_services(db_manager, timeout_seconds=5.0)


@pytest.fixture
def store(services):
    return services.store


@pytest.fixture
def lifecycle(services):
    return services.lifecycle


@pytest.fixture
def events(services):
    return services.events


@pytest.fixture
def usage(services):
    return services.usage


@pytest.fixture
def aggregator(services):
    return services.aggregator


@pytest.fixture
async def test_db(db_manager):
    async with db_manager.session() as session:
        yield session


@pytest.fixture
def seed_call(test_db):
    """Insert a finished call directly, bypassing the services."""

    async def _seed(
        session_id: str,
        tenant_id: str = "acme",
        started_at: datetime | None = None,
        duration_seconds: float | None = None,
        tokens: int = 0,
        characters: int = 0,
    ) -> CallRecord:
        record = CallRecord(
            session_id=session_id,
            tenant_id=tenant_id,
            status="completed",
            started_at=started_at or datetime.now(timezone.utc),
            duration_seconds=duration_seconds,
            usage_tokens=tokens,
            usage_characters=characters,
        )
        test_db.add(record)
        await test_db.commit()
        return record

    return _seed


@pytest.fixture
async def client(services):
    """FastAPI test client with the service graph overridden."""
    app.dependency_overrides[get_services] = lambda: services
    app.state.services = services

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    app.state.services = None
