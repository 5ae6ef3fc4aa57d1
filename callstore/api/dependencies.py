"""API Dependencies — the process-wide service graph and its FastAPI accessors.

Invariants:
    - One CallServices per app, built in the lifespan and stored on app.state
    - Every service shares one CallRecordStore (and therefore one keyed lock)
    - Routes obtain services only through get_services (overridable in tests)
"""

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Request

from callstore.config import Settings
from callstore.infrastructure.database import DatabaseSessionManager
from callstore.services.call_record_store import CallRecordStore
from callstore.services.event_log import EventLog
from callstore.services.lifecycle_controller import LifecycleController
from callstore.services.usage_aggregator import UsageAggregator
from callstore.services.usage_counters import UsageCounters


@dataclass
class CallServices:
    db: DatabaseSessionManager
    store: CallRecordStore
    lifecycle: LifecycleController
    events: EventLog
    usage: UsageCounters
    aggregator: UsageAggregator


def build_call_services(
    db: DatabaseSessionManager,
    timeout_seconds: float = 5.0,
    usage_window: timedelta = timedelta(hours=24),
) -> CallServices:
    store = CallRecordStore(db, timeout_seconds=timeout_seconds)
    return CallServices(
        db=db,
        store=store,
        lifecycle=LifecycleController(store),
        events=EventLog(store),
        usage=UsageCounters(store),
        aggregator=UsageAggregator(
            db, timeout_seconds=timeout_seconds, default_window=usage_window,
        ),
    )


def build_from_settings(settings: Settings) -> CallServices:
    db = DatabaseSessionManager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    return build_call_services(
        db,
        timeout_seconds=settings.storage_timeout_seconds,
        usage_window=timedelta(hours=settings.usage_window_hours),
    )


def get_services(request: Request) -> CallServices:
    """FastAPI dependency for the call services."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Call services not initialized")
    return services
