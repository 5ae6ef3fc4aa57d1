"""Database Session Manager — async engine, per-operation sessions, bounded awaits.

Invariants:
    - A session that raises is rolled back before it is closed
    - SQLAlchemy failures surface as TransientStorageError (core/errors.py),
      so the caller's event can be redelivered
    - DataError (a value the column cannot hold) surfaces as EventValidationError
    - One manager per process, created by the FastAPI lifespan and injected into
      the services; dispose() releases the pool at shutdown
    - bounded() turns a slow storage await into TransientStorageError(timed_out=True)

Design Decisions:
    - expire_on_commit=False: views are built from the instance after commit
    - Pool sizing only applies to server databases; SQLite uses SQLAlchemy's default pool
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import (
    DataError, DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from callstore.core.errors import (
    ErrorContext, EventValidationError, TransientStorageError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Most specific first; the first match names the failure.
_FAILURE_KINDS: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "commit", "constraint violated"),
    (OperationalError, "execute", "connection lost or database unavailable"),
    (DBAPIError, "query", "driver error"),
    (SQLAlchemyError, "session", "database operation failed"),
)


def _classify(exc: SQLAlchemyError) -> tuple[str, str]:
    for kind, operation, message in _FAILURE_KINDS:
        if isinstance(exc, kind):
            return operation, message
    return "session", "database operation failed"


class DatabaseSessionManager:
    """Owns the async engine and hands out short-lived sessions."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_options: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_options.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_options)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One unit of work. Rolls back and re-raises as TransientStorageError on DB failure."""
        session = self._session_factory()
        try:
            yield session
        except DataError as e:
            await session.rollback()
            logger.warning(
                f"DB rejected a value: {e}",
                extra={"error_code": "VALIDATION_ERROR"},
            )
            raise EventValidationError(
                "Value does not fit the stored column", "body",
            ) from e
        except SQLAlchemyError as e:
            await session.rollback()
            operation, message = _classify(e)
            logger.error(
                f"DB {type(e).__name__} during {operation}: {e}",
                extra={"operation": operation, "error_code": "STORAGE_UNAVAILABLE"},
            )
            raise TransientStorageError(message, operation) from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Round-trip a trivial query (readiness probe)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except (TransientStorageError, OSError) as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")


async def bounded(
    operation: Awaitable[T], timeout_seconds: float, context: ErrorContext,
) -> T:
    """Await a storage operation, mapping a timeout to TransientStorageError."""
    try:
        return await asyncio.wait_for(operation, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(
            f"Storage {context.operation} timed out after {timeout_seconds}s",
            extra={
                "session_id": context.session_id,
                "tenant_id": context.tenant_id,
                "operation": context.operation,
                "error_code": "STORAGE_TIMEOUT",
            },
        )
        raise TransientStorageError(
            f"no response within {timeout_seconds}s",
            context.operation or "unknown", timed_out=True, context=context,
        )
