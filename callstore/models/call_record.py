"""CallRecord ORM — one row per call session, the aggregate root.

Invariants:
    - session_id is the primary key, externally supplied, never changed
    - tenant_id, from_address, to_address, started_at are written once
    - usage_* counters only grow (enforced by UsageCounters, never decremented here)
    - transcript and tool_events are ordered by insertion id (append order)

Design Decisions:
    - Usage counters as flat columns: the aggregation query sums them directly
    - lazy="selectin" on both sequences: a record is fully loaded when fetched,
      so the async session never lazy-loads behind the caller's back
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from callstore.db.base import Base


class CallRecord(Base):
    """Call session aggregate root — owns transcript entries and tool events."""
    __tablename__ = "call_records"
    __table_args__ = (
        Index("ix_call_records_tenant_started", "tenant_id", "started_at"),
        Index("ix_call_records_started", "started_at"),
    )

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    tenant_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    from_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    to_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="initiated",
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)

    usage_tokens: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    usage_characters: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    usage_seconds: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    transcript: Mapped[list["TranscriptEntry"]] = relationship(
        "TranscriptEntry", back_populates="call",
        order_by="TranscriptEntry.id",
        cascade="all, delete-orphan", lazy="selectin",
    )
    tool_events: Mapped[list["ToolEvent"]] = relationship(
        "ToolEvent", back_populates="call",
        order_by="ToolEvent.id",
        cascade="all, delete-orphan", lazy="selectin",
    )
