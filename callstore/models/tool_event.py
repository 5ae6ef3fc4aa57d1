"""ToolEvent ORM — one tool invocation made by the voice agent during a call.

Invariants:
    - (call_session_id, event_id) is unique; NULL event_id is never constrained
    - payload is an opaque JSON object; payload_version names its schema

Design Decisions:
    - JSON column for payload: tool arguments/results vary per tool, the store
      never inspects them
"""

from datetime import datetime, timezone

from sqlalchemy import (
    String, Integer, Boolean, DateTime, JSON, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from callstore.db.base import Base

PAYLOAD_SCHEMA_VERSION = 1


class ToolEvent(Base):
    __tablename__ = "tool_events"
    __table_args__ = (
        UniqueConstraint(
            "call_session_id", "event_id", name="uq_tool_events_event",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    call_session_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("call_records.session_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    event_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    tool_name: Mapped[str] = mapped_column(String(100), nullable=False)
    succeeded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    payload_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=PAYLOAD_SCHEMA_VERSION,
    )

    call: Mapped["CallRecord"] = relationship(
        "CallRecord", back_populates="tool_events",
    )
