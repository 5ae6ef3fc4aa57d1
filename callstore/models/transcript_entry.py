"""TranscriptEntry ORM — one spoken turn appended to a call.

Invariants:
    - (call_session_id, turn_id) is unique; NULL turn_id is never constrained
    - speaker_role is "caller" or "agent" (validated before insert)
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from callstore.db.base import Base


class TranscriptEntry(Base):
    __tablename__ = "transcript_entries"
    __table_args__ = (
        UniqueConstraint(
            "call_session_id", "turn_id", name="uq_transcript_entries_turn",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    call_session_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("call_records.session_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    turn_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    speaker_role: Mapped[str] = mapped_column(String(10), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    call: Mapped["CallRecord"] = relationship(
        "CallRecord", back_populates="transcript",
    )
