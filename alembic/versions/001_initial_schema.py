"""Initial schema — call_records, transcript_entries, tool_events.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "call_records",
        sa.Column("session_id", sa.String(128), primary_key=True),
        sa.Column("tenant_id", sa.String(128), nullable=True),
        sa.Column("from_address", sa.String(64), nullable=True),
        sa.Column("to_address", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="initiated"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Float, nullable=True),
        sa.Column("usage_tokens", sa.Integer, nullable=False, server_default="0"),
        sa.Column("usage_characters", sa.Integer, nullable=False, server_default="0"),
        sa.Column("usage_seconds", sa.Float, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_call_records_tenant_started", "call_records", ["tenant_id", "started_at"],
    )
    op.create_index("ix_call_records_started", "call_records", ["started_at"])

    op.create_table(
        "transcript_entries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "call_session_id", sa.String(128),
            sa.ForeignKey("call_records.session_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("turn_id", sa.String(128), nullable=True),
        sa.Column("speaker_role", sa.String(10), nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("call_session_id", "turn_id", name="uq_transcript_entries_turn"),
    )
    op.create_index(
        "ix_transcript_entries_call_session_id", "transcript_entries", ["call_session_id"],
    )

    op.create_table(
        "tool_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "call_session_id", sa.String(128),
            sa.ForeignKey("call_records.session_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("event_id", sa.String(128), nullable=True),
        sa.Column("tool_name", sa.String(100), nullable=False),
        sa.Column("succeeded", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("payload", sa.JSON, nullable=True),
        sa.Column("payload_version", sa.Integer, nullable=False, server_default="1"),
        sa.UniqueConstraint("call_session_id", "event_id", name="uq_tool_events_event"),
    )
    op.create_index(
        "ix_tool_events_call_session_id", "tool_events", ["call_session_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_tool_events_call_session_id", table_name="tool_events")
    op.drop_table("tool_events")
    op.drop_index("ix_transcript_entries_call_session_id", table_name="transcript_entries")
    op.drop_table("transcript_entries")
    op.drop_index("ix_call_records_started", table_name="call_records")
    op.drop_index("ix_call_records_tenant_started", table_name="call_records")
    op.drop_table("call_records")
