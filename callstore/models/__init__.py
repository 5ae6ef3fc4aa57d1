"""ORM Models — SQLAlchemy declarative models for call records and their events.

Invariants:
    - All models inherit from Base (db/base.py)
    - CallRecord is the aggregate root; entries are scoped by call_session_id

Design Decisions:
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from callstore.models.call_record import CallRecord  # noqa: F401
from callstore.models.transcript_entry import TranscriptEntry  # noqa: F401
from callstore.models.tool_event import ToolEvent  # noqa: F401
