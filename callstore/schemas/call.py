"""Call Schemas — request bodies for call events and the CallRecord response view.

Invariants:
    - Request bodies check shape only; required-text, role, and delta rules run in core/
    - CallRecordView is a detached snapshot: built inside the DB session, safe after it closes
    - All datetimes in views are timezone-aware UTC (SQLite returns naive values)

Design Decisions:
    - "from"/"to" are Python keywords, so they are field aliases; populate_by_name
      lets tests and internal callers use from_address/to_address as well
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from callstore.core.domain_types import ensure_utc


# --- Views --------------------------------------------------------------------


class UsageView(BaseModel):
    tokens: int = 0
    characters: int = 0
    seconds: float = 0.0


class TranscriptEntryView(BaseModel):
    turn_id: str | None = None
    role: str
    text: str
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ToolEventView(BaseModel):
    event_id: str | None = None
    tool_name: str
    succeeded: bool = True
    timestamp: datetime
    payload: dict | None = None
    payload_version: int = 1

    @field_validator("timestamp")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class CallRecordView(BaseModel):
    """Full current state of one call session."""
    session_id: str
    tenant_id: str | None = None
    from_address: str | None = None
    to_address: str | None = None
    status: str
    started_at: datetime
    ended_at: datetime | None = None
    duration_seconds: float | None = None
    usage: UsageView = Field(default_factory=UsageView)
    transcript: list[TranscriptEntryView] = Field(default_factory=list)
    tool_events: list[ToolEventView] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("started_at", "ended_at", "created_at", "updated_at")
    @classmethod
    def normalize_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @classmethod
    def from_record(cls, record) -> "CallRecordView":
        """Snapshot an ORM CallRecord. Collections must already be loaded."""
        return cls(
            session_id=record.session_id,
            tenant_id=record.tenant_id,
            from_address=record.from_address,
            to_address=record.to_address,
            status=record.status,
            started_at=record.started_at,
            ended_at=record.ended_at,
            duration_seconds=record.duration_seconds,
            usage=UsageView(
                tokens=record.usage_tokens or 0,
                characters=record.usage_characters or 0,
                seconds=record.usage_seconds or 0.0,
            ),
            transcript=[
                TranscriptEntryView(
                    turn_id=e.turn_id, role=e.speaker_role,
                    text=e.text, timestamp=e.timestamp,
                )
                for e in record.transcript
            ],
            tool_events=[
                ToolEventView(
                    event_id=t.event_id, tool_name=t.tool_name,
                    succeeded=t.succeeded, timestamp=t.timestamp,
                    payload=t.payload, payload_version=t.payload_version,
                )
                for t in record.tool_events
            ],
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class MutationResponse(BaseModel):
    """Envelope for every mutating call operation."""
    ok: bool = True
    noop: bool = False
    call: CallRecordView | None = None


# --- Requests -----------------------------------------------------------------


class StartCallRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(max_length=128)
    tenant_id: str = Field(max_length=128)
    from_address: str | None = Field(None, alias="from", max_length=64)
    to_address: str | None = Field(None, alias="to", max_length=64)


class TranscriptRequest(BaseModel):
    session_id: str = Field(max_length=128)
    role: str
    text: str
    timestamp: datetime | None = None
    turn_id: str | None = Field(None, max_length=128)


class ToolEventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(max_length=128)
    tool_name: str = Field(alias="tool", max_length=100)
    success: bool | None = None
    timestamp: datetime | None = None
    event_id: str | None = Field(None, max_length=128)
    payload: dict | None = None


class UsageDeltaBody(BaseModel):
    tokens: int | float | None = None
    characters: int | float | None = None
    seconds: int | float | None = None


class UsageRequest(BaseModel):
    session_id: str = Field(max_length=128)
    delta: UsageDeltaBody


class EndCallRequest(BaseModel):
    session_id: str = Field(max_length=128)
    status: str | None = None
    duration_seconds: float | str | None = None
    ended_at: datetime | None = None
