"""Internal Call Routes — event ingestion endpoints for the voice-session orchestrator.

Invariants:
    - Every mutating endpoint returns {"ok": true, "noop": bool, "call": ...}
    - Redelivered events are answered 200 with noop=true, never as errors
    - Routes never touch the database; they delegate to CallServices
"""

from fastapi import APIRouter, Depends

from callstore.api.dependencies import CallServices, get_services
from callstore.schemas.call import (
    CallRecordView,
    EndCallRequest,
    MutationResponse,
    StartCallRequest,
    ToolEventRequest,
    TranscriptRequest,
    UsageRequest,
)
from callstore.services.call_record_store import MutationResult

router = APIRouter(prefix="/internal/calls", tags=["calls"])


def _respond(result: MutationResult) -> MutationResponse:
    return MutationResponse(noop=result.noop, call=result.call)


@router.post("/start", response_model=MutationResponse)
async def start_call(
    body: StartCallRequest, services: CallServices = Depends(get_services),
):
    """Create the call record (idempotent on session_id)."""
    result = await services.lifecycle.start(
        body.session_id, body.tenant_id, body.from_address, body.to_address,
    )
    return _respond(result)


@router.post("/transcript", response_model=MutationResponse)
async def append_transcript(
    body: TranscriptRequest, services: CallServices = Depends(get_services),
):
    """Append a transcript turn (idempotent on turn_id)."""
    result = await services.events.append_transcript(
        body.session_id, body.role, body.text, body.timestamp, body.turn_id,
    )
    return _respond(result)


@router.post("/tool", response_model=MutationResponse)
async def append_tool(
    body: ToolEventRequest, services: CallServices = Depends(get_services),
):
    """Append a tool invocation (idempotent on event_id)."""
    result = await services.events.append_tool(
        body.session_id, body.tool_name, body.success, body.timestamp,
        body.event_id, body.payload,
    )
    return _respond(result)


@router.post("/usage", response_model=MutationResponse)
async def apply_usage(
    body: UsageRequest, services: CallServices = Depends(get_services),
):
    """Add non-negative usage deltas to the call's counters."""
    result = await services.usage.apply_delta(
        body.session_id,
        tokens=body.delta.tokens,
        characters=body.delta.characters,
        seconds=body.delta.seconds,
    )
    return _respond(result)


@router.post("/end", response_model=MutationResponse)
async def end_call(
    body: EndCallRequest, services: CallServices = Depends(get_services),
):
    """Record the call's terminal status, end time and duration."""
    result = await services.lifecycle.end(
        body.session_id, body.status, body.duration_seconds, body.ended_at,
    )
    return _respond(result)


@router.get("/{session_id}")
async def get_call(
    session_id: str, services: CallServices = Depends(get_services),
):
    """Read one call record (diagnostics). 404 when unknown."""
    call: CallRecordView = await services.store.get(session_id)
    return {"ok": True, "call": call.model_dump(mode="json")}
