"""Internal HTTP routes — envelopes, status codes, and error mapping."""

from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from callstore.main import app


async def test_start_then_duplicate_start(client):
    body = {"session_id": "CA1", "tenant_id": "acme", "from": "+15550001", "to": "+15550002"}

    first = await client.post("/internal/calls/start", json=body)
    second = await client.post("/internal/calls/start", json={**body, "tenant_id": "globex"})

    assert first.status_code == 200
    assert first.json()["ok"] is True
    assert first.json()["noop"] is False
    assert first.json()["call"]["from_address"] == "+15550001"
    assert second.status_code == 200
    assert second.json()["noop"] is True
    assert second.json()["call"]["tenant_id"] == "acme"


async def test_full_call_flow(client):
    await client.post("/internal/calls/start", json={"session_id": "CA1", "tenant_id": "acme"})
    await client.post("/internal/calls/transcript", json={
        "session_id": "CA1", "role": "caller", "text": "I need a table", "turn_id": "t1",
    })
    dup = await client.post("/internal/calls/transcript", json={
        "session_id": "CA1", "role": "caller", "text": "I need a table", "turn_id": "t1",
    })
    await client.post("/internal/calls/tool", json={
        "session_id": "CA1", "tool": "reserve_table", "success": True, "event_id": "e1",
        "payload": {"party_size": 4},
    })
    await client.post("/internal/calls/usage", json={
        "session_id": "CA1", "delta": {"tokens": 120, "characters": 800, "seconds": 4.2},
    })
    end = await client.post("/internal/calls/end", json={
        "session_id": "CA1", "status": "completed", "duration_seconds": "61",
    })

    assert dup.json()["noop"] is True
    call = end.json()["call"]
    assert call["status"] == "completed"
    assert call["duration_seconds"] == 61
    assert len(call["transcript"]) == 1
    assert call["tool_events"][0]["tool_name"] == "reserve_table"
    assert call["tool_events"][0]["payload"] == {"party_size": 4}
    assert call["usage"]["tokens"] == 120

    fetched = await client.get("/internal/calls/CA1")
    assert fetched.status_code == 200
    assert fetched.json()["call"]["session_id"] == "CA1"


async def test_get_unknown_call_returns_404(client):
    response = await client.get("/internal/calls/nope")
    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "RESOURCE_NOT_FOUND"
    assert response.json()["ok"] is False


async def test_invalid_role_is_400(client):
    response = await client.post("/internal/calls/transcript", json={
        "session_id": "CA1", "role": "robot", "text": "beep",
    })
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_missing_text_is_400(client):
    response = await client.post("/internal/calls/transcript", json={
        "session_id": "CA1", "role": "caller",
    })
    assert response.status_code == 400
    assert response.json()["error"]["details"]


async def test_negative_delta_is_400_invalid_delta(client):
    response = await client.post("/internal/calls/usage", json={
        "session_id": "CA1", "delta": {"tokens": -5},
    })
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_DELTA"

    missing = await client.get("/internal/calls/CA1")
    assert missing.status_code == 404


async def test_empty_delta_is_noop_without_call(client):
    response = await client.post("/internal/calls/usage", json={"session_id": "CA1", "delta": {}})
    assert response.status_code == 200
    assert response.json()["noop"] is True
    assert response.json()["call"] is None


async def test_end_before_start_over_http(client):
    response = await client.post("/internal/calls/end", json={
        "session_id": "X", "duration_seconds": 42,
    })
    call = response.json()["call"]
    assert response.status_code == 200
    assert call["status"] == "completed"
    assert call["duration_seconds"] == 42
    assert call["started_at"] is not None


async def test_usage_summary_endpoint(client, seed_call):
    now = datetime.now(timezone.utc)
    await seed_call("c1", started_at=now - timedelta(hours=1), duration_seconds=30, tokens=5)
    await seed_call("c2", started_at=now - timedelta(hours=2), duration_seconds=45, tokens=6)
    await seed_call("c3", started_at=now - timedelta(hours=30), duration_seconds=600)

    response = await client.get("/internal/usage/summary", params={"tenant_id": "acme"})

    body = response.json()
    assert response.status_code == 200
    assert body["ok"] is True
    assert body["calls"] == 2
    assert body["minutes"] == 2
    assert body["tokens"] == 11
    assert "from" in body and "to" in body


async def test_usage_summary_with_dates(client, seed_call):
    await seed_call("c1", started_at=datetime(2026, 1, 10, 8, tzinfo=timezone.utc),
                    duration_seconds=90)

    response = await client.get("/internal/usage/summary", params={
        "tenant_id": "acme", "from": "2026-01-10", "to": "2026-01-10",
    })

    assert response.json()["calls"] == 1
    assert response.json()["minutes"] == 2
    assert response.json()["from"].startswith("2026-01-10T00:00:00")


async def test_usage_summary_requires_tenant(client):
    response = await client.get("/internal/usage/summary")
    assert response.status_code == 400


async def test_health_and_ready(client):
    live = await client.get("/api/v1/health/")
    ready = await client.get("/api/v1/health/ready")

    assert live.status_code == 200
    assert live.json()["status"] == "healthy"
    assert ready.status_code == 200
    assert ready.json()["checks"]["database"] == "healthy"


async def test_ready_is_503_before_services_exist(client):
    app.state.services = None
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 503
    assert response.json()["reason"] == "services_not_initialized"


async def test_storage_failure_is_503_with_retry_after(client, services, monkeypatch):
    async def connection_lost(db, session_id):
        raise OperationalError("SELECT", {}, Exception("server closed the connection"))

    monkeypatch.setattr(services.store, "_select_for_update", connection_lost)

    response = await client.post("/internal/calls/start", json={
        "session_id": "CA1", "tenant_id": "acme",
    })

    error = response.json()["error"]
    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert error["code"] == "STORAGE_UNAVAILABLE"
    assert error["retryable"] is True
    assert error["context"]["retry_after_ms"] == 1000


async def test_over_long_session_id_is_400_not_503(client):
    response = await client.post("/internal/calls/start", json={
        "session_id": "C" * 200, "tenant_id": "acme",
    })
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert "Retry-After" not in response.headers


async def test_fractional_tokens_are_400(client):
    response = await client.post("/internal/calls/usage", json={
        "session_id": "CA1", "delta": {"tokens": 0.5},
    })
    assert response.status_code == 400
    assert response.json()["error"]["context"]["session_id"] == "CA1"


async def test_padded_session_id_reads_back_unchanged(client):
    await client.post("/internal/calls/start", json={"session_id": " CA1 ", "tenant_id": "acme"})
    response = await client.get("/internal/calls/%20CA1%20")
    assert response.status_code == 200
    assert response.json()["call"]["session_id"] == " CA1 "
