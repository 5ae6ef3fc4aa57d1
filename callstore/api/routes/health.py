"""Health & Readiness Probes — liveness and readiness for container orchestration.

Invariants:
    - GET /api/v1/health/ answers 200 whenever the process is up
    - GET /api/v1/health/ready answers 503 until the service graph exists
      and the database answers a round-trip query
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from callstore import __version__

router = APIRouter(prefix="/api/v1/health", tags=["health"])


def _not_ready(reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason},
    )


@router.get("/", status_code=status.HTTP_200_OK)
async def liveness():
    return {"status": "healthy", "service": "callstore", "version": __version__}


@router.get("/ready")
async def readiness(request: Request):
    """Ready once storage is reachable."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        return _not_ready("services_not_initialized")
    if not await services.db.health_check():
        return _not_ready("database_unavailable")
    return {
        "status": "ready",
        "checks": {"database": "healthy", "dialect": services.db.dialect_name},
    }
