"""Error Handlers — map exceptions onto the {"ok": false, "error": {...}} envelope.

Invariants:
    - CallStoreError → its own http_status and to_response() body
    - RequestValidationError → 400 VALIDATION_ERROR with per-field details
    - Any other exception → 500 INTERNAL_ERROR, details only in the log
    - Retryable errors carry Retry-After so the orchestrator redelivers

Design Decisions:
    - Body-shape failures reuse the EventValidationError envelope, so clients
      see one error format whether pydantic or core/ rejected the event
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from callstore.core.errors import (
    RETRY_AFTER_MS, CallStoreError, ErrorCategory, ErrorContext, ErrorSeverity,
    EventValidationError,
)

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CallStoreError, _call_store_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unhandled_error)


def _render(exc: CallStoreError, body: dict | None = None) -> JSONResponse:
    headers = None
    if exc.retryable:
        retry_ms = exc.context.retry_after_ms or RETRY_AFTER_MS
        headers = {"Retry-After": str(math.ceil(retry_ms / 1000))}
    return JSONResponse(
        status_code=exc.http_status,
        content=body or exc.to_response(),
        headers=headers,
    )


async def _call_store_error(request: Request, exc: CallStoreError):
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        f"{exc.code} on {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "session_id": exc.context.session_id,
            "tenant_id": exc.context.tenant_id,
            "operation": exc.context.operation,
        },
    )
    return _render(exc)


async def _request_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(loc) for loc in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Rejected request body on {request.url.path}: {details}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    first = details[0]["field"] if details else "body"
    error = EventValidationError(
        "Invalid request data", first, ErrorContext(operation=request.url.path),
    )
    body = error.to_response()
    body["error"]["details"] = details
    return _render(error, body)


async def _unhandled_error(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=True,
        extra={"path": request.url.path, "error_code": "INTERNAL_ERROR"},
    )
    error = CallStoreError(
        "An unexpected error occurred", "INTERNAL_ERROR",
        ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return _render(error)
