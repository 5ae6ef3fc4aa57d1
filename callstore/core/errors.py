"""Error Hierarchy — typed, categorized exceptions for all call-store failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Validation errors (400-level) are raised before any mutation is attempted
    - TransientStorageError is the only retryable error; callers redeliver the event
      after context.retry_after_ms (RETRY_AFTER_MS unless the raiser says otherwise)
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with CallStoreError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone

RETRY_AFTER_MS = 1000


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    tenant_id: str | None = None
    operation: str | None = None
    retry_after_ms: int | None = None


class CallStoreError(Exception):
    """Base exception for all call-store errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.retryable = retryable

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "ok": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "session_id": self.context.session_id,
                    "tenant_id": self.context.tenant_id,
                    "operation": self.context.operation,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            },
        }


# ─── Request Errors (400-level) ─────────────────────────────────

class EventValidationError(CallStoreError):
    """Missing required field or invalid enum value on an incoming event."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class InvalidDeltaError(EventValidationError):
    """Usage delta carried a negative field."""
    def __init__(self, fields: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Usage deltas must be non-negative: {', '.join(fields)}",
            fields[0], context,
        )
        self.code = "INVALID_DELTA"
        self.fields = fields


class ResourceNotFoundError(CallStoreError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class TransientStorageError(CallStoreError):
    """Storage unreachable, failed mid-transaction, or timed out. Safe to redeliver."""
    def __init__(
        self,
        message: str,
        operation: str,
        timed_out: bool = False,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.operation = ctx.operation or operation
        ctx.retry_after_ms = ctx.retry_after_ms or RETRY_AFTER_MS
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_TIMEOUT" if timed_out else "STORAGE_UNAVAILABLE",
            ErrorCategory.TIMEOUT if timed_out else ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, ctx, 503, retryable=True,
        )
        self.operation = operation
        self.timed_out = timed_out


class ConfigurationError(CallStoreError):
    """Subsystem misconfigured. Fatal at startup, never a per-request condition."""
    def __init__(self, message: str, setting: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid configuration for '{setting}': {message}",
            "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.setting = setting
