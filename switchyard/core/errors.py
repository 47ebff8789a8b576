"""Error Hierarchy - typed, categorized exceptions for every Switchyard failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Client errors (400-level) carry the full ordered list of messages in `errors`
    - Declaration errors are raised at build time, never while serving
    - to_response() produces the REST envelope served to clients

Design Decisions:
    - Single hierarchy with SwitchyardError base: the app-level handler catches all
    - ErrorContext as dataclass: observability data without coupling to logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CLIENT = "client"
    DECLARATION = "declaration"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Request-side context attached to an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    operation_id: str | None = None
    method: str | None = None
    path: str | None = None
    debug_info: dict[str, Any] | None = None


class SwitchyardError(Exception):
    """Base exception for all Switchyard errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "operation_id": self.context.operation_id,
                    "method": self.context.method,
                    "path": self.context.path,
                },
            }
        }


# ─── Client Errors (400-level) ──────────────────────────────────

class ErrorResponse(SwitchyardError):
    """Client-visible error with an explicit status and message list."""
    def __init__(
        self,
        http_status: int,
        errors: list[str],
        code: str = "ERROR_RESPONSE",
        message: str | None = None,
        category: ErrorCategory = ErrorCategory.CLIENT,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message or "; ".join(errors) or f"HTTP {http_status}",
            code, category, ErrorSeverity.ERROR, context, http_status,
        )
        self.errors = list(errors)

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["details"] = list(self.errors)
        return response


class ParameterValidationError(ErrorResponse):
    """One or more declared parameters failed validation."""
    def __init__(self, errors: list[str], context: ErrorContext | None = None):
        super().__init__(
            400, errors, "VALIDATION_ERROR", "Invalid request parameters",
            ErrorCategory.VALIDATION, context,
        )


# ─── Build-time Errors ──────────────────────────────────────────

class DeclarationError(SwitchyardError):
    """The route tree declaration is inconsistent."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "DECLARATION_ERROR", ErrorCategory.DECLARATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
