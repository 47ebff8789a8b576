"""Error Schemas - the envelope produced by SwitchyardError.to_response().

Invariants:
    - Mirrors core.errors.SwitchyardError.to_response() field for field
    - details is present only for errors that carry a message list
"""

from datetime import datetime

from pydantic import BaseModel


class ErrorContextBody(BaseModel):
    operation_id: str | None = None
    method: str | None = None
    path: str | None = None


class ErrorDetail(BaseModel):
    code: str
    message: str
    category: str
    severity: str
    timestamp: datetime | None = None
    context: ErrorContextBody | None = None
    details: list[str] | None = None


class ErrorEnvelope(BaseModel):
    """Body of every error response served by the application."""
    error: ErrorDetail
