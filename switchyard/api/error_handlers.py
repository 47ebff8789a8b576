"""Error Handlers - last stop of the error-reporting chain, on the FastAPI app.

Invariants:
    - SwitchyardError → its own http_status and structured envelope
    - Exception (catch-all) → 500, never leaks internal details
    - Errors reach these handlers only after every ErrorHandler node declined

Design Decisions:
    - Two-layer handler: domain (SwitchyardError), catch-all (Exception)
    - Starlette HTTPException (404 for unmatched routes) keeps FastAPI's default
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from switchyard.core.errors import (
    ErrorResponse, ErrorSeverity, SwitchyardError,
)

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_switchyard_error_handler(app)
    _register_generic_error_handler(app)


def _register_switchyard_error_handler(app: FastAPI) -> None:
    """Register Switchyard client/declaration error handler."""

    @app.exception_handler(SwitchyardError)
    async def switchyard_error_handler(request: Request, exc: SwitchyardError):
        """Handle all Switchyard errors, validation failures included."""
        log = logger.warning if isinstance(exc, ErrorResponse) else logger.error
        log(
            f"SwitchyardError: {exc.message}",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                "status_code": exc.http_status,
            },
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all - never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )
