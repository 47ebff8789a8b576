"""Filter Nodes - pass-through steps mounted into a Switch's dispatch chain.

Middleware wraps everything declared after it at its level:

    async def timing(request, call_next):
        response = await call_next(request)
        response.headers["x-elapsed"] = ...
        return response

ErrorHandler receives exceptions raised by layers declared before it and
either answers with a response or declines by raising:

    async def not_found(request, exc):
        if isinstance(exc, KeyError):
            return JSONResponse({"detail": "missing"}, status_code=404)
        raise exc
"""

from dataclasses import dataclass

from switchyard.api.dispatch import ErrorHandlerFunc, MiddlewareHandler


@dataclass(frozen=True)
class Middleware:
    handler: MiddlewareHandler


@dataclass(frozen=True)
class ErrorHandler:
    handler: ErrorHandlerFunc
