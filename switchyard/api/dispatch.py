"""Dispatch Chain - ordered layers that carry a Starlette request through the tree.

Invariants:
    - Layers run in declaration order; the first matching layer answers
    - A middleware applies only when a later layer at its level matches,
      so unmatched requests fall through to the parent untouched
    - An exception raised by a layer is offered to the error handlers declared
      after it, in order, then escalates to the parent level unchanged
    - An exception already offered at this level is never offered twice
    - Nothing here is mutated after assembly; per-request state lives in locals

Design Decisions:
    - Middleware uses Starlette's dispatch(request, call_next) shape and error
      handlers use Starlette's exception handler (request, exc) shape
    - Route templates compile with starlette.routing.compile_path
"""

import re
from functools import partial
from typing import Any, Awaitable, Callable, Sequence

from starlette.convertors import Convertor
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import compile_path
from starlette.types import Receive, Scope, Send
from starlette.websockets import WebSocketClose

from switchyard.core.paths import normalize_prefix, strip_prefix


CallNext = Callable[[Request], Awaitable[Response]]
MiddlewareHandler = Callable[[Request, CallNext], Awaitable[Response]]
ErrorHandlerFunc = Callable[[Request, Exception], Awaitable[Response]]
EndpointHandler = Callable[[Request, dict[str, Any]], Awaitable[Response]]
StaticHandler = Callable[[Request], Awaitable[Response]]


def _trim(path: str) -> str:
    return path.rstrip("/") or "/"


class _Layer:
    def matches(self, path: str, method: str) -> bool:
        return False

    async def invoke(self, request: Request, path: str) -> Response | None:
        raise NotImplementedError


class _RouteLayer(_Layer):
    """One method + path template, its middlewares, then the endpoint."""

    def __init__(
        self,
        method: str,
        template: str,
        endpoint: EndpointHandler,
        middlewares: Sequence[MiddlewareHandler],
    ):
        self.method = method.upper()
        self.template = template
        regex, _, convertors = compile_path(_trim(template))
        self.regex: re.Pattern = regex
        self.convertors: dict[str, Convertor] = convertors
        self.endpoint = endpoint
        self.middlewares = tuple(middlewares)

    def matches(self, path: str, method: str) -> bool:
        if method != self.method and not (method == "HEAD" and self.method == "GET"):
            return False
        return self.regex.match(_trim(path)) is not None

    async def invoke(self, request: Request, path: str) -> Response:
        match = self.regex.match(_trim(path))
        path_params = {
            key: self.convertors[key].convert(value)
            for key, value in match.groupdict().items()
        }

        async def call(index: int, req: Request) -> Response:
            if index == len(self.middlewares):
                return await self.endpoint(req, path_params)
            return await self.middlewares[index](req, partial(call, index + 1))

        return await call(0, request)


class _MountLayer(_Layer):
    """A nested dispatcher under a literal prefix."""

    def __init__(self, prefix: str, dispatcher: "Dispatcher"):
        self.prefix = normalize_prefix(prefix)
        self.dispatcher = dispatcher

    def matches(self, path: str, method: str) -> bool:
        rest = strip_prefix(path, self.prefix)
        return rest is not None and self.dispatcher.matches(rest, method)

    async def invoke(self, request: Request, path: str) -> Response | None:
        return await self.dispatcher.run(request, strip_prefix(path, self.prefix))


class _StaticLayer(_Layer):
    """Answers every method at and below a prefix."""

    def __init__(self, prefix: str, endpoint: StaticHandler):
        self.prefix = normalize_prefix(prefix)
        self.endpoint = endpoint

    def matches(self, path: str, method: str) -> bool:
        return strip_prefix(path, self.prefix) is not None

    async def invoke(self, request: Request, path: str) -> Response:
        return await self.endpoint(request)


class _MiddlewareLayer(_Layer):
    def __init__(self, handler: MiddlewareHandler):
        self.handler = handler


class _ErrorLayer(_Layer):
    def __init__(self, handler: ErrorHandlerFunc):
        self.handler = handler


class Dispatcher:
    """An ordered list of layers; the unit a Switch compiles into."""

    def __init__(self):
        self._layers: list[_Layer] = []

    # ─── Assembly ──────────────────────────────────────────────

    def route(
        self,
        method: str,
        template: str,
        endpoint: EndpointHandler,
        middlewares: Sequence[MiddlewareHandler] = (),
    ) -> None:
        self._layers.append(_RouteLayer(method, template, endpoint, middlewares))

    def mount(self, prefix: str, dispatcher: "Dispatcher") -> None:
        self._layers.append(_MountLayer(prefix, dispatcher))

    def serve(self, prefix: str, endpoint: StaticHandler) -> None:
        self._layers.append(_StaticLayer(prefix, endpoint))

    def use(self, handler: MiddlewareHandler) -> None:
        self._layers.append(_MiddlewareLayer(handler))

    def use_error(self, handler: ErrorHandlerFunc) -> None:
        self._layers.append(_ErrorLayer(handler))

    def __len__(self) -> int:
        return len(self._layers)

    # ─── Matching ──────────────────────────────────────────────

    def matches(self, path: str, method: str) -> bool:
        return self._next_match(path, method, 0) is not None

    def _next_match(self, path: str, method: str, start: int) -> int | None:
        for index in range(start, len(self._layers)):
            if self._layers[index].matches(path, method):
                return index
        return None

    # ─── Serving ───────────────────────────────────────────────

    async def run(self, request: Request, path: str) -> Response | None:
        """Answer `request` at `path` (relative to this level), or None."""
        return await self._run(request, path, 0)

    async def _run(self, request: Request, path: str, start: int) -> Response | None:
        method = request.method
        for index in range(start, len(self._layers)):
            layer = self._layers[index]
            if isinstance(layer, _MiddlewareLayer):
                if self._next_match(path, method, index + 1) is None:
                    continue
                return await self._run_middleware(layer, request, path, index)
            if not layer.matches(path, method):
                continue
            try:
                response = await layer.invoke(request, path)
            except Exception as exc:
                return await self._recover(request, index + 1, exc)
            if response is not None:
                return response
        return None

    async def _run_middleware(
        self, layer: _MiddlewareLayer, request: Request, path: str, index: int,
    ) -> Response:
        escaped: list[Exception] = []

        async def call_next(req: Request) -> Response:
            try:
                response = await self._run(req, path, index + 1)
            except Exception as exc:
                escaped.append(exc)
                raise
            if response is None:
                raise HTTPException(status_code=404)
            return response

        try:
            return await layer.handler(request, call_next)
        except Exception as exc:
            if any(exc is seen for seen in escaped):
                raise
            return await self._recover(request, index + 1, exc)

    async def _recover(self, request: Request, start: int, error: Exception) -> Response:
        """Offer `error` to the error handlers from `start` on; re-raise if all decline."""
        for layer in self._layers[start:]:
            if not isinstance(layer, _ErrorLayer):
                continue
            try:
                return await layer.handler(request, error)
            except Exception as exc:
                error = exc
        raise error


def route_path(scope: Scope) -> str:
    """Request path relative to the mount point (scope root_path stripped)."""
    path = scope["path"]
    root_path = scope.get("root_path", "")
    if not root_path or not path.startswith(root_path):
        return path
    if path == root_path:
        return "/"
    if path[len(root_path)] == "/":
        return path[len(root_path):]
    return path


class SwitchApp:
    """ASGI adapter that serves a compiled dispatcher."""

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "websocket":
            await WebSocketClose()(scope, receive, send)
            return
        request = Request(scope, receive)
        response = await self.dispatcher.run(request, route_path(scope))
        if response is None:
            raise HTTPException(status_code=404)
        await response(scope, receive, send)
