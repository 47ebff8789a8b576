"""Route Tree - Switch (composite) and OpenAPIRoute (description) nodes.

Invariants:
    - Node is a closed set: Switch | Route | Middleware | ErrorHandler | OpenAPIRoute
    - Both places that branch on node kind (mounting, endpoint collection)
      match exhaustively and reject anything else with DeclarationError
    - A Switch compiles its dispatcher once, in its constructor
    - An OpenAPIRoute builds its document once, in its constructor, and serves
      the same bytes for its whole lifetime

Design Decisions:
    - Switch and OpenAPIRoute share a module: each needs to recognize the other
    - Endpoint collection starts from the root's own base_url, not from "/":
      a root Switch("/api", ...) documents "/api/items", the path actually
      served, where a walk rooted at "/" would document "/items"
"""

import copy
import json
import logging
from typing import Any, Mapping, Sequence, Union

from pydantic import BaseModel
from starlette.requests import Request
from starlette.responses import Response

from switchyard.api.dispatch import Dispatcher
from switchyard.api.filters import ErrorHandler, Middleware
from switchyard.api.route import Route, get_default_validator
from switchyard.config import get_settings
from switchyard.core.errors import DeclarationError
from switchyard.core.openapi import JSON_MEDIA_TYPE, OpenAPIBuilder, ResolvedEndpoint
from switchyard.core.parameters import ValidatorSchema
from switchyard.core.paths import resolve_base_url, to_native_path
from switchyard.core.validation import Validator

logger = logging.getLogger(__name__)

Node = Union["Switch", Route, Middleware, ErrorHandler, "OpenAPIRoute"]


class Switch:
    """An ordered group of nodes under a path prefix."""

    def __init__(self, base_url: str, children: Sequence[Node]):
        if not base_url.startswith("/"):
            raise DeclarationError(f"Switch base URL {base_url!r} must start with '/'")
        self.base_url = base_url
        self.children: tuple[Node, ...] = tuple(children)

        inner = Dispatcher()
        for child in self.children:
            _mount(inner, child)
        self.dispatcher = Dispatcher()
        self.dispatcher.mount(base_url, inner)

    def __repr__(self) -> str:
        return f"Switch({self.base_url!r}, {len(self.children)} children)"


def _mount(dispatcher: Dispatcher, child: Node) -> None:
    match child:
        case Switch():
            # carries its own base_url
            dispatcher.mount("/", child.dispatcher)
        case Route():
            schema = child.request_schema
            dispatcher.route(
                schema.method.value,
                to_native_path(schema.path),
                child.handle,
                [m.handler for m in child.middlewares],
            )
        case Middleware():
            dispatcher.use(child.handler)
        case ErrorHandler():
            dispatcher.use_error(child.handler)
        case OpenAPIRoute():
            dispatcher.serve(child.path, child.respond)
        case _:
            raise DeclarationError(f"Unsupported node in Switch: {child!r}")


def collect_endpoints(switch: Switch, base_url: str | None = None) -> list[ResolvedEndpoint]:
    """Flatten a tree into endpoints with absolute paths, depth first."""
    base = resolve_base_url(switch.base_url) if base_url is None else base_url
    endpoints: list[ResolvedEndpoint] = []
    for child in switch.children:
        match child:
            case Switch():
                endpoints.extend(
                    collect_endpoints(child, resolve_base_url(base, child.base_url)),
                )
            case Route():
                endpoints.append(ResolvedEndpoint(
                    resolve_base_url(base, child.request_schema.path),
                    child.request_schema,
                ))
            case Middleware() | ErrorHandler() | OpenAPIRoute():
                pass
            case _:
                raise DeclarationError(f"Unsupported node in Switch: {child!r}")
    return endpoints


class OpenAPIRoute:
    """Serves the description document of a route tree at `path`."""

    def __init__(
        self,
        path: str,
        info: BaseModel | Mapping[str, Any],
        root: Switch,
        response_schemas: Mapping[str, ValidatorSchema] | None = None,
        *,
        validator: Validator | None = None,
        openapi_version: str | None = None,
    ):
        if not path.startswith("/"):
            raise DeclarationError(f"OpenAPIRoute path {path!r} must start with '/'")
        self.path = path
        self.endpoints = tuple(collect_endpoints(root))
        self._document = OpenAPIBuilder(
            info,
            self.endpoints,
            response_schemas,
            validator=validator or get_default_validator(),
            openapi_version=openapi_version or get_settings().openapi_version,
        ).build()
        self._body = json.dumps(
            self._document, ensure_ascii=False, allow_nan=False,
            indent=None, separators=(",", ":"),
        ).encode("utf-8")
        logger.info(
            f"Built description document for {len(self.endpoints)} endpoints at {path}",
            extra={"endpoint_count": len(self.endpoints), "path": path},
        )

    @property
    def spec(self) -> dict[str, Any]:
        """A copy of the document; the served bytes never change."""
        return copy.deepcopy(self._document)

    async def respond(self, request: Request) -> Response:
        return Response(self._body, status_code=200, media_type=JSON_MEDIA_TYPE)

    def __repr__(self) -> str:
        return f"OpenAPIRoute({self.path!r}, {len(self.endpoints)} endpoints)"
