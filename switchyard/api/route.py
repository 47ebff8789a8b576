"""Route - binds a RequestSchema to a handler and compiles the dispatch coroutine.

Invariants:
    - Every declared parameter is validated on every request, failures aggregated
    - The handler never runs when any parameter failed validation
    - The handler receives a fresh BoundParameters; the request is never mutated
    - Handler exceptions propagate unchanged to the error-reporting chain
    - A repeated query key binds its first value

Design Decisions:
    - Handlers may be coroutine functions or plain functions; awaitables are awaited
    - Non-Response return values are encoded with FastAPI's jsonable_encoder
"""

import inspect
import json
import logging
from functools import lru_cache
from typing import Any, Callable, Mapping, Sequence

from fastapi.encoders import jsonable_encoder
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from switchyard.api.filters import Middleware
from switchyard.config import get_settings
from switchyard.core.errors import ErrorContext, ParameterValidationError
from switchyard.core.parameters import (
    Method, Parameter, ParameterLocation, ParameterSchema, RequestSchema,
    ValidatorSchema,
)
from switchyard.core.validation import (
    BoundParameters, PydanticValidator, Validator, bind_parameters,
)

logger = logging.getLogger(__name__)

RouteHandler = Callable[[Request, BoundParameters], Any]
Parameters = Mapping[str, Parameter | ParameterSchema]


@lru_cache
def get_default_validator() -> PydanticValidator:
    """Process-wide validator, strictness from settings."""
    return PydanticValidator(strict=get_settings().strict_validation)


class Route:
    """An endpoint node: one method, one path template, one handler."""

    @classmethod
    def get(
        cls, path: str, operation_id: str, parameters: Parameters,
        response_schema: ValidatorSchema, handler: RouteHandler, **options,
    ) -> "Route":
        return cls(Method.GET, path, operation_id, parameters, response_schema, handler, **options)

    @classmethod
    def post(
        cls, path: str, operation_id: str, parameters: Parameters,
        response_schema: ValidatorSchema, handler: RouteHandler, **options,
    ) -> "Route":
        return cls(Method.POST, path, operation_id, parameters, response_schema, handler, **options)

    @classmethod
    def put(
        cls, path: str, operation_id: str, parameters: Parameters,
        response_schema: ValidatorSchema, handler: RouteHandler, **options,
    ) -> "Route":
        return cls(Method.PUT, path, operation_id, parameters, response_schema, handler, **options)

    @classmethod
    def patch(
        cls, path: str, operation_id: str, parameters: Parameters,
        response_schema: ValidatorSchema, handler: RouteHandler, **options,
    ) -> "Route":
        return cls(Method.PATCH, path, operation_id, parameters, response_schema, handler, **options)

    @classmethod
    def delete(
        cls, path: str, operation_id: str, parameters: Parameters,
        response_schema: ValidatorSchema, handler: RouteHandler, **options,
    ) -> "Route":
        return cls(Method.DELETE, path, operation_id, parameters, response_schema, handler, **options)

    def __init__(
        self,
        method: Method | str,
        path: str,
        operation_id: str,
        parameters: Parameters,
        response_schema: ValidatorSchema,
        handler: RouteHandler,
        *,
        middlewares: Sequence[Middleware] = (),
        validator: Validator | None = None,
    ):
        self.request_schema = RequestSchema.create(
            method, path, operation_id, parameters, response_schema,
        )
        self.middlewares = tuple(middlewares)
        self.validator = validator or get_default_validator()
        self._handler = handler
        self._reads_body = bool(self.request_schema.located(ParameterLocation.BODY))

    def __repr__(self) -> str:
        schema = self.request_schema
        return f"Route({schema.method.value} {schema.path} {schema.operation_id})"

    async def handle(self, request: Request, path_params: Mapping[str, Any]) -> Response:
        """Validate, bind and invoke the handler for one matched request."""
        schema = self.request_schema
        sources = {
            ParameterLocation.PATH: path_params,
            ParameterLocation.QUERY: _first_values(request),
            ParameterLocation.BODY: (
                await self._read_body(request) if self._reads_body else {}
            ),
        }
        params, errors = bind_parameters(schema.parameters, sources, self.validator)
        if errors:
            logger.warning(
                f"Parameter validation failed for {schema.operation_id}: {errors}",
                extra={
                    "operation_id": schema.operation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error_code": "VALIDATION_ERROR",
                },
            )
            raise ParameterValidationError(errors, self._context(request))

        result = self._handler(request, params)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, Response):
            return result
        return JSONResponse(jsonable_encoder(result))

    async def _read_body(self, request: Request) -> Mapping[str, Any]:
        raw = await request.body()
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except ValueError:
            raise ParameterValidationError(
                ["request body: invalid JSON"], self._context(request),
            ) from None
        return payload if isinstance(payload, dict) else {}

    def _context(self, request: Request) -> ErrorContext:
        return ErrorContext(
            operation_id=self.request_schema.operation_id,
            method=request.method,
            path=request.url.path,
        )


def _first_values(request: Request) -> dict[str, str]:
    """Query entries, first value per repeated key."""
    return {key: value for key, value in reversed(request.query_params.multi_items())}
