"""Document Assembly - flat list of resolved endpoints into an OpenAPI document.

Invariants:
    - build() is pure: same inputs, same document (key order included)
    - One operation per (full_path, method); the first declaration wins
    - Nested model definitions are hoisted to components.schemas
    - Path parameters are always required; query and body parameters are
      required unless their schema accepts None
"""

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping, Sequence

from pydantic import BaseModel

from switchyard.core.parameters import (
    ParameterLocation, ParameterSchema, RequestSchema, ValidatorSchema,
)
from switchyard.core.validation import (
    DEFAULT_REF_TEMPLATE, PydanticValidator, Validator,
)

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"


@dataclass(frozen=True)
class ResolvedEndpoint:
    """A RequestSchema together with its absolute path in the tree."""
    full_path: str
    request_schema: RequestSchema


class OpenAPIBuilder:
    """Assembles the description document for a set of resolved endpoints."""

    def __init__(
        self,
        info: BaseModel | Mapping[str, Any],
        endpoints: Sequence[ResolvedEndpoint],
        response_schemas: Mapping[str, ValidatorSchema] | None = None,
        validator: Validator | None = None,
        openapi_version: str = "3.1.0",
    ):
        self.info = info
        self.endpoints = tuple(endpoints)
        self.response_schemas = dict(response_schemas or {})
        self.validator = validator or PydanticValidator()
        self.openapi_version = openapi_version

    def build(self) -> dict[str, Any]:
        definitions: dict[str, Any] = {}
        paths: dict[str, dict[str, Any]] = {}
        for endpoint in self.endpoints:
            operations = paths.setdefault(endpoint.full_path, {})
            method = endpoint.request_schema.method.value.lower()
            if method in operations:
                logger.warning(
                    f"Duplicate {method.upper()} {endpoint.full_path} "
                    f"({endpoint.request_schema.operation_id}) left out of the document",
                    extra={"operation_id": endpoint.request_schema.operation_id},
                )
                continue
            operations[method] = self._operation(
                endpoint.request_schema, definitions,
            )

        document: dict[str, Any] = {
            "openapi": self.openapi_version,
            "info": _info_object(self.info),
            "paths": paths,
        }
        components: dict[str, Any] = {}
        if self.response_schemas:
            components["responses"] = {
                status: self._response(_status_description(status), schema, definitions)
                for status, schema in self.response_schemas.items()
            }
        if definitions:
            components["schemas"] = dict(sorted(definitions.items()))
        if components:
            document["components"] = components
        return document

    def _operation(
        self, request_schema: RequestSchema, definitions: dict[str, Any],
    ) -> dict[str, Any]:
        operation: dict[str, Any] = {"operationId": request_schema.operation_id}

        parameters = [
            self._parameter(p, definitions)
            for p in request_schema.parameters.values()
            if p.location is not ParameterLocation.BODY
        ]
        if parameters:
            operation["parameters"] = parameters

        body_parameters = request_schema.located(ParameterLocation.BODY)
        if body_parameters:
            operation["requestBody"] = self._request_body(body_parameters, definitions)

        responses = {
            "200": self._response(
                "Successful response", request_schema.response_schema, definitions,
            ),
        }
        for status in self.response_schemas:
            responses.setdefault(status, {"$ref": f"#/components/responses/{status}"})
        operation["responses"] = responses
        return operation

    def _parameter(
        self, parameter: ParameterSchema, definitions: dict[str, Any],
    ) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "name": parameter.name,
            "in": parameter.location.value,
            "required": (
                parameter.location is ParameterLocation.PATH
                or self._required(parameter)
            ),
            "schema": self._schema(parameter.schema, definitions),
        }
        if parameter.description:
            entry["description"] = parameter.description
        return entry

    def _request_body(
        self, parameters: list[ParameterSchema], definitions: dict[str, Any],
    ) -> dict[str, Any]:
        properties = {}
        for p in parameters:
            prop = self._schema(p.schema, definitions)
            if p.description:
                prop = {**prop, "description": p.description}
            properties[p.name] = prop
        required = [p.name for p in parameters if self._required(p)]
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return {
            "required": bool(required),
            "content": {JSON_MEDIA_TYPE: {"schema": schema}},
        }

    def _response(
        self, description: str, schema: ValidatorSchema, definitions: dict[str, Any],
    ) -> dict[str, Any]:
        response: dict[str, Any] = {"description": description}
        if schema is not None:
            response["content"] = {
                JSON_MEDIA_TYPE: {"schema": self._schema(schema, definitions)},
            }
        return response

    def _schema(
        self, schema: ValidatorSchema, definitions: dict[str, Any],
    ) -> dict[str, Any]:
        generated = self.validator.json_schema(schema, DEFAULT_REF_TEMPLATE)
        for name, definition in generated.pop("$defs", {}).items():
            definitions.setdefault(name, definition)
        return generated

    def _required(self, parameter: ParameterSchema) -> bool:
        return not self.validator.validate(parameter.schema, None).success


def _info_object(info: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(info, BaseModel):
        return info.model_dump(exclude_none=True, by_alias=True)
    return dict(info)


def _status_description(status: str) -> str:
    try:
        return HTTPStatus(int(status)).phrase
    except ValueError:
        return "Error response"
