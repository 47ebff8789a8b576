"""Request Schemas - typed description of one endpoint's method, path and parameters.

Invariants:
    - ParameterSchema.name is unique within a RequestSchema (mapping key)
    - Every {name} placeholder in RequestSchema.path has a PATH parameter
    - RequestSchema.path starts with "/"
    - Schemas are frozen after construction; parameters is a read-only mapping

Design Decisions:
    - ParameterLocation is a closed enum: dispatch switches over it explicitly
    - Parameters are declared unnamed (path(int)) and named by their mapping key
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from switchyard.core.errors import DeclarationError
from switchyard.core.paths import placeholders

ValidatorSchema = Any


class Method(str, Enum):
    """HTTP methods a Route can be declared with."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: "Method | str") -> "Method":
        if isinstance(value, Method):
            return value
        try:
            return cls(value.upper())
        except ValueError:
            raise DeclarationError(f"Unsupported HTTP method: {value!r}") from None


class ParameterLocation(str, Enum):
    """Where a parameter's raw value comes from."""
    PATH = "path"
    QUERY = "query"
    BODY = "body"


@dataclass(frozen=True)
class Parameter:
    """An unnamed parameter declaration."""
    location: ParameterLocation
    schema: ValidatorSchema
    description: str | None = None


def path(schema: ValidatorSchema, description: str | None = None) -> Parameter:
    return Parameter(ParameterLocation.PATH, schema, description)


def query(schema: ValidatorSchema, description: str | None = None) -> Parameter:
    return Parameter(ParameterLocation.QUERY, schema, description)


def body(schema: ValidatorSchema, description: str | None = None) -> Parameter:
    return Parameter(ParameterLocation.BODY, schema, description)


@dataclass(frozen=True)
class ParameterSchema:
    """A named parameter bound to a location and a validator schema."""
    name: str
    location: ParameterLocation
    schema: ValidatorSchema
    description: str | None = None


@dataclass(frozen=True)
class RequestSchema:
    """One endpoint: method, path template, named parameters and response shape."""
    method: Method
    path: str
    operation_id: str
    parameters: Mapping[str, ParameterSchema] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    response_schema: ValidatorSchema = None

    @classmethod
    def create(
        cls,
        method: Method | str,
        path: str,
        operation_id: str,
        parameters: Mapping[str, Parameter | ParameterSchema] | None = None,
        response_schema: ValidatorSchema = None,
    ) -> "RequestSchema":
        """Normalize method, name the parameters and check the path template."""
        named = {
            name: _named(name, declared)
            for name, declared in (parameters or {}).items()
        }
        schema = cls(
            Method.parse(method), path, operation_id,
            MappingProxyType(named), response_schema,
        )
        schema.check()
        return schema

    def check(self) -> None:
        if not self.path.startswith("/"):
            raise DeclarationError(
                f"{self.operation_id}: path {self.path!r} must start with '/'",
            )
        for name in placeholders(self.path):
            declared = self.parameters.get(name)
            if declared is None or declared.location is not ParameterLocation.PATH:
                raise DeclarationError(
                    f"{self.operation_id}: placeholder {{{name}}} in {self.path!r} "
                    f"has no path parameter",
                )

    def located(self, location: ParameterLocation) -> list[ParameterSchema]:
        """Parameters at one location, in declaration order."""
        return [p for p in self.parameters.values() if p.location is location]


def _named(name: str, declared: Parameter | ParameterSchema) -> ParameterSchema:
    if isinstance(declared, ParameterSchema):
        if declared.name != name:
            raise DeclarationError(
                f"Parameter declared as {name!r} is named {declared.name!r}",
            )
        return declared
    return ParameterSchema(
        name, declared.location, declared.schema, declared.description,
    )
