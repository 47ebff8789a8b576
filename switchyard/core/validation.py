"""Parameter Validation - validator capability, JSON-coercion fallback and binding.

Invariants:
    - Validation never raises for bad input: failures are ValidationResult values
    - Coercion only ever parses strings, and only after direct validation failed
    - A parsed value replaces the raw one even when it fails re-validation
    - bind_parameters reports failures in declaration order, all of them
    - BoundParameters is a fresh read-only mapping per request

Design Decisions:
    - Validator is a Protocol: the pydantic-backed implementation is the default,
      not a requirement
    - Strict pydantic mode by default so "42" does not silently pass as an int
      before the JSON fallback gets a chance to run
    - Values are validated in pydantic's JSON mode: request values are JSON
      natives, and strict Python mode would demand real UUID/Enum/datetime
      instances that no request can carry
"""

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Protocol

from pydantic import TypeAdapter, ValidationError

from switchyard.core.parameters import (
    ParameterLocation, ParameterSchema, ValidatorSchema,
)

DEFAULT_REF_TEMPLATE = "#/components/schemas/{model}"


@dataclass(frozen=True)
class ValidationResult:
    success: bool
    description: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def failure(cls, description: str) -> "ValidationResult":
        return cls(False, description)


class Validator(Protocol):
    """Validator capability consumed by routes and the document builder."""
    def validate(self, schema: ValidatorSchema, value: Any) -> ValidationResult: ...

    def json_schema(
        self, schema: ValidatorSchema, ref_template: str = DEFAULT_REF_TEMPLATE,
    ) -> dict[str, Any]: ...


class PydanticValidator:
    """Validator backed by pydantic TypeAdapters, one per schema object."""

    def __init__(self, strict: bool = True):
        self.strict = strict
        self._adapters: dict[int, tuple[ValidatorSchema, TypeAdapter]] = {}

    def adapter(self, schema: ValidatorSchema) -> TypeAdapter:
        cached = self._adapters.get(id(schema))
        if cached is None or cached[0] is not schema:
            cached = (schema, TypeAdapter(schema))
            self._adapters[id(schema)] = cached
        return cached[1]

    def validate(self, schema: ValidatorSchema, value: Any) -> ValidationResult:
        """Validate `value` as the JSON document it arrived as.

        JSON mode keeps strings such as UUIDs, enum members and timestamps
        valid under strict mode, while "42" still fails for an int.
        """
        try:
            document = json.dumps(value)
        except (TypeError, ValueError) as exc:
            return ValidationResult.failure(f"Value is not JSON-serializable: {exc}")
        try:
            self.adapter(schema).validate_json(document, strict=self.strict)
        except ValidationError as exc:
            return ValidationResult.failure(describe_errors(exc))
        return ValidationResult.ok()

    def json_schema(
        self, schema: ValidatorSchema, ref_template: str = DEFAULT_REF_TEMPLATE,
    ) -> dict[str, Any]:
        return self.adapter(schema).json_schema(ref_template=ref_template)


def describe_errors(exc: ValidationError) -> str:
    """Flatten pydantic errors into one human-readable description."""
    parts = []
    for e in exc.errors(include_url=False):
        field = ".".join(str(loc) for loc in e["loc"])
        parts.append(f"{field}: {e['msg']}" if field else e["msg"])
    return "; ".join(parts)


def validate_with_parse(
    validator: Validator, schema: ValidatorSchema, value: Any,
) -> tuple[ValidationResult, Any]:
    """Validate `value`; on failure retry a string as a JSON literal.

    Returns the result that stands and the effective value. When the string
    parses, the parsed value and its (possibly failed) result win over the
    first attempt.
    """
    result = validator.validate(schema, value)
    if result.success or not isinstance(value, str):
        return result, value
    try:
        parsed = json.loads(value)
    except ValueError:
        return result, value
    return validator.validate(schema, parsed), parsed


class BoundParameters(Mapping[str, Any]):
    """Validated (and possibly coerced) parameter values for one request."""

    def __init__(
        self,
        values: Mapping[str, Any],
        locations: Mapping[str, ParameterLocation],
    ):
        self._values = MappingProxyType(dict(values))
        self._locations = MappingProxyType(dict(locations))

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"BoundParameters({dict(self._values)!r})"

    def at(self, location: ParameterLocation) -> Mapping[str, Any]:
        return MappingProxyType({
            name: value for name, value in self._values.items()
            if self._locations[name] is location
        })

    @property
    def path(self) -> Mapping[str, Any]:
        return self.at(ParameterLocation.PATH)

    @property
    def query(self) -> Mapping[str, Any]:
        return self.at(ParameterLocation.QUERY)

    @property
    def body(self) -> Mapping[str, Any]:
        return self.at(ParameterLocation.BODY)


def bind_parameters(
    parameters: Mapping[str, ParameterSchema],
    sources: Mapping[ParameterLocation, Mapping[str, Any]],
    validator: Validator,
) -> tuple[BoundParameters, list[str]]:
    """Validate every declared parameter against its raw source value.

    Returns the bound set and the ordered failure messages
    ("parameter <name>: <description>"). The bound set is only meaningful
    when the message list is empty.
    """
    values: dict[str, Any] = {}
    locations: dict[str, ParameterLocation] = {}
    errors: list[str] = []
    for name, parameter in parameters.items():
        raw = sources.get(parameter.location, {}).get(name)
        result, value = validate_with_parse(validator, parameter.schema, raw)
        values[name] = value
        locations[name] = parameter.location
        if not result.success:
            errors.append(f"parameter {name}: {result.description}")
    return BoundParameters(values, locations), errors
