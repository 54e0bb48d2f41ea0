"""Tool parameter schemas.

Parameters are declared as tagged variants rather than raw JSON schema:

- StringParam / NumberParam / BooleanParam for scalar values
- EnumParam for a closed set of strings
- Nullable(inner) to allow ``null`` in addition to ``inner``

An :class:`ObjectSchema` groups them, renders the JSON-schema form sent to
the provider and validates parsed arguments before a tool runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

from ..core.errors import ToolArgumentError
from ..core.timing_logger import timed
from .models import ToolDefinition

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Parameter variants
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class StringParam:
    description: str = ""
    json_type = "string"

    def to_json_schema(self) -> Dict[str, Any]:
        return _with_description({"type": self.json_type}, self.description)

    def check(self, name: str, value: Any) -> None:
        if not isinstance(value, str):
            raise ToolArgumentError(f"'{name}' must be a string")


@dataclass(frozen=True)
class NumberParam:
    description: str = ""
    integer: bool = False

    @property
    def json_type(self) -> str:
        return "integer" if self.integer else "number"

    def to_json_schema(self) -> Dict[str, Any]:
        return _with_description({"type": self.json_type}, self.description)

    def check(self, name: str, value: Any) -> None:
        # bool is an int subclass but never a valid number argument
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ToolArgumentError(f"'{name}' must be a {self.json_type}")
        if self.integer and isinstance(value, float) and not value.is_integer():
            raise ToolArgumentError(f"'{name}' must be an integer")


@dataclass(frozen=True)
class BooleanParam:
    description: str = ""
    json_type = "boolean"

    def to_json_schema(self) -> Dict[str, Any]:
        return _with_description({"type": self.json_type}, self.description)

    def check(self, name: str, value: Any) -> None:
        if not isinstance(value, bool):
            raise ToolArgumentError(f"'{name}' must be a boolean")


@dataclass(frozen=True)
class EnumParam:
    values: tuple[str, ...]
    description: str = ""
    json_type = "string"

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.json_type}
        _with_description(schema, self.description)
        schema["enum"] = list(self.values)
        return schema

    def check(self, name: str, value: Any) -> None:
        if not isinstance(value, str) or value not in self.values:
            allowed = ", ".join(self.values)
            raise ToolArgumentError(f"'{name}' must be one of: {allowed}")


@dataclass(frozen=True)
class Nullable:
    inner: "StringParam | NumberParam | BooleanParam | EnumParam"

    @property
    def description(self) -> str:
        return self.inner.description

    def to_json_schema(self) -> Dict[str, Any]:
        schema = self.inner.to_json_schema()
        schema["type"] = [schema["type"], "null"]
        if "enum" in schema:
            schema["enum"] = [*schema["enum"], None]
        return schema

    def check(self, name: str, value: Any) -> None:
        if value is None:
            return
        self.inner.check(name, value)


def _with_description(schema: Dict[str, Any], description: str) -> Dict[str, Any]:
    if description:
        schema["description"] = description
    return schema


# -----------------------------------------------------------------------------
# Object schema
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ObjectSchema:
    """Ordered parameter set for one tool."""

    properties: Mapping[str, Any] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    additional_properties: bool = False

    def to_json_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {name: param.to_json_schema() for name, param in self.properties.items()},
            "required": list(self.required),
            "additionalProperties": self.additional_properties,
        }

    @timed
    def validate(self, args: Any) -> Dict[str, Any]:
        """Return a copy of ``args`` after checking it against the schema.

        Raises:
            ToolArgumentError: describing the first violation found.
        """
        if not isinstance(args, dict):
            raise ToolArgumentError("arguments must be a JSON object")
        missing = [name for name in self.required if name not in args]
        if missing:
            raise ToolArgumentError(f"missing required argument(s): {', '.join(missing)}")
        if not self.additional_properties:
            unknown = [key for key in args if key not in self.properties]
            if unknown:
                raise ToolArgumentError(f"unexpected argument(s): {', '.join(unknown)}")
        for name, param in self.properties.items():
            if name not in args:
                continue
            value = args[name]
            if value is None and not isinstance(param, Nullable):
                raise ToolArgumentError(f"'{name}' must not be null")
            param.check(name, value)
        return dict(args)


# -----------------------------------------------------------------------------
# Provider schema export
# -----------------------------------------------------------------------------

def _parameters_json(definition: ToolDefinition) -> Dict[str, Any]:
    parameters = definition.parameters
    if isinstance(parameters, ObjectSchema):
        return parameters.to_json_schema()
    if isinstance(parameters, dict):
        return parameters
    return {"type": "object", "properties": {}}


@timed
def to_provider_schema(definitions: Iterable[ToolDefinition]) -> List[Dict[str, Any]]:
    """Return provider-safe function schemas (the execute handle is dropped).

    Each entry has exactly ``{"type": "function", "function": {name,
    description, parameters}}``.
    """
    return [
        {
            "type": "function",
            "function": {
                "name": definition.name,
                "description": definition.description,
                "parameters": _parameters_json(definition),
            },
        }
        for definition in definitions
    ]
