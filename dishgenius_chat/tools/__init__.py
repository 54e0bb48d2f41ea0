"""Tool registry, schemas, executor and the built-in tools."""

from __future__ import annotations

from .catalog import DEFAULT_TOOL_FACTORIES, build_default_registry
from .executor import ToolExecutor
from .models import ToolCallRequest, ToolDefinition, ToolResult
from .registry import ToolRegistry
from .schema import (
    BooleanParam,
    EnumParam,
    Nullable,
    NumberParam,
    ObjectSchema,
    StringParam,
    to_provider_schema,
)

__all__ = [
    "DEFAULT_TOOL_FACTORIES",
    "build_default_registry",
    "ToolExecutor",
    "ToolCallRequest",
    "ToolDefinition",
    "ToolResult",
    "ToolRegistry",
    "BooleanParam",
    "EnumParam",
    "Nullable",
    "NumberParam",
    "ObjectSchema",
    "StringParam",
    "to_provider_schema",
]
