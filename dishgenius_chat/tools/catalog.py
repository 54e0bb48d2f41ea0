"""Static list of built-in tools and the startup registry builder."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from ..core.errors import DuplicateToolError
from ..core.timing_logger import timed
from .models import ToolDefinition
from .nutrition_info import build_nutrition_info_tool
from .recipe_lookup import build_recipe_lookup_tool
from .registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

ToolFactory = Callable[[], ToolDefinition]

DEFAULT_TOOL_FACTORIES: tuple[ToolFactory, ...] = (
    build_recipe_lookup_tool,
    build_nutrition_info_tool,
)


@timed
def build_default_registry(factories: Optional[Iterable[ToolFactory]] = None) -> ToolRegistry:
    """Build the registry from ``factories`` (the built-in tools by default).

    Raises:
        DuplicateToolError: when two factories produce the same tool name.
    """
    registry = ToolRegistry()
    for factory in DEFAULT_TOOL_FACTORIES if factories is None else factories:
        definition = factory()
        if definition.name in registry:
            raise DuplicateToolError(f"Duplicate tool name in catalog: {definition.name}")
        registry.register(definition)
    LOGGER.info("Tool registry ready: %s", ", ".join(registry.names()) or "(empty)")
    return registry
