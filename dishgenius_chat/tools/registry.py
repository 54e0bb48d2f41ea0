"""Tool registry: name -> ToolDefinition.

The registry is built once at startup (see :mod:`.catalog`) and read
concurrently by request handlers afterwards. Registration is last write
wins; lookups never raise.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from ..core.timing_logger import timed
from .models import ToolDefinition

LOGGER = logging.getLogger(__name__)


class ToolRegistry:
    """Mapping from tool name to definition, in insertion order."""

    def __init__(self, definitions: Optional[Iterable[ToolDefinition]] = None) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        for definition in definitions or ():
            self.register(definition)

    @timed
    def register(self, definition: ToolDefinition) -> None:
        """Insert ``definition`` or overwrite the entry with the same name."""
        if definition.name in self._tools:
            LOGGER.warning("Tool %s re-registered; replacing previous definition.", definition.name)
        self._tools[definition.name] = definition
        LOGGER.debug("Tool registered: %s", definition.name)

    def lookup(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    @timed
    def lookup_many(self, names: Iterable[str]) -> List[ToolDefinition]:
        """Return definitions for ``names`` in the given order, skipping unknown names."""
        found: List[ToolDefinition] = []
        for name in names:
            definition = self._tools.get(name)
            if definition is not None:
                found.append(definition)
        return found

    def enumerate_all(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def select(self, names: Optional[Iterable[str]]) -> List[ToolDefinition]:
        """Return the exposed subset: ``names`` when given, otherwise every tool."""
        names = list(names or ())
        if not names:
            return self.enumerate_all()
        return self.lookup_many(names)

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(list(self._tools.values()))
