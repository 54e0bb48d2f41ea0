"""Tool data model shared by the registry, executor and built-in tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

if TYPE_CHECKING:
    from .schema import ObjectSchema

ToolExecuteFn = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass(slots=True)
class ToolDefinition:
    """A named capability the model may ask to invoke.

    ``parameters`` is normally an :class:`ObjectSchema`; a plain JSON-schema
    dict is accepted as-is (exported verbatim, arguments not validated).
    ``execute`` is never sent to the provider.
    """

    name: str
    description: str
    parameters: Union["ObjectSchema", dict[str, Any]]
    execute: Optional[ToolExecuteFn] = None


@dataclass(slots=True)
class ToolCallRequest:
    """A model-issued request to run one tool. ``arguments`` is raw JSON text."""

    id: str
    name: str
    arguments: str = "{}"


@dataclass(slots=True)
class ToolResult:
    """Outcome of one tool call: ``result`` on success, ``error`` on failure."""

    id: str
    result: Any = None
    error: Optional[str] = None
    name: str = field(default="", compare=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> Any:
        """Return the value serialised into the ``role: tool`` message."""
        if self.error is not None:
            return {"error": self.error}
        return self.result
