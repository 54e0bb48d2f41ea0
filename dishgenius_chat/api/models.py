"""Canonical request/response models shared by both provider conventions."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..core.utils import _dump_tool_payload
from ..tools.models import ToolCallRequest, ToolResult

Role = Literal["user", "assistant", "system", "tool"]


class FunctionCallPayload(BaseModel):
    name: str
    arguments: str = "{}"
    model_config = ConfigDict(extra="ignore")


class ToolCallPayload(BaseModel):
    """One entry of an assistant message's ``tool_calls`` list."""

    id: str
    type: Literal["function"] = "function"
    function: FunctionCallPayload
    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_request(cls, call: ToolCallRequest) -> "ToolCallPayload":
        return cls(id=call.id, function=FunctionCallPayload(name=call.name, arguments=call.arguments))


class ConversationMessage(BaseModel):
    """A turn in the dialogue, accepted in snake_case or camelCase."""

    role: Role
    content: Optional[str] = None
    tool_call_id: Optional[str] = Field(default=None, alias="toolCallId")
    tool_calls: Optional[List[ToolCallPayload]] = Field(default=None, alias="toolCalls")
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def assistant_tool_request(cls, content: Optional[str], calls: List[ToolCallRequest]) -> "ConversationMessage":
        return cls(
            role="assistant",
            content=content,
            tool_calls=[ToolCallPayload.from_request(call) for call in calls],
        )

    @classmethod
    def from_tool_result(cls, result: ToolResult) -> "ConversationMessage":
        return cls(role="tool", tool_call_id=result.id, content=_dump_tool_payload(result.to_payload()))

    def to_wire(self) -> Dict[str, Any]:
        """Chat-completions message dict; absent fields are omitted."""
        wire: Dict[str, Any] = {"role": self.role}
        if self.content is not None:
            wire["content"] = self.content
        if self.tool_call_id is not None:
            wire["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            wire["tool_calls"] = [call.model_dump() for call in self.tool_calls]
        return wire


class CompletionRequest(BaseModel):
    """Provider-agnostic completion request; adapters translate it to the wire."""

    model: str
    messages: List[ConversationMessage]
    tools: List[Dict[str, Any]] = Field(default_factory=list)
    tool_choice: Optional[Union[str, Dict[str, Any]]] = "auto"


class CompletionReply(BaseModel):
    """Normalized provider reply: text and/or the tool calls it asked for."""

    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict)

    @property
    def requests_tools(self) -> bool:
        return bool(self.tool_calls)

    @property
    def has_text(self) -> bool:
        return bool(self.content and self.content.strip())
