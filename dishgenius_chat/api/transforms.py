"""Request payload transforms for the two provider conventions.

- Chat Completions: ``{model, messages, tools, tool_choice}``
- Responses: ``{model, input, tools, tool_choice}`` with flattened tools and
  tool traffic expressed as ``function_call`` / ``function_call_output`` items
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..core.timing_logger import timed
from .models import CompletionRequest, ConversationMessage

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Tool schema conversion
# -----------------------------------------------------------------------------

@timed
def _chat_tools_to_responses_tools(tools: Any) -> List[Dict[str, Any]]:
    """Convert Chat Completions ``tools`` schema -> Responses API tools schema."""
    if not isinstance(tools, list):
        return []
    out: List[Dict[str, Any]] = []
    for tool in tools:
        if not isinstance(tool, dict) or tool.get("type") != "function":
            continue
        fn = tool.get("function") if isinstance(tool.get("function"), dict) else {}
        name = tool.get("name") or fn.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        spec: Dict[str, Any] = {"type": "function", "name": name.strip()}
        description = tool.get("description") or fn.get("description")
        if isinstance(description, str) and description.strip():
            spec["description"] = description.strip()
        parameters = tool.get("parameters") or fn.get("parameters")
        if isinstance(parameters, dict):
            spec["parameters"] = parameters
        out.append(spec)
    return out


# -----------------------------------------------------------------------------
# Message conversion
# -----------------------------------------------------------------------------

@timed
def _messages_to_responses_input(messages: List[ConversationMessage]) -> List[Dict[str, Any]]:
    """Convert canonical history -> Responses API ``input`` items.

    An assistant message that carries tool calls becomes its text (if any)
    followed by one ``function_call`` item per call; a tool message becomes a
    ``function_call_output`` item keyed by the originating call id.
    """
    items: List[Dict[str, Any]] = []
    for message in messages:
        if message.role == "tool":
            items.append(
                {
                    "type": "function_call_output",
                    "call_id": message.tool_call_id,
                    "output": message.content or "",
                }
            )
            continue
        if message.content:
            items.append({"type": "message", "role": message.role, "content": message.content})
        if message.role == "assistant" and message.tool_calls:
            for call in message.tool_calls:
                items.append(
                    {
                        "type": "function_call",
                        "call_id": call.id,
                        "name": call.function.name,
                        "arguments": call.function.arguments,
                    }
                )
    return items


# -----------------------------------------------------------------------------
# Payload builders
# -----------------------------------------------------------------------------

@timed
def build_chat_completions_payload(request: CompletionRequest) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": request.model,
        "messages": [message.to_wire() for message in request.messages],
    }
    if request.tools:
        payload["tools"] = list(request.tools)
        if request.tool_choice is not None:
            payload["tool_choice"] = request.tool_choice
    return payload


@timed
def build_responses_payload(request: CompletionRequest) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": request.model,
        "input": _messages_to_responses_input(request.messages),
    }
    tools = _chat_tools_to_responses_tools(request.tools)
    if tools:
        payload["tools"] = tools
        if request.tool_choice is not None:
            payload["tool_choice"] = request.tool_choice
    return payload
