"""Inbound chat body validation.

Turns the client's JSON body into canonical :class:`ConversationMessage`
objects or raises :class:`BadRequestError` with the message shown to the
client. No provider call is made for a rejected body.
"""

from __future__ import annotations

import logging
from typing import Any, List

from pydantic import ValidationError

from ..api.models import ConversationMessage
from ..core.errors import INVALID_BODY_MESSAGE, INVALID_MESSAGE_MESSAGE, BadRequestError
from ..core.timing_logger import timed
from ..core.utils import _dump_tool_payload

LOGGER = logging.getLogger(__name__)

_ALLOWED_ROLES = frozenset({"user", "assistant", "system", "tool"})


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _first_present(message: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in message and message[key] is not None:
            return message[key]
    return None


def _normalize_tool_calls(raw_calls: Any) -> List[dict[str, Any]]:
    """Validate an assistant ``tool_calls`` list; arguments objects become JSON text."""
    if not isinstance(raw_calls, list):
        raise BadRequestError(INVALID_MESSAGE_MESSAGE)
    calls: List[dict[str, Any]] = []
    for raw_call in raw_calls:
        if not isinstance(raw_call, dict) or not _non_empty_str(raw_call.get("id")):
            raise BadRequestError(INVALID_MESSAGE_MESSAGE)
        function = raw_call.get("function")
        if not isinstance(function, dict) or not _non_empty_str(function.get("name")):
            raise BadRequestError(INVALID_MESSAGE_MESSAGE)
        arguments = function.get("arguments")
        if not isinstance(arguments, str):
            arguments = _dump_tool_payload(arguments if arguments is not None else {})
        calls.append(
            {
                "id": raw_call["id"],
                "type": "function",
                "function": {"name": function["name"], "arguments": arguments},
            }
        )
    return calls


@timed
def _normalize_message(message: Any) -> ConversationMessage:
    if not isinstance(message, dict):
        raise BadRequestError(INVALID_MESSAGE_MESSAGE)
    role = message.get("role")
    if not isinstance(role, str) or role not in _ALLOWED_ROLES:
        raise BadRequestError(INVALID_MESSAGE_MESSAGE)

    content = message.get("content")
    normalized: dict[str, Any] = {"role": role}

    if role == "tool":
        tool_call_id = _first_present(message, "tool_call_id", "toolCallId")
        if not _non_empty_str(tool_call_id):
            raise BadRequestError(INVALID_MESSAGE_MESSAGE)
        normalized["tool_call_id"] = tool_call_id
        if content is None:
            content = ""
        elif not isinstance(content, str):
            content = _dump_tool_payload(content)
        normalized["content"] = content
    else:
        raw_calls = _first_present(message, "tool_calls", "toolCalls") if role == "assistant" else None
        tool_calls = _normalize_tool_calls(raw_calls) if raw_calls else []
        if isinstance(content, str) and content:
            normalized["content"] = content
        elif content is not None and not isinstance(content, str):
            raise BadRequestError(INVALID_MESSAGE_MESSAGE)
        elif not tool_calls:
            raise BadRequestError(INVALID_MESSAGE_MESSAGE)
        if tool_calls:
            normalized["tool_calls"] = tool_calls

    try:
        return ConversationMessage.model_validate(normalized)
    except ValidationError as exc:
        raise BadRequestError(INVALID_MESSAGE_MESSAGE) from exc


@timed
def validate_chat_body(body: Any, *, max_messages: int = 200) -> List[ConversationMessage]:
    """Validate ``{"messages": [...]}`` and return the canonical history.

    Raises:
        BadRequestError: body has no non-empty ``messages`` list, the history
            is longer than ``max_messages``, or any message is malformed.
    """
    messages = body.get("messages") if isinstance(body, dict) else None
    if not isinstance(messages, list) or not messages:
        raise BadRequestError(INVALID_BODY_MESSAGE)
    if len(messages) > max_messages:
        raise BadRequestError(f"Too many messages: at most {max_messages} are allowed.")
    history = [_normalize_message(message) for message in messages]
    LOGGER.debug("Validated chat history with %d message(s)", len(history))
    return history
