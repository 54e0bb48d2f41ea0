"""Provider reply normalization.

Both conventions are reduced to a :class:`CompletionReply` (text plus
requested tool calls). The client only ever sees ``{"role": "assistant",
"content": <text>}``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from ..core.errors import UpstreamMalformedError
from ..core.timing_logger import timed
from ..core.utils import _extract_text_parts
from ..tools.models import ToolCallRequest
from .models import CompletionReply

LOGGER = logging.getLogger(__name__)


def _coerce_arguments(args: Any) -> str:
    if isinstance(args, str):
        return args
    if args is None:
        return "{}"
    return json.dumps(args, ensure_ascii=False)


def _tool_call_from_item(raw_call: Any, index: int, *, prefer_call_id: bool) -> Optional[ToolCallRequest]:
    """Build a ToolCallRequest from either convention's call shape.

    The name lives at ``function.name`` (chat completions) or at the top
    level (responses); the id at ``id`` or ``call_id``.
    """
    if not isinstance(raw_call, dict):
        return None
    function = raw_call.get("function") if isinstance(raw_call.get("function"), dict) else {}
    name = function.get("name") or raw_call.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    args = function.get("arguments") if "arguments" in function else raw_call.get("arguments")

    id_keys = ("call_id", "id") if prefer_call_id else ("id", "call_id")
    call_id = next(
        (raw_call[key].strip() for key in id_keys if isinstance(raw_call.get(key), str) and raw_call[key].strip()),
        f"toolcall-{index}",
    )
    return ToolCallRequest(id=call_id, name=name.strip(), arguments=_coerce_arguments(args))


@timed
def normalize_chat_completion(payload: Dict[str, Any]) -> CompletionReply:
    """Convention A: ``choices[0].message`` with ``content`` and ``tool_calls``."""
    choices = payload.get("choices")
    message: Dict[str, Any] = {}
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        candidate = choices[0].get("message")
        if isinstance(candidate, dict):
            message = candidate

    tool_calls: List[ToolCallRequest] = []
    raw_calls = message.get("tool_calls")
    if isinstance(raw_calls, list):
        for index, raw_call in enumerate(raw_calls):
            call = _tool_call_from_item(raw_call, index, prefer_call_id=False)
            if call is not None:
                tool_calls.append(call)

    text = _extract_text_parts(message.get("content"))
    return CompletionReply(content=text or None, tool_calls=tool_calls, raw=payload)


@timed
def normalize_responses_output(payload: Dict[str, Any]) -> CompletionReply:
    """Convention B: ``output`` items plus the ``output_text`` convenience field."""
    output_items = payload.get("output")
    tool_calls: List[ToolCallRequest] = []
    text_parts: List[str] = []
    if isinstance(output_items, list):
        for index, item in enumerate(output_items):
            if not isinstance(item, dict):
                continue
            itype = item.get("type")
            if itype == "function_call":
                call = _tool_call_from_item(item, index, prefer_call_id=True)
                if call is not None:
                    tool_calls.append(call)
            elif itype == "message" and item.get("role", "assistant") == "assistant":
                text_parts.append(_extract_text_parts(item.get("content")))

    output_text = payload.get("output_text")
    if isinstance(output_text, list):
        output_text = "".join(part for part in output_text if isinstance(part, str))
    text = output_text if isinstance(output_text, str) and output_text else "".join(text_parts)
    return CompletionReply(content=text or None, tool_calls=tool_calls, raw=payload)


@timed
def normalize_provider_reply(payload: Any) -> CompletionReply:
    """Detect the reply shape and normalize it.

    Raises:
        UpstreamMalformedError: when the payload matches neither convention.
    """
    if not isinstance(payload, dict):
        raise UpstreamMalformedError(f"Provider reply is not a JSON object ({type(payload).__name__})")
    if "choices" in payload:
        return normalize_chat_completion(payload)
    if "output" in payload or "output_text" in payload:
        return normalize_responses_output(payload)
    raise UpstreamMalformedError("Provider reply has neither 'choices' nor 'output'")


def ensure_usable(reply: CompletionReply) -> CompletionReply:
    """Raise when a reply carries neither text nor a tool call."""
    if not reply.has_text and not reply.requests_tools:
        raise UpstreamMalformedError("Provider reply has no content and no tool calls")
    return reply


def to_client_message(reply: CompletionReply) -> Dict[str, str]:
    """Return the single client-facing assistant message."""
    if not reply.has_text:
        raise UpstreamMalformedError("Provider reply has no text content")
    return {"role": "assistant", "content": reply.content or ""}
