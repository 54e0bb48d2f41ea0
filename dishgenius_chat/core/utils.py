"""Small shared helpers: JSON handling, redaction, string normalisation."""

from __future__ import annotations

import json
from typing import Any, Optional

from .timing_logger import timed


# -----------------------------------------------------------------------------
# JSON Helpers
# -----------------------------------------------------------------------------

def _pretty_json(value: Any) -> str:
    """Return a human-readable JSON string or an empty string when not applicable."""
    if value is None:
        return ""
    if isinstance(value, (str, bytes)):
        text = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value
        return text.strip()
    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def _safe_json_loads(payload: Optional[str]) -> Any:
    """Return parsed JSON or None without raising."""
    if not payload:
        return None
    try:
        return json.loads(payload)
    except (TypeError, ValueError):
        return None


@timed
def _dump_tool_payload(value: Any) -> str:
    """Serialise a tool result for a ``role: tool`` message.

    Non-JSON values (sets, dataclasses, ...) fall back to ``str`` so a
    successful tool call is never turned into a failure by serialisation.
    """
    return json.dumps(value, ensure_ascii=False, default=str)


# -----------------------------------------------------------------------------
# Redaction
# -----------------------------------------------------------------------------

def _redact_payload_blobs(value: Any, *, max_chars: int = 256) -> Any:
    """Return a copy of ``value`` with very long strings truncated for logging."""
    safe_max = max(64, min(int(max_chars), 8192))

    def _walk(obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: _walk(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [_walk(v) for v in obj]
        if isinstance(obj, str) and len(obj) > safe_max:
            return f"{obj[:safe_max]}...[{len(obj)} chars]"
        return obj

    return _walk(value)


# -----------------------------------------------------------------------------
# String Normalisation
# -----------------------------------------------------------------------------

def _normalize_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _normalize_string_list(value: Any) -> list[str]:
    """Split a comma-separated string (or list) into trimmed, non-empty items."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = list(value)
    else:
        return []
    out: list[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        text = item.strip()
        if text and text not in out:
            out.append(text)
    return out


def _extract_text_parts(content: Any) -> str:
    """Collapse string or content-part-list message content into one string."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
                continue
            if isinstance(block, dict) and block.get("type") in {"text", "output_text"}:
                text_val = block.get("text")
                if isinstance(text_val, str):
                    parts.append(text_val)
        return "".join(parts)
    return ""
