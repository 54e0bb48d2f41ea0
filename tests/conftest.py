from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from dishgenius_chat.core.config import Valves
from dishgenius_chat.core.logging_system import SessionLogger
from dishgenius_chat.tools.catalog import build_default_registry
from dishgenius_chat.tools.registry import ToolRegistry

BASE_URL = "https://llm.test/v1"
CHAT_URL = f"{BASE_URL}/chat/completions"
RESPONSES_URL = f"{BASE_URL}/responses"


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep secrets from the developer's shell out of every test."""
    monkeypatch.delenv("CHAT_SECRET_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    yield
    with SessionLogger._state_lock:
        SessionLogger.logs.clear()
        SessionLogger._last_seen.clear()


@pytest.fixture
def valves() -> Valves:
    return Valves(API_KEY="sk-test", BASE_URL=BASE_URL, MODEL="test-model")


@pytest.fixture
def registry() -> ToolRegistry:
    return build_default_registry()


def chat_completion(
    content: Optional[str] = None,
    tool_calls: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build a chat-completions style reply body."""
    message: Dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
    }


def chat_tool_call(call_id: str, name: str, arguments: str) -> Dict[str, Any]:
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


def sent_payloads(mock_http, url: str) -> List[Dict[str, Any]]:
    """Return the JSON bodies aioresponses captured for POSTs to ``url``."""
    bodies: List[Dict[str, Any]] = []
    for (method, request_url), calls in mock_http.requests.items():
        if method == "POST" and str(request_url) == url:
            bodies.extend(call.kwargs.get("json") for call in calls)
    return bodies
