"""Chat Completions convention: POST /chat/completions."""

from __future__ import annotations

from typing import Any, Dict

from ..models import CompletionReply, CompletionRequest
from ..normalizer import normalize_chat_completion
from ..transforms import build_chat_completions_payload
from .base import ProviderAdapter


class ChatCompletionsAdapter(ProviderAdapter):
    """Adapter for the /chat/completions endpoint."""

    path = "/chat/completions"
    endpoint = "chat_completions"

    def build_payload(self, request: CompletionRequest) -> Dict[str, Any]:
        return build_chat_completions_payload(request)

    def normalize(self, payload: Dict[str, Any]) -> CompletionReply:
        return normalize_chat_completion(payload)
