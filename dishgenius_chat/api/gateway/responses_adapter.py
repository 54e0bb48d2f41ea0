"""Responses convention: POST /responses."""

from __future__ import annotations

from typing import Any, Dict

from ..models import CompletionReply, CompletionRequest
from ..normalizer import normalize_responses_output
from ..transforms import build_responses_payload
from .base import ProviderAdapter


class ResponsesAdapter(ProviderAdapter):
    """Adapter for the /responses endpoint.

    History goes out as ``input`` items; the reply's ``output`` list and
    ``output_text`` field are folded back into a CompletionReply.
    """

    path = "/responses"
    endpoint = "responses"

    def build_payload(self, request: CompletionRequest) -> Dict[str, Any]:
        return build_responses_payload(request)

    def normalize(self, payload: Dict[str, Any]) -> CompletionReply:
        return normalize_responses_output(payload)
