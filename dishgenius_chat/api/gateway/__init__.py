"""Provider gateway adapters.

- ChatCompletionsAdapter: /chat/completions
- ResponsesAdapter: /responses
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from .base import ProviderAdapter
from .chat_completions_adapter import ChatCompletionsAdapter
from .responses_adapter import ResponsesAdapter

_ADAPTERS: dict[str, type[ProviderAdapter]] = {
    "chat_completions": ChatCompletionsAdapter,
    "responses": ResponsesAdapter,
}


def select_adapter(
    endpoint: Literal["chat_completions", "responses"],
    logger: Optional[logging.Logger] = None,
    *,
    max_attempts: int = 1,
) -> ProviderAdapter:
    """Return an adapter instance for the configured provider convention."""
    try:
        adapter_cls = _ADAPTERS[endpoint]
    except KeyError:
        raise ValueError(f"Unknown LLM endpoint: {endpoint!r}") from None
    return adapter_cls(logger, max_attempts=max_attempts)


__all__ = [
    "ProviderAdapter",
    "ChatCompletionsAdapter",
    "ResponsesAdapter",
    "select_adapter",
]
