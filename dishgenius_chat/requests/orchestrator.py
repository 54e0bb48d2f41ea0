"""Chat turn orchestration.

One turn runs at most two completion rounds:

    validate -> first completion -> (done | tool dispatch -> second completion) -> respond

The second round never dispatches tools again, even when the model asks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import aiohttp

from ..api.models import CompletionReply, CompletionRequest, ConversationMessage
from ..api.normalizer import to_client_message
from ..core.errors import (
    FINAL_RESPONSE_MESSAGE,
    UpstreamMalformedError,
    UpstreamUnavailableError,
)
from ..core.timing_logger import timed, timing_scope
from ..tools.schema import to_provider_schema

if TYPE_CHECKING:
    from ..api.gateway import ProviderAdapter
    from ..core.config import Valves
    from ..tools.executor import ToolExecutor
    from ..tools.registry import ToolRegistry


class ChatTurnOrchestrator:
    """Runs one chat turn against the configured provider adapter."""

    @timed
    def __init__(
        self,
        *,
        valves: "Valves",
        registry: "ToolRegistry",
        executor: "ToolExecutor",
        adapter: "ProviderAdapter",
        logger: logging.Logger,
    ) -> None:
        self.valves = valves
        self._registry = registry
        self._executor = executor
        self._adapter = adapter
        self.logger = logger

    def provider_tools(self) -> List[Dict[str, Any]]:
        """Provider-safe schemas for the tools exposed by this deployment."""
        return to_provider_schema(self._registry.select(self.valves.exposed_tool_names()))

    def _build_request(self, history: Sequence[ConversationMessage], tools: List[Dict[str, Any]]) -> CompletionRequest:
        return CompletionRequest(
            model=self.valves.MODEL,
            messages=list(history),
            tools=tools,
            tool_choice=self.valves.TOOL_CHOICE if tools else None,
        )

    @timed
    async def _dispatch_tools(self, reply: CompletionReply) -> List[ConversationMessage]:
        """Run the reply's tool calls; return the assistant + tool messages to append."""
        self.logger.info(
            "Tool calls requested: %s",
            ", ".join(f"{call.name}({call.id})" for call in reply.tool_calls),
        )
        results = await self._executor.execute_all(reply.tool_calls)
        appended = [ConversationMessage.assistant_tool_request(reply.content, reply.tool_calls)]
        appended.extend(ConversationMessage.from_tool_result(result) for result in results)
        return appended

    @timed
    async def run_turn(
        self,
        session: aiohttp.ClientSession,
        messages: Sequence[ConversationMessage],
        *,
        api_key: str,
        base_url: Optional[str] = None,
    ) -> Dict[str, str]:
        """Return the single assistant message for this turn.

        Raises:
            UpstreamUnavailableError: first completion could not be obtained.
            UpstreamMalformedError: a reply has no usable content, or the
                second completion failed.
        """
        base_url = base_url or self.valves.BASE_URL
        tools = self.provider_tools()
        history: List[ConversationMessage] = list(messages)

        with timing_scope("first_completion"):
            first = await self._adapter.complete(
                session, self._build_request(history, tools), api_key=api_key, base_url=base_url
            )
        if not first.requests_tools:
            self.logger.debug("First completion answered without tool calls")
            return to_client_message(first)

        history.extend(await self._dispatch_tools(first))

        try:
            with timing_scope("second_completion"):
                second = await self._adapter.complete(
                    session, self._build_request(history, tools), api_key=api_key, base_url=base_url
                )
        except UpstreamUnavailableError as exc:
            raise UpstreamMalformedError(
                f"Second completion failed: {exc}", public_message=FINAL_RESPONSE_MESSAGE
            ) from exc

        if second.requests_tools:
            self.logger.warning(
                "Second completion requested %d more tool call(s); ignoring them",
                len(second.tool_calls),
            )
        return to_client_message(second)
