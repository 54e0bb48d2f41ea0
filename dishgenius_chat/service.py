"""ChatService: the single entry point for chat turns.

Owns the configuration, the tool registry, the shared aiohttp session and
the lazily constructed subsystems (executor, provider adapter, orchestrator).
Each turn runs under its own request id so log records and timing events can
be traced back to it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import aiohttp

from .core.config import Valves, resolve_api_key
from .core.errors import GENERIC_ERROR_MESSAGE, ChatTurnError, ConfigurationError
from .core.logging_system import SessionLogger, _resolve_level
from .core.timing_logger import (
    clear_timing_context,
    clear_timing_events,
    configure_timing_file,
    set_timing_context,
    timed,
)
from .requests.sanitizer import validate_chat_body
from .tools.catalog import build_default_registry
from .tools.registry import ToolRegistry

if TYPE_CHECKING:
    from .api.gateway import ProviderAdapter
    from .requests.orchestrator import ChatTurnOrchestrator
    from .tools.executor import ToolExecutor

SessionLogSink = Callable[[str, List[Dict[str, Any]]], None]


@dataclass(slots=True)
class ChatTurnOutcome:
    """HTTP-ready result of one chat turn."""

    status: int
    payload: Dict[str, Any]
    request_id: str

    @property
    def ok(self) -> bool:
        return self.status < 400


class ChatService:
    """Holds long-lived state shared by every chat turn."""

    @timed
    def __init__(
        self,
        valves: Optional[Valves] = None,
        registry: Optional[ToolRegistry] = None,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        log_sink: Optional[SessionLogSink] = None,
    ) -> None:
        """``log_sink`` receives ``(request_id, events)`` once per turn, before
        the request's log buffer is released."""
        self.valves = valves or Valves()
        self._log_sink = log_sink
        self.logger = SessionLogger.get_logger("dishgenius_chat")
        SessionLogger.set_max_lines(self.valves.SESSION_LOG_MAX_LINES)
        self.registry = registry if registry is not None else build_default_registry()
        self._session = session
        self._owns_session = session is None
        self._session_lock: Optional[asyncio.Lock] = None
        self._tool_executor: Optional["ToolExecutor"] = None
        self._provider_adapter: Optional["ProviderAdapter"] = None
        self._chat_orchestrator: Optional["ChatTurnOrchestrator"] = None
        if self.valves.ENABLE_TIMING_LOG and not configure_timing_file(self.valves.TIMING_LOG_FILE):
            self.logger.warning("Timing log file %s could not be opened", self.valves.TIMING_LOG_FILE)

    # ------------------------------------------------------------------
    # Lazy subsystems
    # ------------------------------------------------------------------

    @timed
    def _ensure_tool_executor(self) -> "ToolExecutor":
        """Lazy initialization of ToolExecutor."""
        if self._tool_executor is None:
            from .tools.executor import ToolExecutor

            self._tool_executor = ToolExecutor(
                self.registry,
                timeout=self.valves.TOOL_TIMEOUT_SECONDS,
                logger=self.logger,
            )
        return self._tool_executor

    @timed
    def _ensure_provider_adapter(self) -> "ProviderAdapter":
        """Lazy initialization of the adapter for DEFAULT_LLM_ENDPOINT."""
        if self._provider_adapter is None:
            from .api.gateway import select_adapter

            self._provider_adapter = select_adapter(
                self.valves.DEFAULT_LLM_ENDPOINT,
                self.logger,
                max_attempts=self.valves.PROVIDER_MAX_ATTEMPTS,
            )
        return self._provider_adapter

    @timed
    def _ensure_chat_orchestrator(self) -> "ChatTurnOrchestrator":
        """Lazy initialization of ChatTurnOrchestrator."""
        if self._chat_orchestrator is None:
            from .requests.orchestrator import ChatTurnOrchestrator

            self._chat_orchestrator = ChatTurnOrchestrator(
                valves=self.valves,
                registry=self.registry,
                executor=self._ensure_tool_executor(),
                adapter=self._ensure_provider_adapter(),
                logger=self.logger,
            )
        return self._chat_orchestrator

    # ------------------------------------------------------------------
    # HTTP session
    # ------------------------------------------------------------------

    def _create_http_session(self) -> aiohttp.ClientSession:
        """Return a ClientSession with the configured connect/total timeouts."""
        connector = aiohttp.TCPConnector(
            limit=50,
            limit_per_host=10,
            keepalive_timeout=75,
            ttl_dns_cache=300,
        )
        timeout = aiohttp.ClientTimeout(
            total=float(self.valves.HTTP_TOTAL_TIMEOUT_SECONDS),
            connect=float(self.valves.HTTP_CONNECT_TIMEOUT_SECONDS),
        )
        self.logger.debug(
            "HTTP timeouts: connect=%ss total=%ss",
            self.valves.HTTP_CONNECT_TIMEOUT_SECONDS,
            self.valves.HTTP_TOTAL_TIMEOUT_SECONDS,
        )
        return aiohttp.ClientSession(connector=connector, timeout=timeout, json_serialize=json.dumps)

    async def _get_http_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session
        if self._session_lock is None:
            self._session_lock = asyncio.Lock()
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = self._create_http_session()
                self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this service created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def exposed_tool_schemas(self) -> List[Dict[str, Any]]:
        return self._ensure_chat_orchestrator().provider_tools()

    @timed
    async def handle_chat(self, body: Any) -> ChatTurnOutcome:
        """Run one chat turn and return the HTTP status plus JSON payload.

        Never raises for turn-level failures: they are logged in full and
        reported with their client-safe message.
        """
        request_id = uuid.uuid4().hex
        rid_token = SessionLogger.request_id.set(request_id)
        level_token = SessionLogger.log_level.set(_resolve_level(self.valves.LOG_LEVEL))
        set_timing_context(request_id, self.valves.ENABLE_TIMING_LOG)
        try:
            payload = await self._run_turn(body)
            return ChatTurnOutcome(status=200, payload=payload, request_id=request_id)
        except ChatTurnError as exc:
            if exc.status < 500:
                self.logger.warning("Chat turn rejected (%s): %s", exc.kind, exc)
            else:
                self.logger.error("Chat turn failed (%s): %s", exc.kind, exc, exc_info=exc.__cause__ is not None)
            return ChatTurnOutcome(status=exc.status, payload=exc.to_payload(), request_id=request_id)
        except Exception:
            self.logger.exception("Unexpected error while handling chat turn")
            return ChatTurnOutcome(status=500, payload={"error": GENERIC_ERROR_MESSAGE}, request_id=request_id)
        finally:
            clear_timing_context()
            clear_timing_events(request_id)
            SessionLogger.log_level.reset(level_token)
            SessionLogger.request_id.reset(rid_token)
            self._flush_session_log(request_id)
            SessionLogger.cleanup()

    def _flush_session_log(self, request_id: str) -> None:
        """Hand the turn's buffered events to the sink, then drop the buffer."""
        if self._log_sink is not None:
            try:
                self._log_sink(request_id, SessionLogger.events(request_id))
            except Exception:
                self.logger.debug("Failed to flush session log (request_id=%s)", request_id, exc_info=True)
        SessionLogger.discard(request_id)

    async def _run_turn(self, body: Any) -> Dict[str, str]:
        api_key, key_error = resolve_api_key(self.valves)
        if key_error or not api_key:
            raise ConfigurationError(key_error or "Server configuration error: Missing API key.")
        messages = validate_chat_body(body, max_messages=self.valves.MAX_MESSAGES)
        self.logger.info("Chat turn started with %d message(s)", len(messages))
        session = await self._get_http_session()
        reply = await self._ensure_chat_orchestrator().run_turn(session, messages, api_key=api_key)
        self.logger.info("Chat turn completed")
        return reply
