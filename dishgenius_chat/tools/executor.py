"""Concurrent tool-call execution.

Every call in a batch is prepared and run independently; failures are
turned into ``ToolResult.error`` strings so one bad call never cancels,
delays or corrupts its siblings. Results come back in request order.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Optional, Sequence

from ..core.errors import ToolArgumentError
from ..core.timing_logger import timed, timing_mark
from .models import ToolCallRequest, ToolDefinition, ToolResult
from .registry import ToolRegistry
from .schema import ObjectSchema

LOGGER = logging.getLogger(__name__)

DEFAULT_TOOL_TIMEOUT_SECONDS = 15.0


class _ToolCallFailure(Exception):
    """Preparation failure carried through gather() as a result value."""


class ToolExecutor:
    """Resolves, validates and runs model-requested tool calls."""

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        timeout: Optional[float] = DEFAULT_TOOL_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._registry = registry
        self._timeout = timeout
        self.logger = logger or LOGGER

    @staticmethod
    def _parse_tool_arguments(raw_args: Any) -> dict[str, Any]:
        """Parse the raw argument text; blank input means no arguments."""
        if isinstance(raw_args, dict):
            return raw_args
        if raw_args is None or (isinstance(raw_args, str) and not raw_args.strip()):
            return {}
        if not isinstance(raw_args, str):
            raise ToolArgumentError(f"expected a JSON string, got {type(raw_args).__name__}")
        try:
            parsed = json.loads(raw_args)
        except json.JSONDecodeError as exc:
            raise ToolArgumentError(str(exc)) from exc
        if not isinstance(parsed, dict):
            raise ToolArgumentError("arguments must be a JSON object")
        return parsed

    def _prepare(self, call: ToolCallRequest) -> Awaitable[Any]:
        """Return the awaitable for one call, or a ready failure."""
        try:
            args = self._parse_tool_arguments(call.arguments)
        except ToolArgumentError as exc:
            return self._failed(f"Invalid tool arguments: {exc}")

        definition = self._registry.lookup(call.name)
        if definition is None:
            return self._failed(f"Tool not found: {call.name}")
        if definition.execute is None:
            return self._failed(f"No execute function found for tool: {call.name}")

        if isinstance(definition.parameters, ObjectSchema):
            try:
                args = definition.parameters.validate(args)
            except ToolArgumentError as exc:
                return self._failed(f"Invalid tool arguments: {exc}")

        return self._run(definition, args)

    @staticmethod
    async def _failed(message: str) -> Any:
        return _ToolCallFailure(message)

    @staticmethod
    async def _invoke(definition: ToolDefinition, args: dict[str, Any]) -> Any:
        fn = definition.execute
        assert fn is not None
        if inspect.iscoroutinefunction(fn):
            return await fn(args)
        result = await asyncio.to_thread(fn, args)
        if inspect.isawaitable(result):
            return await result
        return result

    async def _run(self, definition: ToolDefinition, args: dict[str, Any]) -> Any:
        coro = self._invoke(definition, args)
        if self._timeout:
            try:
                return await asyncio.wait_for(coro, timeout=self._timeout)
            except asyncio.TimeoutError:
                return _ToolCallFailure(
                    f"Tool timed out after {self._timeout:g}s: {definition.name}"
                )
        return await coro

    @timed
    async def execute_all(self, calls: Sequence[ToolCallRequest]) -> list[ToolResult]:
        """Run ``calls`` concurrently and return one result per call, in order."""
        if not calls:
            return []
        for call in calls:
            timing_mark(f"tool_prep:{call.name or 'unknown'}")
        outcomes = await asyncio.gather(
            *(self._prepare(call) for call in calls),
            return_exceptions=True,
        )

        results: list[ToolResult] = []
        for call, outcome in zip(calls, outcomes):
            timing_mark(f"tool_result:{call.name or 'unknown'}")
            results.append(self._build_tool_result(call, outcome))
        return results

    def _build_tool_result(self, call: ToolCallRequest, outcome: Any) -> ToolResult:
        if isinstance(outcome, _ToolCallFailure):
            message = str(outcome)
        elif isinstance(outcome, asyncio.CancelledError):
            message = f"Tool cancelled: {call.name}"
        elif isinstance(outcome, BaseException):
            detail = str(outcome) or type(outcome).__name__
            message = f"Tool error: {detail}"
            self.logger.warning(
                "Tool %s raised %s", call.name, type(outcome).__name__, exc_info=outcome
            )
        elif not outcome:
            message = f"Tool returned no result: {call.name}"
        else:
            self.logger.debug("Tool %s completed (call_id=%s)", call.name, call.id)
            return ToolResult(id=call.id, result=outcome, name=call.name)

        self.logger.info("Tool %s failed (call_id=%s): %s", call.name, call.id, message)
        return ToolResult(id=call.id, result=None, error=message, name=call.name)
