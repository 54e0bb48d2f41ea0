"""Shared HTTP plumbing for the provider adapters."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ...core.errors import UpstreamMalformedError, UpstreamUnavailableError, _build_provider_api_error
from ...core.timing_logger import timed, timing_mark
from ...requests.debug import _debug_print_error_response, _debug_print_request, _debug_print_response
from ..models import CompletionReply, CompletionRequest
from ..normalizer import ensure_usable

LOGGER = logging.getLogger(__name__)


class ProviderAdapter:
    """Base class: POST a JSON payload to ``{base_url}{path}`` and normalize the reply.

    Subclasses set ``path`` and implement ``build_payload`` / ``normalize``.
    """

    path = ""
    endpoint = ""

    @timed
    def __init__(self, logger: Optional[logging.Logger] = None, *, max_attempts: int = 1):
        self.logger = logger or LOGGER
        self.max_attempts = max(1, int(max_attempts))

    def build_payload(self, request: CompletionRequest) -> Dict[str, Any]:
        raise NotImplementedError

    def normalize(self, payload: Dict[str, Any]) -> CompletionReply:
        raise NotImplementedError

    @timed
    async def complete(
        self,
        session: aiohttp.ClientSession,
        request: CompletionRequest,
        *,
        api_key: str,
        base_url: str,
    ) -> CompletionReply:
        """Send one completion request and return the normalized reply.

        Raises:
            ProviderAPIError: provider answered with HTTP >= 400.
            UpstreamUnavailableError: transport failure or timeout.
            UpstreamMalformedError: body is not a usable JSON object.
        """
        payload = self.build_payload(request)
        data = await self._post_json(session, payload, api_key=api_key, base_url=base_url)
        return ensure_usable(self.normalize(data))

    async def _post_json(
        self,
        session: aiohttp.ClientSession,
        payload: Dict[str, Any],
        *,
        api_key: str,
        base_url: str,
    ) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        _debug_print_request(headers, payload, logger=self.logger)
        url = base_url.rstrip("/") + self.path

        retryer = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError)),
            reraise=True,
        )

        body = ""
        try:
            async for attempt in retryer:
                with attempt:
                    timing_mark(f"{self.endpoint}_http_request_start")
                    async with session.post(url, json=payload, headers=headers) as resp:
                        timing_mark(f"{self.endpoint}_http_response")
                        if resp.status >= 400:
                            error_body = await _debug_print_error_response(resp, logger=self.logger)
                            raise _build_provider_api_error(resp.status, resp.reason or "HTTP error", error_body)
                        body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            self.logger.warning("Provider request to %s failed: %s", url, type(exc).__name__)
            raise UpstreamUnavailableError(f"Transport error calling {url}: {exc!r}") from exc

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise UpstreamMalformedError(f"Invalid JSON response from {self.path}") from exc
        if not isinstance(data, dict):
            raise UpstreamMalformedError(f"Unexpected {type(data).__name__} response from {self.path}")
        _debug_print_response(data, logger=self.logger)
        return data
