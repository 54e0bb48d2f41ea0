"""Debug utilities for provider request/response logging.

Callers pass the per-request logger (SessionLogger-backed) so records land
in the request's in-memory buffer. Nothing is logged unless the request runs
at DEBUG level.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..core.logging_system import SessionLogger
from ..core.timing_logger import timed
from ..core.utils import _redact_payload_blobs


def _debug_enabled(logger: logging.Logger) -> bool:
    """True only when both the logger and the current request's level allow DEBUG."""
    return logger.isEnabledFor(logging.DEBUG) and SessionLogger.log_level.get() <= logging.DEBUG


def _redact_headers(headers: Dict[str, str]) -> Dict[str, str]:
    redacted = dict(headers or {})
    if "Authorization" in redacted:
        token = redacted["Authorization"]
        redacted["Authorization"] = f"{token[:10]}..." if len(token) > 10 else "***"
    return redacted


@timed
def _debug_print_request(
    headers: Dict[str, str],
    payload: Optional[Dict[str, Any]],
    *,
    logger: logging.Logger,
) -> None:
    """Log sanitized request metadata when DEBUG logging is enabled."""
    if not _debug_enabled(logger):
        return
    logger.debug("Provider request headers: %s", json.dumps(_redact_headers(headers), indent=2))
    if payload is not None:
        logger.debug(
            "Provider request payload: %s",
            json.dumps(_redact_payload_blobs(payload), indent=2, ensure_ascii=False, default=str),
        )


@timed
def _debug_print_response(payload: Any, *, logger: logging.Logger) -> None:
    """Log sanitized success response payload when DEBUG logging is enabled."""
    if not _debug_enabled(logger):
        return
    redacted = _redact_payload_blobs(payload) if isinstance(payload, dict) else payload
    logger.debug("Provider response payload: %s", json.dumps(redacted, indent=2, ensure_ascii=False, default=str))


@timed
async def _debug_print_error_response(resp: aiohttp.ClientResponse, *, logger: logging.Logger) -> str:
    """Read (and at DEBUG, log) an error response body; return the body text."""
    try:
        text = await resp.text()
    except (aiohttp.ClientError, UnicodeDecodeError) as exc:
        text = f"<<failed to read body: {exc}>>"
    if _debug_enabled(logger):
        payload = {
            "status": resp.status,
            "reason": resp.reason,
            "url": str(resp.url),
            "body": text,
        }
        logger.debug("Provider error response: %s", json.dumps(payload, indent=2, ensure_ascii=False))
    return text
