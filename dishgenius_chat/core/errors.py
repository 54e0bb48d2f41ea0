"""Error taxonomy for chat turns.

Turn-level failures derive from :class:`ChatTurnError` and carry the HTTP
status plus a client-safe ``public_message``; the exception text itself may
hold provider detail and is only logged. Tool-level failures never leave the
executor, they become ``ToolResult.error`` strings.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .utils import _normalize_optional_str, _pretty_json, _safe_json_loads

LOGGER = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An error occurred while processing your request."
UNREACHABLE_MESSAGE = "Could not reach the completion service."
MALFORMED_MESSAGE = "Failed to get response content from the completion service."
FINAL_RESPONSE_MESSAGE = "Failed to get final response from the completion service."
INVALID_BODY_MESSAGE = "Invalid request body: messages array is required."
INVALID_MESSAGE_MESSAGE = "Invalid message format."


class ChatTurnError(RuntimeError):
    """Base class for failures that terminate a chat turn."""

    kind = "Internal"
    status = 500
    default_public_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None, *, public_message: Optional[str] = None) -> None:
        self.public_message = public_message or self.default_public_message
        super().__init__(message or self.public_message)

    def to_payload(self) -> dict[str, str]:
        return {"error": self.public_message}


class BadRequestError(ChatTurnError):
    """Inbound conversation failed validation. The message is shown to the client."""

    kind = "BadRequest"
    status = 400
    default_public_message = INVALID_BODY_MESSAGE

    def __init__(self, message: str = INVALID_BODY_MESSAGE) -> None:
        super().__init__(message, public_message=message)


class ConfigurationError(ChatTurnError):
    """Provider credential missing or unusable."""

    kind = "Unauthorized"
    status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message, public_message=message)


class UpstreamUnavailableError(ChatTurnError):
    """Transport failure reaching the completion service."""

    kind = "UpstreamUnavailable"
    status = 503
    default_public_message = UNREACHABLE_MESSAGE


class ProviderAPIError(UpstreamUnavailableError):
    """The completion service replied with an HTTP error status."""

    status = 502
    default_public_message = GENERIC_ERROR_MESSAGE

    def __init__(
        self,
        *,
        status: int,
        reason: str,
        provider_message: Optional[str] = None,
        provider_code: Optional[Any] = None,
        provider_type: Optional[str] = None,
        raw_body: Optional[str] = None,
    ) -> None:
        self.upstream_status = status
        self.reason = reason
        self.provider_message = (provider_message or "").strip() or None
        self.provider_code = provider_code
        self.provider_type = (provider_type or "").strip() or None
        self.raw_body = raw_body or ""
        summary = self.provider_message or f"Completion request failed ({status} {reason})"
        super().__init__(summary)


class UpstreamMalformedError(ChatTurnError):
    """The provider replied but the reply cannot be normalized."""

    kind = "UpstreamMalformed"
    status = 502
    default_public_message = MALFORMED_MESSAGE


class ToolArgumentError(ValueError):
    """Parsed tool arguments do not satisfy the tool's parameter schema."""


class DuplicateToolError(ValueError):
    """The startup tool catalog declares the same tool name twice."""


# -----------------------------------------------------------------------------
# Error Helper Functions
# -----------------------------------------------------------------------------

def _extract_provider_error_details(body_text: Optional[str]) -> dict[str, Any]:
    """Normalize provider error payloads (``{"error": {...}}``) into fields."""
    parsed = _safe_json_loads(body_text) if body_text else None
    error_section = parsed.get("error") if isinstance(parsed, dict) else None
    if isinstance(error_section, str):
        return {"provider_message": error_section, "provider_code": None, "provider_type": None}
    if not isinstance(error_section, dict):
        error_section = {}
    return {
        "provider_message": _normalize_optional_str(error_section.get("message")),
        "provider_code": error_section.get("code"),
        "provider_type": _normalize_optional_str(error_section.get("type")),
    }


def _build_provider_api_error(status: int, reason: str, body_text: Optional[str]) -> ProviderAPIError:
    """Create a structured error for provider HTTP >= 400 replies."""
    details = _extract_provider_error_details(body_text)
    error = ProviderAPIError(
        status=status,
        reason=reason,
        provider_message=details["provider_message"],
        provider_code=details["provider_code"],
        provider_type=details["provider_type"],
        raw_body=body_text,
    )
    LOGGER.debug("Provider error body: %s", _pretty_json(_safe_json_loads(body_text) or body_text))
    return error
