"""Configuration management for the DishGenius chat backend.

This module contains the configuration schema and constants:
- Valves: Global configuration (API key, model, timeouts, exposed tools, ...)
- EncryptedStr: Secret value encryption wrapper
- resolve_api_key: turns the configured credential into a usable bearer token
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
from typing import Any, Literal, Optional, cast

from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler, model_validator
from pydantic_core import core_schema

from .timing_logger import timed
from .utils import _normalize_string_list

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

_DEFAULT_BASE_URL = "https://api.openai.com/v1"
_DEFAULT_MODEL = "gpt-4o-mini"
_DEFAULT_EXPOSED_TOOLS = "lookupRecipe,getNutritionInfo"
_SECRET_ENV_VAR = "CHAT_SECRET_KEY"

MISSING_API_KEY_MESSAGE = "Server configuration error: Missing API key."
UNDECRYPTABLE_API_KEY_MESSAGE = (
    "Server configuration error: API key is encrypted but cannot be decrypted. "
    f"Check {_SECRET_ENV_VAR}."
)

_ALLOWED_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EncryptedStr(str):
    """String wrapper that automatically encrypts/decrypts valve values."""

    _ENCRYPTION_PREFIX = "encrypted:"

    @classmethod
    def _get_encryption_key(cls) -> Optional[bytes]:
        """Return the Fernet key derived from ``CHAT_SECRET_KEY``.

        Returns:
            Optional[bytes]: URL-safe base64 Fernet key or ``None`` when unset.
        """
        secret = os.getenv(_SECRET_ENV_VAR)
        if not secret:
            return None
        hashed_key = hashlib.sha256(secret.encode()).digest()
        return base64.urlsafe_b64encode(hashed_key)

    @classmethod
    @timed
    def encrypt(cls, value: str) -> str:
        """Encrypt ``value`` when an application secret is configured.

        Values that are empty or already carry the ``encrypted:`` prefix are
        returned unchanged, as is everything when no secret is configured.
        """
        if not value or value.startswith(cls._ENCRYPTION_PREFIX):
            return value
        key = cls._get_encryption_key()
        if not key:
            return value
        encrypted = Fernet(key).encrypt(value.encode())
        return f"{cls._ENCRYPTION_PREFIX}{encrypted.decode()}"

    @classmethod
    @timed
    def decrypt(cls, value: str) -> str:
        """Decrypt values produced by :meth:`encrypt`.

        Returns the original value when decryption fails so callers can
        detect the failure by the surviving prefix.
        """
        if not value or not value.startswith(cls._ENCRYPTION_PREFIX):
            return value
        key = cls._get_encryption_key()
        if not key:
            return value
        try:
            encrypted_part = value[len(cls._ENCRYPTION_PREFIX) :]
            return Fernet(key).decrypt(encrypted_part.encode()).decode()
        except InvalidToken:
            LOGGER.warning("Failed to decrypt value: invalid token or key mismatch")
            return value
        except (ValueError, UnicodeDecodeError) as e:
            LOGGER.warning(f"Failed to decrypt value: {type(e).__name__}: {e}")
            return value

    @classmethod
    def __get_pydantic_core_schema__(
        cls, _source_type: Any, _handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Expose a union schema so plain strings auto-wrap as EncryptedStr."""
        return core_schema.union_schema(
            [
                core_schema.is_instance_schema(cls),
                core_schema.chain_schema(
                    [
                        core_schema.str_schema(),
                        core_schema.no_info_plain_validator_function(
                            lambda value: cls(cls.encrypt(value) if value else value)
                        ),
                    ]
                ),
            ],
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda instance: str(instance)
            ),
        )


def _default_api_key() -> EncryptedStr:
    """Return the API key env default as EncryptedStr."""
    return EncryptedStr((os.getenv("OPENAI_API_KEY") or "").strip())


def _resolve_log_level_default() -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
    """Normalize env-provided log level to the allowed literal set."""
    value = (os.getenv("GLOBAL_LOG_LEVEL") or "INFO").strip().upper()
    if value not in _ALLOWED_LOG_LEVELS:
        value = "INFO"
    return cast(Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], value)


# -----------------------------------------------------------------------------
# Valves
# -----------------------------------------------------------------------------

class Valves(BaseModel):
    """Global configuration shared across chat turns."""

    # Connection & Auth
    BASE_URL: str = Field(
        default=((os.getenv("OPENAI_API_BASE_URL") or "").strip() or _DEFAULT_BASE_URL),
        description="Completion service base URL. Override this if you are using a gateway or proxy.",
    )
    API_KEY: EncryptedStr = Field(
        default_factory=_default_api_key,
        description="Completion service API key. Defaults to the OPENAI_API_KEY environment variable.",
    )
    MODEL: str = Field(
        default=((os.getenv("CHAT_MODEL") or "").strip() or _DEFAULT_MODEL),
        description="Model id sent with every completion request.",
    )
    DEFAULT_LLM_ENDPOINT: Literal["chat_completions", "responses"] = Field(
        default="chat_completions",
        description=(
            "Which provider convention to use. "
            "`chat_completions` uses /chat/completions; `responses` uses /responses."
        ),
    )

    # Tools
    EXPOSED_TOOLS: str = Field(
        default=_DEFAULT_EXPOSED_TOOLS,
        description=(
            "Comma-separated tool names offered to the model on every turn. "
            "Leave empty to expose every registered tool."
        ),
    )
    TOOL_CHOICE: Literal["auto", "none", "required"] = Field(
        default="auto",
        description="Tool-choice policy sent with both completion rounds.",
    )
    TOOL_TIMEOUT_SECONDS: float = Field(
        default=15,
        gt=0,
        description="Seconds a single tool call may run before it is cancelled and reported as an error.",
    )

    # HTTP
    HTTP_CONNECT_TIMEOUT_SECONDS: int = Field(
        default=10,
        ge=1,
        description="Seconds to wait for the TCP/TLS connection to the completion service.",
    )
    HTTP_TOTAL_TIMEOUT_SECONDS: int = Field(
        default=60,
        ge=1,
        description="Overall timeout (seconds) for a single completion request.",
    )
    PROVIDER_MAX_ATTEMPTS: int = Field(
        default=1,
        ge=1,
        le=5,
        description=(
            "Attempts per completion step. Only transport failures are retried; "
            "HTTP error replies are never retried."
        ),
    )

    # Requests
    MAX_MESSAGES: int = Field(
        default=200,
        ge=1,
        description="Maximum number of messages accepted in one chat turn.",
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default_factory=_resolve_log_level_default,
        description="Select logging level. Recommend INFO or WARNING for production use.",
    )
    SESSION_LOG_MAX_LINES: int = Field(
        default=2000,
        ge=100,
        description="Maximum log records kept in memory per request.",
    )
    ENABLE_TIMING_LOG: bool = Field(
        default=False,
        description="When True, capture function entrance/exit timing data to TIMING_LOG_FILE.",
    )
    TIMING_LOG_FILE: str = Field(
        default="logs/timing.jsonl",
        description="File path for timing log output (JSONL). Parent directories are created.",
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_inherit(cls, values):
        """Treat the literal string 'inherit' (any case) as an unset value."""
        if not isinstance(values, dict):
            return values
        return {
            key: value
            for key, value in values.items()
            if not (isinstance(value, str) and value.strip().lower() == "inherit")
        }

    def exposed_tool_names(self) -> list[str]:
        return _normalize_string_list(self.EXPOSED_TOOLS)


@timed
def resolve_api_key(valves: Valves) -> tuple[Optional[str], Optional[str]]:
    """Return (api_key, error_message) where api_key is a usable bearer token.

    Guards against a key stored encrypted that cannot be decrypted (secret
    missing or changed), which would otherwise be sent upstream as
    ``Bearer encrypted:...``.
    """
    raw_value = str(getattr(valves, "API_KEY", "") or "").strip()
    decrypted = EncryptedStr.decrypt(raw_value)
    decrypted = decrypted.strip() if isinstance(decrypted, str) else ""

    if not decrypted:
        return None, MISSING_API_KEY_MESSAGE
    if decrypted.startswith(EncryptedStr._ENCRYPTION_PREFIX):
        return None, UNDECRYPTABLE_API_KEY_MESSAGE
    return decrypted, None
