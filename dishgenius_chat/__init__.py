"""DishGenius chat backend.

Tool-calling chat turns on top of an OpenAI-compatible completion service:
- Tool subsystem: registry, parameter schemas, concurrent executor, built-in tools
- Provider gateway: chat-completions and responses conventions, reply normalization
- Orchestrator and ChatService; FastAPI app in ``api.server``

Imports are lazy: nothing is loaded until an attribute is accessed, so
``import dishgenius_chat`` never reads configuration or touches the network.
"""

from typing import TYPE_CHECKING

try:
    from importlib.metadata import PackageNotFoundError, version as _get_version

    __version__ = _get_version("dishgenius-chat")
except PackageNotFoundError:
    __version__ = "0.1.0"

if TYPE_CHECKING:
    from .api.models import CompletionReply, CompletionRequest, ConversationMessage
    from .api.server import create_app
    from .core.config import EncryptedStr, Valves, resolve_api_key
    from .core.errors import (
        BadRequestError,
        ChatTurnError,
        ConfigurationError,
        DuplicateToolError,
        ProviderAPIError,
        UpstreamMalformedError,
        UpstreamUnavailableError,
    )
    from .requests.orchestrator import ChatTurnOrchestrator
    from .service import ChatService, ChatTurnOutcome
    from .tools.catalog import build_default_registry
    from .tools.executor import ToolExecutor
    from .tools.models import ToolCallRequest, ToolDefinition, ToolResult
    from .tools.registry import ToolRegistry
    from .tools.schema import to_provider_schema

_LAZY_IMPORTS = {
    # Core
    "Valves": (".core.config", "Valves"),
    "EncryptedStr": (".core.config", "EncryptedStr"),
    "resolve_api_key": (".core.config", "resolve_api_key"),
    "ChatTurnError": (".core.errors", "ChatTurnError"),
    "BadRequestError": (".core.errors", "BadRequestError"),
    "ConfigurationError": (".core.errors", "ConfigurationError"),
    "UpstreamUnavailableError": (".core.errors", "UpstreamUnavailableError"),
    "ProviderAPIError": (".core.errors", "ProviderAPIError"),
    "UpstreamMalformedError": (".core.errors", "UpstreamMalformedError"),
    "DuplicateToolError": (".core.errors", "DuplicateToolError"),
    # Tools
    "ToolDefinition": (".tools.models", "ToolDefinition"),
    "ToolCallRequest": (".tools.models", "ToolCallRequest"),
    "ToolResult": (".tools.models", "ToolResult"),
    "ToolRegistry": (".tools.registry", "ToolRegistry"),
    "ToolExecutor": (".tools.executor", "ToolExecutor"),
    "to_provider_schema": (".tools.schema", "to_provider_schema"),
    "build_default_registry": (".tools.catalog", "build_default_registry"),
    # API
    "ConversationMessage": (".api.models", "ConversationMessage"),
    "CompletionRequest": (".api.models", "CompletionRequest"),
    "CompletionReply": (".api.models", "CompletionReply"),
    "create_app": (".api.server", "create_app"),
    # Orchestration
    "ChatTurnOrchestrator": (".requests.orchestrator", "ChatTurnOrchestrator"),
    "ChatService": (".service", "ChatService"),
    "ChatTurnOutcome": (".service", "ChatTurnOutcome"),
}

__all__ = list(_LAZY_IMPORTS)


def __getattr__(name: str):
    """Lazy-load public attributes on first access."""
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        import importlib

        module = importlib.import_module(module_path, __name__)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals()) | set(_LAZY_IMPORTS))
