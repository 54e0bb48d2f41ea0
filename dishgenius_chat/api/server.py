"""FastAPI HTTP surface.

- ``POST /api/chat``  one chat turn; body ``{"messages": [...]}``
- ``GET /api/tools``  provider-safe schemas of the exposed tools
- ``GET /healthz``    liveness check

Serve ``dishgenius_chat.api.server:app`` with any ASGI server.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import INVALID_BODY_MESSAGE
from ..service import ChatService

LOGGER = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def create_app(service: Optional[ChatService] = None) -> FastAPI:
    """Build the FastAPI app around ``service`` (a default ChatService when omitted)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.chat_service.close()

    app = FastAPI(title="DishGenius Chat", lifespan=lifespan)
    app.state.chat_service = service or ChatService()

    @app.post("/api/chat")
    async def chat(request: Request) -> JSONResponse:
        chat_service: ChatService = request.app.state.chat_service
        body: Any
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            LOGGER.info("Rejected chat request with a non-JSON body")
            return JSONResponse({"error": INVALID_BODY_MESSAGE}, status_code=400)
        outcome = await chat_service.handle_chat(body)
        return JSONResponse(
            outcome.payload,
            status_code=outcome.status,
            headers={REQUEST_ID_HEADER: outcome.request_id},
        )

    @app.get("/api/tools")
    async def tools(request: Request) -> JSONResponse:
        chat_service: ChatService = request.app.state.chat_service
        return JSONResponse(chat_service.exposed_tool_schemas())

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app


def __getattr__(name: str):
    # ``app`` is created on first access so importing this module has no side effects.
    if name == "app":
        value = create_app()
        globals()["app"] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
