"""ChatService turn handling and the FastAPI surface."""

from __future__ import annotations

import json

import aiohttp
import pytest
from aioresponses import aioresponses
from fastapi.testclient import TestClient

from dishgenius_chat.api.server import REQUEST_ID_HEADER, create_app
from dishgenius_chat.core.config import EncryptedStr
from dishgenius_chat.core.logging_system import SessionLogger
from dishgenius_chat.service import ChatService

from conftest import CHAT_URL, chat_completion, chat_tool_call, sent_payloads

CARBONARA_BODY = {"messages": [{"role": "user", "content": "How do I make carbonara?"}]}


class TestChatService:
    """handle_chat outcomes."""

    @pytest.mark.asyncio
    async def test_successful_turn(self, valves, registry):
        service = ChatService(valves, registry)
        try:
            with aioresponses() as mock_http:
                mock_http.post(
                    CHAT_URL,
                    payload=chat_completion(None, [chat_tool_call("call_1", "lookupRecipe", '{"query":"carbonara"}')]),
                )
                mock_http.post(CHAT_URL, payload=chat_completion("Cook pasta, fry bacon, mix eggs."))
                outcome = await service.handle_chat(CARBONARA_BODY)
                assert len(sent_payloads(mock_http, CHAT_URL)) == 2
        finally:
            await service.close()

        assert outcome.ok
        assert outcome.status == 200
        assert outcome.payload == {"role": "assistant", "content": "Cook pasta, fry bacon, mix eggs."}
        assert len(outcome.request_id) == 32

    @pytest.mark.asyncio
    async def test_missing_api_key_is_checked_before_the_body(self, valves, registry):
        service = ChatService(valves.model_copy(update={"API_KEY": EncryptedStr("")}), registry)
        with aioresponses():
            outcome = await service.handle_chat({"messages": []})
        await service.close()

        assert outcome.status == 500
        assert outcome.payload == {"error": "Server configuration error: Missing API key."}

    @pytest.mark.asyncio
    async def test_undecryptable_api_key(self, valves, registry, monkeypatch):
        monkeypatch.setenv("CHAT_SECRET_KEY", "unit-test-secret")
        service = ChatService(
            valves.model_copy(update={"API_KEY": EncryptedStr("encrypted:not-a-valid-token")}),
            registry,
        )
        with aioresponses():
            outcome = await service.handle_chat(CARBONARA_BODY)
        await service.close()

        assert outcome.status == 500
        assert "cannot be decrypted" in outcome.payload["error"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            {"role": "user"},
            {"role": "tool", "content": '{"calories": 95}'},
        ],
    )
    async def test_invalid_body_never_reaches_the_provider(self, valves, registry, message):
        service = ChatService(valves, registry)
        with aioresponses() as mock_http:
            outcome = await service.handle_chat(
                {"messages": [{"role": "user", "content": "Apple calories?"}, message]}
            )
            assert mock_http.requests == {}
        await service.close()

        assert outcome.status == 400
        assert outcome.payload == {"error": "Invalid message format."}

    @pytest.mark.asyncio
    async def test_provider_error_detail_is_hidden(self, valves, registry):
        service = ChatService(valves, registry)
        try:
            with aioresponses() as mock_http:
                mock_http.post(CHAT_URL, status=429, payload={"error": {"message": "Rate limit reached for org-123"}})
                outcome = await service.handle_chat(CARBONARA_BODY)
        finally:
            await service.close()

        assert outcome.status == 502
        assert outcome.payload == {"error": "An error occurred while processing your request."}
        assert "org-123" not in json.dumps(outcome.payload)

    @pytest.mark.asyncio
    async def test_unreachable_provider(self, valves, registry):
        service = ChatService(valves, registry)
        try:
            with aioresponses() as mock_http:
                mock_http.post(CHAT_URL, exception=aiohttp.ClientConnectionError("refused"))
                outcome = await service.handle_chat(CARBONARA_BODY)
        finally:
            await service.close()

        assert outcome.status == 503
        assert outcome.payload == {"error": "Could not reach the completion service."}

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_generic_error(self, valves, registry, monkeypatch):
        service = ChatService(valves, registry)

        async def explode(*args, **kwargs):
            raise KeyError("boom")

        monkeypatch.setattr(service._ensure_chat_orchestrator(), "run_turn", explode)
        try:
            with aioresponses():
                outcome = await service.handle_chat(CARBONARA_BODY)
        finally:
            await service.close()

        assert outcome.status == 500
        assert outcome.payload == {"error": "An error occurred while processing your request."}

    @pytest.mark.asyncio
    async def test_request_logs_are_flushed_then_released(self, valves, registry):
        flushed = {}
        service = ChatService(
            valves,
            registry,
            log_sink=lambda request_id, events: flushed.__setitem__(request_id, events),
        )
        try:
            with aioresponses() as mock_http:
                mock_http.post(CHAT_URL, payload=chat_completion("Hello"))
                outcome = await service.handle_chat(CARBONARA_BODY)
        finally:
            await service.close()

        events = flushed[outcome.request_id]
        assert "Chat turn completed" in [event["message"] for event in events]
        assert all(event["request_id"] == outcome.request_id for event in events)
        assert outcome.request_id not in SessionLogger.logs

    @pytest.mark.asyncio
    async def test_no_buffers_retained_after_many_turns(self, valves, registry):
        service = ChatService(valves.model_copy(update={"LOG_LEVEL": "INFO"}), registry)
        try:
            with aioresponses() as mock_http:
                mock_http.post(CHAT_URL, payload=chat_completion("Hello"), repeat=True)
                for _ in range(5):
                    assert (await service.handle_chat(CARBONARA_BODY)).ok
        finally:
            await service.close()

        assert SessionLogger.logs == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("level", "expect_payload"), [("INFO", False), ("DEBUG", True)])
    async def test_provider_payload_logged_only_at_debug(self, valves, registry, level, expect_payload):
        flushed = {}
        service = ChatService(
            valves.model_copy(update={"LOG_LEVEL": level}),
            registry,
            log_sink=lambda request_id, events: flushed.__setitem__(request_id, events),
        )
        try:
            with aioresponses() as mock_http:
                mock_http.post(CHAT_URL, payload=chat_completion("Hello"))
                outcome = await service.handle_chat(CARBONARA_BODY)
        finally:
            await service.close()

        event_types = {event["event_type"] for event in flushed[outcome.request_id]}
        assert ("provider.request.payload" in event_types) is expect_payload

    @pytest.mark.asyncio
    async def test_failing_log_sink_does_not_break_the_turn(self, valves, registry):
        def broken_sink(request_id, events):
            raise RuntimeError("sink offline")

        service = ChatService(valves, registry, log_sink=broken_sink)
        try:
            with aioresponses() as mock_http:
                mock_http.post(CHAT_URL, payload=chat_completion("Hello"))
                outcome = await service.handle_chat(CARBONARA_BODY)
        finally:
            await service.close()

        assert outcome.ok
        assert SessionLogger.logs == {}

    @pytest.mark.asyncio
    async def test_injected_session_is_not_closed(self, valves, registry):
        async with aiohttp.ClientSession() as session:
            service = ChatService(valves, registry, session=session)
            await service.close()
            assert not session.closed


class TestHttpSurface:
    """FastAPI routes."""

    def test_chat_endpoint(self, valves, registry):
        app = create_app(ChatService(valves, registry))
        with aioresponses() as mock_http:
            mock_http.post(CHAT_URL, payload=chat_completion("Hi from DishGenius"))
            with TestClient(app) as client:
                response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hi"}]})

        assert response.status_code == 200
        assert response.json() == {"role": "assistant", "content": "Hi from DishGenius"}
        assert len(response.headers[REQUEST_ID_HEADER]) == 32

    def test_non_json_body(self, valves, registry):
        app = create_app(ChatService(valves, registry))
        with TestClient(app) as client:
            response = client.post(
                "/api/chat", content=b"not json", headers={"Content-Type": "application/json"}
            )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body: messages array is required."}

    def test_missing_messages(self, valves, registry):
        app = create_app(ChatService(valves, registry))
        with TestClient(app) as client:
            response = client.post("/api/chat", json={"prompt": "hi"})

        assert response.status_code == 400
        assert REQUEST_ID_HEADER in response.headers

    def test_tools_endpoint(self, valves, registry):
        app = create_app(ChatService(valves.model_copy(update={"EXPOSED_TOOLS": "getNutritionInfo"}), registry))
        with TestClient(app) as client:
            response = client.get("/api/tools")

        assert response.status_code == 200
        assert [tool["function"]["name"] for tool in response.json()] == ["getNutritionInfo"]

    def test_healthz(self, valves, registry):
        with TestClient(create_app(ChatService(valves, registry))) as client:
            assert client.get("/healthz").json() == {"status": "ok"}
