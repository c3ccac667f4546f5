"""Tests for the chat handler and HTTP endpoints."""

import asyncio

import httpx
import orjson
import pytest
import pytest_asyncio

from genui.core import Settings, ValidationError
from genui.handlers import ChatHandler
from genui.main import create_app


def frames(body: str) -> list[dict]:
    return [orjson.loads(line[6:]) for line in body.split("\n") if line.startswith("data: ")]


# ============================================================================
# ChatHandler
# ============================================================================

class TestChatHandler:
    """Test request parsing and the two transports."""

    def test_parse_assigns_session(self, streamer, metrics):
        handler = ChatHandler(streamer, metrics=metrics)
        request = handler.parse({"utterance": "你好"})

        assert request.session_id.startswith("sess_")

    def test_parse_keeps_session(self, streamer, metrics):
        handler = ChatHandler(streamer, metrics=metrics)
        assert handler.parse({"utterance": "你好", "sessionId": "sess_x"}).session_id == "sess_x"

    def test_parse_rejects_invalid(self, streamer, metrics):
        handler = ChatHandler(streamer, metrics=metrics)

        with pytest.raises(ValidationError) as exc_info:
            handler.parse({"utterance": ""})
        assert "utterance" in exc_info.value.message

    def test_parse_rejects_long_message(self, streamer, metrics):
        handler = ChatHandler(streamer, max_message_length=5, metrics=metrics)

        with pytest.raises(ValidationError):
            handler.parse({"utterance": "x" * 6})

    @pytest.mark.asyncio
    async def test_stream_frames(self, streamer, metrics):
        handler = ChatHandler(streamer, metrics=metrics)
        request = handler.parse({"utterance": "今天天气怎么样"})

        body = "".join([frame async for frame in handler.stream(request)])
        events = frames(body)

        assert events[0]["type"] == "run-started"
        assert events[-1]["type"] == "run-finished"
        assert {e["threadId"] for e in events} == {request.session_id}
        assert len({e["runId"] for e in events}) == 1
        assert metrics.turns_total.labels(status="success")._value.get() == 1

    @pytest.mark.asyncio
    async def test_stream_heartbeats_share_ids(self, streamer, metrics, monkeypatch):
        original = streamer.orchestrator.resolver.resolve

        async def slow_resolve(*args, **kwargs):
            await asyncio.sleep(0.1)
            return await original(*args, **kwargs)

        monkeypatch.setattr(streamer.orchestrator.resolver, "resolve", slow_resolve)
        handler = ChatHandler(streamer, heartbeat_interval=0.02, metrics=metrics)
        request = handler.parse({"utterance": "你好"})

        events = frames("".join([frame async for frame in handler.stream(request)]))
        heartbeats = [e for e in events if e["type"] == "heartbeat"]

        assert heartbeats
        assert len({(e["threadId"], e["runId"]) for e in events}) == 1

    @pytest.mark.asyncio
    async def test_once(self, streamer, metrics):
        handler = ChatHandler(streamer, metrics=metrics)
        response = await handler.once(handler.parse({"utterance": "今天天气怎么样", "sessionId": "sess_1"}))

        assert response["sessionId"] == "sess_1"
        assert response["patch"][0]["op"] == "add"


# ============================================================================
# HTTP
# ============================================================================

@pytest.fixture
def app():
    return create_app(Settings(_env_file=None, llm_backend="mock", data_service_url=""))


@pytest_asyncio.fixture
async def http(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestEndpoints:
    """Test the HTTP surface."""

    @pytest.mark.asyncio
    async def test_post_stream(self, http):
        response = await http.post("/api/chat", json={"utterance": "今天天气怎么样"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = frames(response.text)
        assert events[0]["type"] == "run-started"
        assert any(e["type"] == "state-delta" for e in events)
        assert events[-1]["type"] == "run-finished"

    @pytest.mark.asyncio
    async def test_get_stream(self, http):
        payload = orjson.dumps({"utterance": "你好"}).decode()
        response = await http.get("/api/chat", params={"payload": payload})

        assert response.status_code == 200
        assert frames(response.text)[-1]["type"] == "run-finished"

    @pytest.mark.asyncio
    async def test_validation_error_is_422(self, http):
        response = await http.post("/api/chat", json={"utterance": ""})

        assert response.status_code == 422
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_invalid_json_is_422(self, http):
        response = await http.post("/api/chat/once", content=b"{not json")

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_once_then_no_change(self, http):
        body = {"utterance": "今天天气怎么样", "sessionId": "sess_http"}
        first = (await http.post("/api/chat/once", json=body)).json()
        second = (await http.post("/api/chat/once", json=body)).json()

        assert first["sessionId"] == "sess_http"
        assert first["patch"][0]["path"] == "/dsl"
        assert first["dataContext"]["city"] == "上海"
        assert second["patch"] == []

    @pytest.mark.asyncio
    async def test_health(self, http):
        await http.post("/api/chat/once", json={"utterance": "你好", "sessionId": "sess_h"})
        response = await http.get("/health")

        assert response.json() == {"status": "healthy", "sessions": 1}

    @pytest.mark.asyncio
    async def test_metrics(self, http):
        response = await http.get("/metrics")

        assert response.status_code == 200
        assert "genui_uptime_seconds" in response.text
