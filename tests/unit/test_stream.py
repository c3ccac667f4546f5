"""Tests for lifecycle events, the turn streamer and heartbeats."""

import asyncio

import orjson
import pytest

from genui.agents import GenerationOrchestrator, IntentResolver
from genui.clients import DataProviderRegistry
from genui.core import GenerationRequest
from genui.dsl import ComponentNode
from genui.streaming import EventType, Heartbeat, MessageContent, RunStarted, with_heartbeat
from genui.streaming.emitter import PATCH_ROOT, TurnStreamer
from genui.streaming.patch import apply_patch


def request(utterance: str, session_id: str = "s1", **extra) -> GenerationRequest:
    return GenerationRequest.model_validate({"utterance": utterance, "sessionId": session_id, **extra})


async def events_of(streamer: TurnStreamer, req: GenerationRequest) -> list:
    return [event async for event in streamer.stream(req, run_id="run_1")]


# ============================================================================
# Events
# ============================================================================

class TestEvents:
    """Test event serialization."""

    def test_camel_case_wire_shape(self):
        event = MessageContent(thread_id="s1", run_id="r1", message_id="m1", delta="hi")
        data = event.to_dict()

        assert data["type"] == "message-content"
        assert data["threadId"] == "s1"
        assert data["runId"] == "r1"
        assert data["messageId"] == "m1"
        assert isinstance(data["timestamp"], int)

    def test_sse_frame(self):
        frame = RunStarted(thread_id="s1", run_id="r1").to_sse()

        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert orjson.loads(frame[6:])["type"] == "run-started"


# ============================================================================
# Streamer
# ============================================================================

class TestTurnStreamer:
    """Test event order and patch emission."""

    @pytest.mark.asyncio
    async def test_event_order(self, streamer):
        events = await events_of(streamer, request("今天天气怎么样"))
        types = [e.type for e in events]

        assert types[0] == EventType.RUN_STARTED.value
        assert types[1] == EventType.MESSAGE_STARTED.value
        assert types[-2] == EventType.MESSAGE_ENDED.value
        assert types[-1] == EventType.RUN_FINISHED.value
        assert EventType.STATE_DELTA.value in types
        assert all(e.thread_id == "s1" and e.run_id == "run_1" for e in events)

    @pytest.mark.asyncio
    async def test_first_patch_adds_root(self, streamer):
        events = await events_of(streamer, request("今天天气怎么样"))
        delta = next(e for e in events if e.type == EventType.STATE_DELTA.value)

        assert len(delta.patch) == 1
        assert delta.patch[0]["op"] == "add"
        assert delta.patch[0]["path"] == "/" + PATCH_ROOT

    @pytest.mark.asyncio
    async def test_progress_text_streamed(self, streamer):
        events = await events_of(streamer, request("今天天气怎么样"))
        text = "".join(e.delta for e in events if e.type == EventType.MESSAGE_CONTENT.value)

        assert "Thinking..." in text
        assert "(Fetching weather data...)" in text

    @pytest.mark.asyncio
    async def test_identical_tree_sends_no_delta(self, streamer):
        await events_of(streamer, request("今天天气怎么样"))
        events = await events_of(streamer, request("今天天气怎么样"))

        assert EventType.STATE_DELTA.value not in [e.type for e in events]

    @pytest.mark.asyncio
    async def test_patches_rebuild_latest_tree(self, streamer, store):
        document: dict = {}
        for utterance in ("今天天气怎么样", "播放音乐", "附近的咖啡"):
            for event in await events_of(streamer, request(utterance)):
                if event.type == EventType.STATE_DELTA.value:
                    document = apply_patch(document, event.patch)

        assert document[PATCH_ROOT] == store.get("s1").component_tree.to_dict()

    def test_delta_tracks_emitted_tree(self, streamer, store):
        first = ComponentNode.model_validate({"component_type": "Text", "properties": {"text": "a"}})
        second = ComponentNode.model_validate({"component_type": "Text", "properties": {"text": "b"}})

        streamer.delta("s2", first)
        ops = streamer.delta("s2", second)

        assert [op.to_dict() for op in ops] == [{"op": "replace", "path": "/dsl/properties/text", "value": "b"}]
        assert store.get("s2").emitted_tree == second.to_dict()
        assert streamer.delta("s2", second) == []

    @pytest.mark.asyncio
    async def test_invalid_document_streamed_as_text(self, store, metrics, fake_completion):
        orchestrator = GenerationOrchestrator(
            store=store,
            resolver=IntentResolver(),
            data_providers=DataProviderRegistry(),
            completion=fake_completion("plain words, no tree"),
            metrics=metrics,
        )
        events = await events_of(TurnStreamer(orchestrator, store, metrics=metrics), request("你好"))
        text = "".join(e.delta for e in events if e.type == EventType.MESSAGE_CONTENT.value)

        assert "plain words, no tree" in text
        assert EventType.STATE_DELTA.value not in [e.type for e in events]
        assert events[-1].type == EventType.RUN_FINISHED.value

    @pytest.mark.asyncio
    async def test_big_integer_tree_does_not_fail_next_turn(self, store, metrics, fake_completion):
        completion = fake_completion(
            '{"component_type": "Text", "properties": {"id": 123456789012345678901234567890}}',
            '{"component_type": "Text", "properties": {"text": "small"}}',
        )
        orchestrator = GenerationOrchestrator(
            store=store,
            resolver=IntentResolver(),
            data_providers=DataProviderRegistry(),
            completion=completion,
            metrics=metrics,
        )
        streamer = TurnStreamer(orchestrator, store, metrics=metrics)

        await events_of(streamer, request("你好"))
        types = [e.type for e in await events_of(streamer, request("你好"))]

        assert EventType.RUN_ERROR.value not in types
        assert EventType.STATE_DELTA.value in types
        assert types[-1] == EventType.RUN_FINISHED.value

    @pytest.mark.asyncio
    async def test_unexpected_error_ends_with_run_error(self, streamer, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("resolver exploded")

        monkeypatch.setattr(streamer.orchestrator.resolver, "resolve", broken)
        events = await events_of(streamer, request("你好"))

        assert events[-2].type == EventType.MESSAGE_ENDED.value
        assert events[-1].type == EventType.RUN_ERROR.value
        assert events[-1].code == "internal_error"
        assert "resolver exploded" in events[-1].message

    @pytest.mark.asyncio
    async def test_run_once(self, streamer):
        first = await streamer.run_once(request("今天天气怎么样"))
        second = await streamer.run_once(request("今天天气怎么样"))

        assert first["sessionId"] == "s1"
        assert first["patch"][0]["path"] == "/dsl"
        assert first["dataContext"]["city"] == "上海"
        assert second["patch"] == []
        assert "note" not in first


# ============================================================================
# Heartbeat
# ============================================================================

class TestHeartbeat:
    """Test keep-alive interleaving."""

    @pytest.mark.asyncio
    async def test_heartbeats_while_idle(self):
        async def slow():
            yield "a"
            await asyncio.sleep(0.2)
            yield "b"

        items = [i async for i in with_heartbeat(slow(), 0.05, lambda: "hb")]

        assert items[0] == "a"
        assert items[-1] == "b"
        assert items.count("hb") >= 2

    @pytest.mark.asyncio
    async def test_no_heartbeat_when_busy(self):
        async def fast():
            for n in range(5):
                yield n

        assert [i async for i in with_heartbeat(fast(), 1.0, lambda: "hb")] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_source_error_reraised(self):
        async def failing():
            yield 1
            raise ValueError("boom")

        received = []
        with pytest.raises(ValueError, match="boom"):
            async for item in with_heartbeat(failing(), 1.0, lambda: "hb"):
                received.append(item)
        assert received == [1]

    @pytest.mark.asyncio
    async def test_close_cancels_source(self):
        closed = asyncio.Event()

        async def endless():
            try:
                while True:
                    yield "x"
                    await asyncio.sleep(0.01)
            finally:
                closed.set()

        stream = with_heartbeat(endless(), 1.0, lambda: "hb")
        assert await stream.__anext__() == "x"
        await stream.aclose()

        await asyncio.wait_for(closed.wait(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_heartbeat_events_carry_ids(self):
        async def stalled():
            await asyncio.sleep(0.1)
            yield RunStarted(thread_id="s1", run_id="r1")

        events = [
            e async for e in with_heartbeat(stalled(), 0.03, lambda: Heartbeat(thread_id="s1", run_id="r1"))
        ]

        assert events[0].type == EventType.HEARTBEAT.value
        assert all(e.thread_id == "s1" for e in events)
