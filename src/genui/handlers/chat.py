"""Chat Handler - request validation and turn entry points."""

import time
from collections.abc import AsyncIterator
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from genui.core import GenerationRequest, ValidationError, get_logger
from genui.core.id import new_run_id, new_session_id
from genui.monitoring import MetricsCollector, metrics_collector
from genui.streaming import Event, EventType, Heartbeat, with_heartbeat
from genui.streaming.emitter import TurnStreamer


logger = get_logger(__name__)


def _first_error(e: PydanticValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    first = errors[0]
    location = ".".join(str(p) for p in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]


class ChatHandler:
    """Handles generation requests for both transports."""

    def __init__(
        self,
        streamer: TurnStreamer,
        heartbeat_interval: float = 15.0,
        max_message_length: int = 10_000,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.streamer = streamer
        self.heartbeat_interval = heartbeat_interval
        self.max_message_length = max_message_length
        self.metrics = metrics or metrics_collector

    def parse(self, payload: Any) -> GenerationRequest:
        """
        Validate a request body.

        A missing session id is filled in here so that every event of the
        turn, heartbeats included, carries the same ``threadId``.

        Raises:
            ValidationError: If the body is not a valid generation request
        """
        try:
            request = GenerationRequest.model_validate(payload)
        except PydanticValidationError as e:
            self.metrics.record_turn("validation_error", 0.0, "request")
            logger.warning("validation", error=_first_error(e))
            raise ValidationError(_first_error(e), e) from e

        if len(request.utterance) > self.max_message_length:
            raise ValidationError(f"utterance: longer than {self.max_message_length} characters")

        if request.session_id is None:
            request = request.model_copy(update={"session_id": new_session_id()})
        return request

    async def stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Run a turn as server-sent-event frames, with heartbeats while idle."""
        start_time = time.time()
        run_id = new_run_id()
        if request.session_id is None:
            request = request.model_copy(update={"session_id": new_session_id()})
        session_id = request.session_id
        logger.info("chat_stream", session_id=session_id, message=request.utterance[:50])

        def heartbeat() -> Event:
            self.metrics.record_stream_event(EventType.HEARTBEAT.value)
            return Heartbeat(thread_id=session_id, run_id=run_id)

        status = "success"
        events = with_heartbeat(self.streamer.stream(request, run_id=run_id), self.heartbeat_interval, heartbeat)
        try:
            async for event in events:
                if event.type == EventType.RUN_ERROR.value:
                    status = "error"
                yield event.to_sse()
        finally:
            await events.aclose()
            duration = time.time() - start_time
            self.metrics.record_turn(status, duration, "stream")
            logger.info("complete", status=status, duration_ms=duration * 1000)

    async def once(self, request: GenerationRequest) -> dict[str, Any]:
        """Run a turn and return the resulting patch in one response."""
        start_time = time.time()
        logger.info("chat_once", session_id=request.session_id, message=request.utterance[:50])
        try:
            response = await self.streamer.run_once(request)
        except Exception as e:
            self.metrics.record_turn("error", time.time() - start_time, "once")
            self.metrics.record_error("generation_error", "chat_handler")
            logger.error("generation", error=str(e))
            raise
        self.metrics.record_turn("success", time.time() - start_time, "once")
        return response


__all__ = ["ChatHandler"]
