"""Client end of the delivery protocol.

``ClientState`` keeps the renderer's copy of the document in sync from
patches. ``AgentStreamClient`` talks to ``/api/chat`` over SSE and feeds
events to listener callbacks.
"""

import asyncio
import contextlib
import copy
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import httpx
import orjson

from genui.core import PatchApplicationFailure, get_logger
from .events import EventType
from .patch import Operation, apply_patch, apply_patch_permissive


logger = get_logger(__name__)

CONNECTION_INTERRUPTED = "Connection interrupted"


class ClientState:
    """Local document maintained from state-delta patches. Never raises."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self.document: Any = copy.deepcopy(dict(initial or {}))

    @property
    def tree(self) -> dict[str, Any] | None:
        tree = self.document.get("dsl") if isinstance(self.document, dict) else None
        return tree if isinstance(tree, dict) else None

    def apply(self, operations: Iterable[Operation | Mapping[str, Any]]) -> Any:
        """
        Apply a patch: strictly if possible, otherwise leniently.

        In lenient mode each operation is applied on its own and one that
        cannot be applied even leniently is skipped.
        """
        ops = list(operations)
        try:
            self.document = apply_patch(self.document, ops)
            return self.document
        except PatchApplicationFailure as e:
            logger.warning("patch_strict_failed", error=e.message, operation=e.operation)

        document = self.document
        for op in ops:
            try:
                document = apply_patch_permissive(document, [op])
            except PatchApplicationFailure as e:
                logger.warning("patch_op_skipped", error=e.message, operation=e.operation)
        self.document = document
        return self.document

    def reset(self) -> None:
        self.document = {}


MessageListener = Callable[[str], None]
StateListener = Callable[[Any], None]
DoneListener = Callable[[], None]


class AgentStreamClient:
    """
    SSE consumer for ``POST /api/chat``.

    Keeps the session id (from ``threadId``) and the message history so
    every request carries the conversation so far. Only one stream is open
    at a time: sending a message first closes the previous stream.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        on_message_delta: MessageListener | None = None,
        on_state_update: StateListener | None = None,
        on_error: MessageListener | None = None,
        on_done: DoneListener | None = None,
        path: str = "/api/chat",
    ) -> None:
        self.url = base_url.rstrip("/") + path
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))
        self.on_message_delta = on_message_delta
        self.on_state_update = on_state_update
        self.on_error = on_error
        self.on_done = on_done

        self.session_id: str | None = None
        self.messages: list[dict[str, str]] = []
        self.state = ClientState()
        self._task: asyncio.Task[None] | None = None

    async def send_message(self, text: str, data_context: Mapping[str, Any] | None = None) -> asyncio.Task[None]:
        """Close any open stream, then start streaming the reply to ``text``."""
        await self.close_stream()

        body: dict[str, Any] = {
            "utterance": text,
            "priorMessages": list(self.messages),
            "dataContext": dict(data_context or {}),
        }
        if self.session_id:
            body["sessionId"] = self.session_id

        self.messages.append({"role": "user", "content": text})
        self._task = asyncio.create_task(self._consume(body))
        return self._task

    async def close_stream(self) -> None:
        """Cancel the open stream, if any, and wait for it to wind down."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def aclose(self) -> None:
        await self.close_stream()
        await self._client.aclose()

    async def _consume(self, body: dict[str, Any]) -> None:
        reply: list[str] = []
        try:
            async with self._client.stream(
                "POST", self.url, json=body, headers={"Accept": "text/event-stream"}
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    event = self._parse_line(line)
                    if event is not None:
                        self._dispatch(event, reply)
        except httpx.HTTPError as e:
            logger.warning("stream_interrupted", error=str(e))
            if self.on_error:
                self.on_error(CONNECTION_INTERRUPTED)
            return

        if reply:
            self.messages.append({"role": "assistant", "content": "".join(reply)})

    @staticmethod
    def _parse_line(line: str) -> dict[str, Any] | None:
        if not line.startswith("data:"):
            return None
        payload = line[5:].strip()
        if not payload:
            return None
        try:
            event = orjson.loads(payload)
        except orjson.JSONDecodeError:
            logger.warning("bad_event", preview=payload[:100])
            return None
        return event if isinstance(event, dict) else None

    def _dispatch(self, event: dict[str, Any], reply: list[str]) -> None:
        thread_id = event.get("threadId")
        if isinstance(thread_id, str) and thread_id:
            self.session_id = thread_id

        match event.get("type"):
            case EventType.MESSAGE_CONTENT.value:
                delta = str(event.get("delta", ""))
                reply.append(delta)
                if self.on_message_delta:
                    self.on_message_delta(delta)
            case EventType.STATE_DELTA.value:
                self.state.apply(event.get("patch") or [])
                if self.on_state_update:
                    self.on_state_update(self.state.document)
            case EventType.RUN_ERROR.value:
                if self.on_error:
                    self.on_error(str(event.get("message", "")))
            case EventType.RUN_FINISHED.value:
                if self.on_done:
                    self.on_done()
            case _:
                pass


__all__ = ["AgentStreamClient", "ClientState", "CONNECTION_INTERRUPTED"]
