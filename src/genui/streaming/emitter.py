"""Turn Streamer - orchestrator output to lifecycle events.

Every turn produces, in order::

    run-started, message-started, (message-content | state-delta)*,
    message-ended, run-finished | run-error

Trees become patches against the tree the client last received. The first
tree of a session is sent whole as ``add /dsl``; a tree identical to the
last one sends nothing.
"""

from collections.abc import AsyncIterator
from typing import Any

from genui.agents.orchestrator import GenerationOrchestrator, InvalidDocument, TurnSummary
from genui.core import GenerationRequest, LogContext, chunk_text, error_code, fingerprint, get_logger
from genui.core.id import new_message_id, new_run_id, new_session_id
from genui.dsl import ComponentNode
from genui.monitoring import MetricsCollector, metrics_collector
from genui.session import SessionStore
from .events import (
    Event,
    MessageContent,
    MessageEnded,
    MessageStarted,
    RunError,
    RunFinished,
    RunStarted,
    StateDelta,
)
from .patch import Operation, diff, join, to_wire


logger = get_logger(__name__)

PATCH_ROOT = "dsl"
INVALID_DOCUMENT_NOTE = "Generated output was not a component tree; the raw text is returned as a message."


class TurnStreamer:
    """Turns orchestrator output into protocol events."""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        store: SessionStore,
        batch_size: int = 20,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.store = store
        self.batch_size = batch_size
        self.metrics = metrics or metrics_collector

    def delta(self, session_id: str, tree: ComponentNode) -> list[Operation]:
        """
        Patch from the last emitted tree to ``tree``, recording ``tree`` as
        emitted when the patch is non-empty.
        """
        session = self.store.get_or_create(session_id)
        candidate = tree.to_dict()

        if session.emitted_tree is None:
            ops = [Operation(op="add", path=join("", PATCH_ROOT), value=candidate)]
        elif fingerprint(session.emitted_tree) == fingerprint(candidate):
            return []
        else:
            ops = diff({PATCH_ROOT: session.emitted_tree}, {PATCH_ROOT: candidate})

        if ops:
            self.store.set_emitted_tree(session_id, candidate)
            self.metrics.record_patch([op.op for op in ops])
        return ops

    def _track(self, event: Event) -> Event:
        self.metrics.record_stream_event(event.type)
        return event

    async def stream(self, request: GenerationRequest, run_id: str | None = None) -> AsyncIterator[Event]:
        """Run one turn, yielding its lifecycle events."""
        session_id = request.session_id or new_session_id()
        run_id = run_id or new_run_id()
        message_id = new_message_id()
        ids: dict[str, Any] = {"thread_id": session_id, "run_id": run_id}

        with LogContext(session_id=session_id, run_id=run_id):
            yield self._track(RunStarted(**ids))
            yield self._track(MessageStarted(message_id=message_id, **ids))

            try:
                async for item in self.orchestrator.run_turn(request, session_id):
                    if isinstance(item, ComponentNode):
                        ops = self.delta(session_id, item)
                        if ops:
                            logger.info("state_delta", ops=len(ops))
                            yield self._track(StateDelta(patch=to_wire(ops), **ids))
                        else:
                            logger.debug("state_unchanged")
                    elif isinstance(item, InvalidDocument):
                        for chunk in chunk_text(item.raw, self.batch_size):
                            yield self._track(MessageContent(message_id=message_id, delta=chunk, **ids))
                    elif isinstance(item, TurnSummary):
                        logger.debug("turn_summary", intent=item.intent.intent.value, fallback=item.fallback)
                    else:
                        for chunk in chunk_text(item, self.batch_size):
                            yield self._track(MessageContent(message_id=message_id, delta=chunk, **ids))
            except Exception as e:
                code = error_code(e)
                logger.error("turn_failed", code=code, error=str(e), exc_info=True)
                self.metrics.record_error(code, "emitter")
                yield self._track(MessageEnded(message_id=message_id, **ids))
                yield self._track(RunError(code=code, message=str(e), **ids))
                return

            yield self._track(MessageEnded(message_id=message_id, **ids))
            yield self._track(RunFinished(**ids))

    async def run_once(self, request: GenerationRequest) -> dict[str, Any]:
        """
        Run one turn without streaming.

        Returns:
            ``{sessionId, patch, dataContext}`` plus ``note`` when the
            generated document was unusable
        """
        session_id = request.session_id or new_session_id()
        ops: list[Operation] = []
        note: str | None = None

        with LogContext(session_id=session_id):
            async for item in self.orchestrator.run_turn(request, session_id):
                if isinstance(item, ComponentNode):
                    ops = self.delta(session_id, item)
                elif isinstance(item, InvalidDocument):
                    note = INVALID_DOCUMENT_NOTE

        session = self.store.get_or_create(session_id)
        response: dict[str, Any] = {
            "sessionId": session_id,
            "patch": to_wire(ops),
            "dataContext": session.data_context,
        }
        if note:
            response["note"] = note
        return response


__all__ = ["PATCH_ROOT", "TurnStreamer"]
