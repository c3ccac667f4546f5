"""Generation Orchestrator - one turn, end to end.

Runs intent resolution, data fetch, prompt assembly, generation and
parsing for a single utterance, under the session's lock, and yields what
the transport needs to tell the client as it happens.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from genui.core import (
    GenerationRequest,
    GenerationServiceFailure,
    GenerationTimeout,
    GenUIError,
    InvalidGeneratedDocument,
    PriorMessage,
    get_logger,
)
from genui.core.id import new_session_id
from genui.dsl import ComponentNode, parse_component_tree
from genui.monitoring import MetricsCollector, metrics_collector
from genui.session import ConversationTurn, SessionStore
from .intent import CompletionService, ContextConfig, IntentResolver, IntentResult
from .mock import MockGenerator
from .prompts import build_generation_prompt
from .sticky import STICKY_CONFIDENCE_THRESHOLD, apply_sticky_intent

if TYPE_CHECKING:
    from genui.clients.data import DataProviderRegistry


logger = get_logger(__name__)

THINKING = "Thinking..."


@dataclass(frozen=True)
class InvalidDocument:
    """Generated text that is not a component tree; shown to the user as-is."""

    raw: str
    reason: str = ""


@dataclass(frozen=True)
class TurnSummary:
    """Last item of every turn."""

    session_id: str
    intent: IntentResult
    tree_updated: bool
    fallback: str | None = None


TurnOutput = str | ComponentNode | InvalidDocument | TurnSummary


def seed_history(prior_messages: Sequence[PriorMessage]) -> list[ConversationTurn]:
    """Pair client-side user/assistant messages into turns of unknown intent."""
    turns: list[ConversationTurn] = []
    now = time.time()
    query: str | None = None
    for message in prior_messages:
        if message.role == "user":
            if query is not None:
                turns.append(ConversationTurn(query=query, response="", timestamp=now))
            query = message.content
        elif message.role == "assistant" and query is not None:
            turns.append(ConversationTurn(query=query, response=message.content, timestamp=now))
            query = None
    if query is not None:
        turns.append(ConversationTurn(query=query, response="", timestamp=now))
    return turns


class GenerationOrchestrator:
    """Drives a turn through resolve, fetch, generate and parse."""

    def __init__(
        self,
        store: SessionStore,
        resolver: IntentResolver,
        data_providers: "DataProviderRegistry",
        completion: CompletionService | None = None,
        mock: MockGenerator | None = None,
        generation_timeout: float = 60.0,
        sticky_threshold: float = STICKY_CONFIDENCE_THRESHOLD,
        context_config: ContextConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.data_providers = data_providers
        self.completion = completion
        self.mock = mock or MockGenerator()
        self.generation_timeout = generation_timeout
        self.sticky_threshold = sticky_threshold
        self.context_config = context_config or ContextConfig()
        self.metrics = metrics or metrics_collector

        logger.info("initialized", mode="llm" if completion is not None else "mock")

    async def run_turn(
        self,
        request: GenerationRequest,
        session_id: str | None = None,
    ) -> AsyncIterator[TurnOutput]:
        """
        Run one turn.

        Yields progress strings, then the new tree (or an ``InvalidDocument``),
        then a ``TurnSummary``. Holds the session lock throughout, so turns of
        one session never interleave.
        """
        sid = session_id or request.session_id or new_session_id()

        async with self.store.lock(sid):
            session = self.store.get_or_create(sid)
            context = self.store.merge_data_context(sid, request.data_context)
            logger.info("turn_start", utterance=request.utterance[:80], history=len(session.history))

            yield THINKING

            history = list(session.history) or seed_history(request.prior_messages)
            result = await self.resolver.resolve(request.utterance, history, self.context_config)
            result = apply_sticky_intent(result, session.last_intent, request.utterance, self.sticky_threshold)
            self.metrics.record_intent(result.intent.value, result.sticky)

            if result.intent in self.data_providers:
                yield self.data_providers.progress_text(result.intent)
                data = await self.data_providers.fetch(result, request.utterance)
                if data:
                    context = self.store.merge_data_context(sid, data)

            prompt = build_generation_prompt(result, request.utterance, context, session.component_tree)
            raw, fallback = await self._generate(prompt, result, request.utterance, context)

            output: ComponentNode | InvalidDocument
            try:
                output = parse_component_tree(raw)
            except InvalidGeneratedDocument as e:
                logger.warning("invalid_document", error=e.message, preview=raw[:200])
                output = InvalidDocument(raw=e.raw or raw, reason=e.message)
            tree_updated = isinstance(output, ComponentNode)

            # The session is fully updated before the consumer sees the result.
            if isinstance(output, ComponentNode):
                self.store.set_component_tree(sid, output)
            self.store.set_last_intent(sid, result.intent.value)
            self.store.append_turn(
                sid,
                ConversationTurn(
                    query=request.utterance,
                    response=raw,
                    timestamp=time.time(),
                    intent=result.intent.value,
                ),
            )
            logger.info("turn_complete", intent=result.intent.value, sticky=result.sticky, tree_updated=tree_updated)

            yield output
            yield TurnSummary(session_id=sid, intent=result, tree_updated=tree_updated, fallback=fallback)

    async def _generate(
        self,
        prompt: str,
        result: IntentResult,
        utterance: str,
        context: dict,
    ) -> tuple[str, str | None]:
        """Model output, or mock output plus the reason the model was bypassed."""
        if self.completion is None:
            return self.mock.generate(result, utterance, context), None

        start = time.perf_counter()
        failure: GenUIError
        try:
            raw = await asyncio.wait_for(self.completion.ainvoke(prompt), timeout=self.generation_timeout)
        except TimeoutError as e:
            failure = GenerationTimeout(f"Generation exceeded {self.generation_timeout}s", e)
        except Exception as e:
            failure = GenerationServiceFailure(f"Generation failed: {e}", e)
        else:
            self.metrics.record_llm_call("success", time.perf_counter() - start)
            logger.info("llm_complete", content_length=len(raw))
            return raw, None

        logger.warning("llm_failed", code=failure.code, error=failure.message)
        self.metrics.record_llm_call(failure.code, time.perf_counter() - start)
        self.metrics.record_fallback(failure.code)
        return self.mock.generate(result, utterance, context), failure.code


__all__ = [
    "THINKING",
    "GenerationOrchestrator",
    "InvalidDocument",
    "TurnOutput",
    "TurnSummary",
    "seed_history",
]
