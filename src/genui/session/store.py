"""Generation sessions.

A session carries the continuity of a conversation across turns: the data
context accumulated so far, the last generated tree, the last tree the
client actually received, the last resolved intent and a bounded history.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import Any, AsyncIterator

from genui.core import LRUCache, get_logger
from genui.dsl import ComponentNode


logger = get_logger(__name__)

DEFAULT_HISTORY_TURNS = 10


@dataclass(frozen=True)
class ConversationTurn:
    """One completed request/response cycle."""

    query: str
    response: str
    timestamp: float
    intent: str | None = None


@dataclass
class GenerationSession:
    """Mutable per-session state. Only the store mutates it."""

    session_id: str
    history_max_turns: int = DEFAULT_HISTORY_TURNS
    data_context: dict[str, Any] = field(default_factory=dict)
    component_tree: ComponentNode | None = None
    emitted_tree: dict[str, Any] | None = None
    last_intent: str | None = None
    history: deque[ConversationTurn] = field(init=False, default_factory=deque)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.history = deque(maxlen=self.history_max_turns)

    def touch(self) -> None:
        self.updated_at = time.time()


@dataclass
class _TurnLock:
    """A session lock and the number of turns holding or waiting on it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class SessionStore(ABC):
    """Session persistence and per-session turn serialization."""

    @abstractmethod
    def get_or_create(self, session_id: str) -> GenerationSession: ...

    @abstractmethod
    def get(self, session_id: str) -> GenerationSession | None: ...

    @abstractmethod
    def merge_data_context(self, session_id: str, partial: Mapping[str, Any] | None) -> dict[str, Any]: ...

    @abstractmethod
    def set_component_tree(self, session_id: str, tree: ComponentNode | None) -> None: ...

    @abstractmethod
    def set_emitted_tree(self, session_id: str, tree: dict[str, Any] | None) -> None: ...

    @abstractmethod
    def set_last_intent(self, session_id: str, intent: str | None) -> None: ...

    @abstractmethod
    def append_turn(self, session_id: str, turn: ConversationTurn) -> None: ...

    @abstractmethod
    def lock(self, session_id: str) -> Any:
        """Async context manager held for the duration of one turn."""

    @abstractmethod
    def discard(self, session_id: str) -> None: ...

    @abstractmethod
    def __len__(self) -> int: ...


class InMemorySessionStore(SessionStore):
    """
    Sessions in an LRU cache with sliding TTL.

    An evicted session is recreated empty on next use. Locks live beside
    the cache and are dropped with their session once no turn holds or
    waits on them; a lock still in use goes when its last user leaves.
    """

    def __init__(
        self,
        max_sessions: int = 1000,
        ttl_seconds: float | None = 3600,
        history_max_turns: int = DEFAULT_HISTORY_TURNS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.history_max_turns = history_max_turns
        self._sessions = LRUCache[GenerationSession](
            max_size=max_sessions,
            ttl_seconds=ttl_seconds,
            sliding=True,
            on_evict=self._evicted,
            clock=clock,
        )
        self._locks: dict[str, _TurnLock] = {}

    def _release_lock(self, session_id: str) -> None:
        entry = self._locks.get(session_id)
        if entry is not None and entry.users == 0:
            del self._locks[session_id]

    def _evicted(self, session_id: str) -> None:
        self._release_lock(session_id)
        logger.info("session_evicted", session_id=session_id)

    def get_or_create(self, session_id: str) -> GenerationSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = GenerationSession(session_id=session_id, history_max_turns=self.history_max_turns)
            self._sessions.set(session_id, session)
            logger.debug("session_created", session_id=session_id)
        return session

    def get(self, session_id: str) -> GenerationSession | None:
        return self._sessions.get(session_id)

    def merge_data_context(self, session_id: str, partial: Mapping[str, Any] | None) -> dict[str, Any]:
        """Shallow merge: incoming keys overwrite, everything else is kept."""
        session = self.get_or_create(session_id)
        if partial:
            session.data_context = {**session.data_context, **partial}
            session.touch()
        return session.data_context

    def set_component_tree(self, session_id: str, tree: ComponentNode | None) -> None:
        session = self.get_or_create(session_id)
        session.component_tree = tree
        session.touch()

    def set_emitted_tree(self, session_id: str, tree: dict[str, Any] | None) -> None:
        session = self.get_or_create(session_id)
        session.emitted_tree = tree
        session.touch()

    def set_last_intent(self, session_id: str, intent: str | None) -> None:
        session = self.get_or_create(session_id)
        session.last_intent = intent
        session.touch()

    def append_turn(self, session_id: str, turn: ConversationTurn) -> None:
        session = self.get_or_create(session_id)
        if session.history and turn.timestamp < session.history[-1].timestamp:
            # Wall clock stepped back; history stays ordered.
            turn = replace(turn, timestamp=session.history[-1].timestamp)
        session.history.append(turn)
        session.touch()

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        entry = self._locks.setdefault(session_id, _TurnLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if session_id not in self._sessions:
                self._release_lock(session_id)

    def discard(self, session_id: str) -> None:
        self._sessions.delete(session_id)
        self._release_lock(session_id)

    def __len__(self) -> int:
        self._sessions.purge_expired()
        return len(self._sessions)


__all__ = [
    "ConversationTurn",
    "GenerationSession",
    "SessionStore",
    "InMemorySessionStore",
]
