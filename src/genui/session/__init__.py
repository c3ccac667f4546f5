"""Session state across turns."""

from .store import ConversationTurn, GenerationSession, InMemorySessionStore, SessionStore

__all__ = ["ConversationTurn", "GenerationSession", "InMemorySessionStore", "SessionStore"]
