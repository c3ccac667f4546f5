"""ID Generation.

ULID-based identifiers with type prefixes (``sess_*``, ``run_*``, ``msg_*``).
ULIDs sort by creation time, so logs and event streams read in order.
"""

from typing import NewType

from ulid import ULID

SessionID = NewType("SessionID", str)
"""Conversation session identifier (the protocol's threadId)"""

RunID = NewType("RunID", str)
"""One turn of a session"""

MessageID = NewType("MessageID", str)
"""Progress message within a run"""


class Prefix:
    """ID prefix constants."""

    SESSION = "sess"
    RUN = "run"
    MESSAGE = "msg"


def generate_prefixed(prefix: str) -> str:
    """Generate ULID with type prefix."""
    return f"{prefix}_{ULID()}"


def new_session_id() -> SessionID:
    """Generate new session ID."""
    return SessionID(generate_prefixed(Prefix.SESSION))


def new_run_id() -> RunID:
    """Generate new run ID."""
    return RunID(generate_prefixed(Prefix.RUN))


def new_message_id() -> MessageID:
    """Generate new message ID."""
    return MessageID(generate_prefixed(Prefix.MESSAGE))
