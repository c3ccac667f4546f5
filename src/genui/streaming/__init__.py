"""Incremental delivery: patches, lifecycle events, server and client ends."""

from .patch import Operation, apply_patch, apply_patch_permissive, diff, to_wire
from .events import (
    TERMINAL_EVENTS,
    Event,
    EventType,
    Heartbeat,
    MessageContent,
    MessageEnded,
    MessageStarted,
    RunError,
    RunFinished,
    RunStarted,
    StateDelta,
)
from .heartbeat import with_heartbeat
from .client import AgentStreamClient, ClientState

__all__ = [
    "AgentStreamClient",
    "ClientState",
    "Event",
    "EventType",
    "Heartbeat",
    "MessageContent",
    "MessageEnded",
    "MessageStarted",
    "Operation",
    "RunError",
    "RunFinished",
    "RunStarted",
    "StateDelta",
    "TERMINAL_EVENTS",
    "apply_patch",
    "apply_patch_permissive",
    "diff",
    "to_wire",
    "with_heartbeat",
]
