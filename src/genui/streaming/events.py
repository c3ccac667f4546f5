"""Turn lifecycle events.

Serialized with camelCase keys (``threadId``, ``runId``, ``messageId``)
and a millisecond ``timestamp``.
"""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from genui.core import safe_json_dumps


class EventType(str, Enum):
    """Lifecycle event types, in the order a turn produces them."""

    RUN_STARTED = "run-started"
    MESSAGE_STARTED = "message-started"
    MESSAGE_CONTENT = "message-content"
    STATE_DELTA = "state-delta"
    MESSAGE_ENDED = "message-ended"
    RUN_FINISHED = "run-finished"
    RUN_ERROR = "run-error"
    HEARTBEAT = "heartbeat"


TERMINAL_EVENTS = frozenset({EventType.RUN_FINISHED.value, EventType.RUN_ERROR.value})


def _now_ms() -> int:
    return int(time.time() * 1000)


class Event(BaseModel):
    """Common event envelope."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=True,
        validate_default=True,
    )

    type: EventType
    thread_id: str
    run_id: str
    timestamp: int = Field(default_factory=_now_ms)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_sse(self) -> str:
        """One server-sent-events frame."""
        return f"data: {safe_json_dumps(self.to_dict())}\n\n"


class RunStarted(Event):
    type: EventType = EventType.RUN_STARTED


class MessageStarted(Event):
    type: EventType = EventType.MESSAGE_STARTED
    message_id: str


class MessageContent(Event):
    type: EventType = EventType.MESSAGE_CONTENT
    message_id: str
    delta: str


class StateDelta(Event):
    type: EventType = EventType.STATE_DELTA
    patch: list[dict[str, Any]]


class MessageEnded(Event):
    type: EventType = EventType.MESSAGE_ENDED
    message_id: str


class RunFinished(Event):
    type: EventType = EventType.RUN_FINISHED
    status: str = "success"


class RunError(Event):
    type: EventType = EventType.RUN_ERROR
    code: str
    message: str


class Heartbeat(Event):
    type: EventType = EventType.HEARTBEAT


__all__ = [
    "EventType",
    "TERMINAL_EVENTS",
    "Event",
    "RunStarted",
    "MessageStarted",
    "MessageContent",
    "StateDelta",
    "MessageEnded",
    "RunFinished",
    "RunError",
    "Heartbeat",
]
