"""Input validation with strong typing."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import ValidationError
from .json import JSONParseError, validate_json_depth, validate_json_size


# Validation limits
MAX_TREE_SIZE = 512 * 1024  # 512KB
MAX_TREE_DEPTH = 40
MAX_MESSAGE_LENGTH = 10_000
MAX_PRIOR_MESSAGES = 50


@dataclass(frozen=True)
class ValidationResult:
    """Validation error with details (for Result pattern)."""

    message: str
    field: str | None = None
    value: Any | None = None


class RequestValidator(BaseModel):
    """Base validator with strict configuration."""

    model_config = ConfigDict(
        strict=True,
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class PriorMessage(RequestValidator):
    """One message of the client-side transcript."""

    role: str = Field(pattern="^(user|assistant|system)$")
    content: str = Field(max_length=MAX_MESSAGE_LENGTH)


class GenerationRequest(RequestValidator):
    """Validated generation request for one turn."""

    session_id: str | None = Field(default=None, max_length=128)
    utterance: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    prior_messages: list[PriorMessage] = Field(default_factory=list, max_length=MAX_PRIOR_MESSAGES)
    data_context: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def accept_message_list(cls, data: Any) -> Any:
        """Accept the ``{messages, state: {dataContext}, sessionId}`` body shape."""
        if not isinstance(data, dict) or "utterance" in data or "messages" not in data:
            return data

        messages = list(data.get("messages") or [])
        utterance = ""
        for index in range(len(messages) - 1, -1, -1):
            message = messages[index]
            if isinstance(message, dict) and message.get("role", "user") == "user":
                utterance = message.get("content", "")
                del messages[index]
                break

        prior = [
            {"role": m.get("role", "user"), "content": m.get("content", "")}
            for m in messages
            if isinstance(m, dict)
        ]
        state = data.get("state") or {}
        converted: dict[str, Any] = {
            "utterance": utterance,
            "priorMessages": prior[-MAX_PRIOR_MESSAGES:],
            "dataContext": state.get("dataContext") or {} if isinstance(state, dict) else {},
        }
        session_id = data.get("sessionId", data.get("session_id"))
        if session_id:
            converted["sessionId"] = session_id
        return converted

    @field_validator("utterance")
    @classmethod
    def validate_utterance(cls, v: str) -> str:
        """Ensure utterance is non-empty after stripping."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Utterance cannot be empty")
        return stripped


def validate_tree_limits(tree: dict[str, Any], raw: str) -> None:
    """
    Bound the size and nesting of a generated document.

    Raises:
        ValidationError: If a limit is exceeded
    """
    try:
        validate_json_size(raw, MAX_TREE_SIZE, "Component tree")
        validate_json_depth(tree, MAX_TREE_DEPTH)
    except JSONParseError as e:
        raise ValidationError(str(e), e) from e
