"""Component tree data model.

The wire shape is ``{component_type, properties?, children?}``. Nodes are
frozen: generation produces them, the interpreter only reads them.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from returns.result import Failure, Result, Success

from genui.core import (
    InvalidGeneratedDocument,
    JSONParseError,
    ValidationError,
    ValidationResult,
    extract_json,
    validate_tree_limits,
)


class ComponentKind(str, Enum):
    """Closed vocabulary of component kinds."""

    # Containers
    COLUMN = "Column"
    ROW = "Row"
    CARD = "Card"
    CENTER = "Center"
    ALIGN = "Align"
    CONSTRAINED_BOX = "ConstrainedBox"
    PADDING = "Padding"
    SIZED_BOX = "SizedBox"
    LINEAR_GRADIENT = "LinearGradient"

    # Leaves
    TEXT = "Text"
    IMAGE = "Image"
    ICON = "Icon"
    ICON_BUTTON = "IconButton"
    BUTTON = "Button"
    SLIDER = "Slider"
    SPACER = "Spacer"

    # Host cards, rendered natively by the client
    CAR_CONTROL_AC = "car_control_ac"
    CAR_CONTROL_SEAT = "car_control_seat"
    CAR_CONTROL_WINDOW = "car_control_window"

    # Structural
    LOOP = "Loop"
    COMPONENT = "Component"

    UNKNOWN = "Unknown"

    @classmethod
    def from_wire(cls, component_type: str) -> "ComponentKind":
        """Map a wire string to a kind, case-insensitively; never raises."""
        return _KIND_LOOKUP.get(component_type.strip().lower(), cls.UNKNOWN)

    @property
    def is_leaf(self) -> bool:
        return self in LEAF_KINDS


_KIND_LOOKUP = {k.value.lower(): k for k in ComponentKind if k is not ComponentKind.UNKNOWN}

LEAF_KINDS = frozenset(
    {
        ComponentKind.TEXT,
        ComponentKind.IMAGE,
        ComponentKind.ICON,
        ComponentKind.ICON_BUTTON,
        ComponentKind.BUTTON,
        ComponentKind.SLIDER,
        ComponentKind.SPACER,
        ComponentKind.CAR_CONTROL_AC,
        ComponentKind.CAR_CONTROL_SEAT,
        ComponentKind.CAR_CONTROL_WINDOW,
    }
)

# Properties that carry action descriptors rather than display values
ACTION_PROPERTIES = ("on_click", "on_press", "on_value_change")


class ActionDescriptor(BaseModel):
    """Action attached to a component at generation time."""

    model_config = ConfigDict(frozen=True)

    action_type: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> "ActionDescriptor | None":
        """Build a descriptor from a mapping or a bare action-type string."""
        if isinstance(value, ActionDescriptor):
            return value
        if isinstance(value, str) and value.strip():
            return cls(action_type=value.strip())
        if isinstance(value, dict):
            try:
                return cls.model_validate(value)
            except PydanticValidationError:
                return None
        return None


class ComponentNode(BaseModel):
    """UI component node."""

    model_config = ConfigDict(frozen=True, extra="allow")

    component_type: str = Field(..., min_length=1, description="Wire kind name")
    properties: dict[str, Any] = Field(default_factory=dict)
    children: list["ComponentNode"] = Field(default_factory=list)

    @field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("children", mode="before")
    @classmethod
    def _normalize_children(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, dict):
            return [v]
        return v

    @property
    def kind(self) -> ComponentKind:
        return ComponentKind.from_wire(self.component_type)

    def to_dict(self) -> dict[str, Any]:
        """Wire form; fields absent on input stay absent."""
        return self.model_dump(mode="json", exclude_unset=True)

    def walk(self):
        """Yield this node and all descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


ComponentNode.model_rebuild()


# Wrapper keys some generations put around the root node
_WRAPPER_KEYS = ("dsl", "card", "root", "component")


def _unwrap(data: dict[str, Any]) -> dict[str, Any]:
    if "component_type" in data:
        return data
    for key in _WRAPPER_KEYS:
        inner = data.get(key)
        if isinstance(inner, dict) and "component_type" in inner:
            return inner
    return data


def validate_component_tree(data: dict[str, Any], raw: str) -> Result[ComponentNode, ValidationResult]:
    """
    Validate a decoded document as a component tree (Result pattern).

    Args:
        data: Decoded JSON object
        raw: Original text (for the size limit)

    Returns:
        Success with the root node, or Failure describing the problem
    """
    try:
        validate_tree_limits(data, raw)
    except ValidationError as e:
        return Failure(ValidationResult(str(e)))

    try:
        return Success(ComponentNode.model_validate(_unwrap(data)))
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ())) or None
        return Failure(ValidationResult(first.get("msg", str(e)), field=location))


def parse_component_tree(raw: str) -> ComponentNode:
    """
    Parse model output into a component tree.

    Raises:
        InvalidGeneratedDocument: If the text holds no valid tree
    """
    try:
        data = extract_json(raw)
    except JSONParseError as e:
        raise InvalidGeneratedDocument(str(e), raw=raw, original=e) from e

    result = validate_component_tree(data, raw)
    if isinstance(result, Failure):
        problem = result.failure()
        raise InvalidGeneratedDocument(f"Not a component tree: {problem.message}", raw=raw)
    return result.unwrap()
