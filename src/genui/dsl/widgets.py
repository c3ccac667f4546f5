"""Live UI tree produced by the interpreter.

A ``Widget`` stands in for whatever primitive the host toolkit paints. It
keeps resolved properties and the action wiring; painting is the host's job.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from .models import ActionDescriptor

ActionHandler = Callable[[ActionDescriptor], None]

FRAGMENT = "Fragment"
CONTAINER = "Container"


@dataclass
class Widget:
    """One node of the live UI."""

    kind: str
    props: dict[str, Any] = field(default_factory=dict)
    children: list["Widget"] = field(default_factory=list)
    on_click: Callable[[], None] | None = field(default=None, repr=False)
    on_value_change: Callable[[], None] | None = field(default=None, repr=False)
    value: Any = None

    @property
    def text(self) -> str | None:
        text = self.props.get("text")
        return None if text is None else str(text)

    @property
    def is_fragment(self) -> bool:
        return self.kind == FRAGMENT

    @property
    def interactive(self) -> bool:
        return self.on_click is not None or self.on_value_change is not None

    def activate(self) -> None:
        """User tapped the element."""
        if self.on_click is not None:
            self.on_click()

    def change(self, value: Any) -> None:
        """User moved a value control (slider etc.)."""
        self.value = value
        if self.on_value_change is not None:
            self.on_value_change()

    def walk(self) -> Iterator["Widget"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def leaves(self) -> list["Widget"]:
        """Childless, non-fragment widgets in depth-first order."""
        return [w for w in self.walk() if not w.children and not w.is_fragment]

    def find(self, kind: str) -> list["Widget"]:
        return [w for w in self.walk() if w.kind == kind]


def bind_action(handler: ActionHandler, descriptor: ActionDescriptor) -> Callable[[], None]:
    """Callback forwarding ``descriptor`` to ``handler`` once per call."""

    def fire() -> None:
        handler(descriptor)

    return fire
