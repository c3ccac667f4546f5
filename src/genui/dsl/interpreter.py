"""DSL Interpreter - component tree to live UI.

A depth-first walk over the tree that resolves bindings, expands ``Loop``
nodes, inlines ``Component`` template references and wires action
descriptors to a caller-supplied handler. It never raises on bad input:
unknown kinds become plain containers, unresolved bindings become blanks,
and unusable loops or templates contribute nothing.
"""

from collections.abc import Mapping
from typing import Any

from genui.core import UnknownComponentKind, get_logger
from .bindings import lookup, resolve_properties, strip_placeholder
from .models import ACTION_PROPERTIES, ActionDescriptor, ComponentKind, ComponentNode
from .templates import TemplateLibrary
from .widgets import CONTAINER, FRAGMENT, ActionHandler, Widget, bind_action


logger = get_logger(__name__)

MAX_DEPTH = 64
DEFAULT_ALIAS = "item"


class Interpreter:
    """Interprets component trees against a data context."""

    def __init__(
        self,
        on_action: ActionHandler | None = None,
        templates: TemplateLibrary | None = None,
        max_depth: int = MAX_DEPTH,
    ) -> None:
        self.on_action = on_action
        self.templates = templates or TemplateLibrary()
        self.max_depth = max_depth

    def interpret(self, node: ComponentNode, context: Mapping[str, Any], depth: int = 0) -> Widget:
        """Build the widget for ``node`` and its subtree."""
        if depth > self.max_depth:
            logger.warning("max_depth_exceeded", component_type=node.component_type, depth=depth)
            return Widget(FRAGMENT)

        kind = node.kind
        match kind:
            case ComponentKind.LOOP:
                return self._loop(node, context, depth)
            case ComponentKind.COMPONENT:
                return self._component(node, context, depth)
            case ComponentKind.UNKNOWN:
                logger.debug(
                    "unknown_component",
                    component_type=node.component_type,
                    code=UnknownComponentKind.code,
                )
                return Widget(CONTAINER, children=self._children(node.children, context, depth))

        props = resolve_properties(node.properties, context, skip=ACTION_PROPERTIES)
        if kind.is_leaf:
            if node.children:
                logger.debug("leaf_children_dropped", component_type=node.component_type)
            children: list[Widget] = []
        else:
            children = self._children(node.children, context, depth)

        widget = Widget(kind=kind.value, props=props, children=children)
        self._wire_actions(widget, node.properties)
        return widget

    def _children(self, nodes: list[ComponentNode], context: Mapping[str, Any], depth: int) -> list[Widget]:
        widgets: list[Widget] = []
        for child in nodes:
            built = self.interpret(child, context, depth + 1)
            if built.is_fragment:
                widgets.extend(built.children)
            else:
                widgets.append(built)
        return widgets

    def _loop(self, node: ComponentNode, context: Mapping[str, Any], depth: int) -> Widget:
        props = node.properties
        source = props.get("items")
        items = lookup(strip_placeholder(source), context) if isinstance(source, str) else source

        if not isinstance(items, list):
            logger.debug("loop_source_not_list", items=source)
            return Widget(FRAGMENT)

        alias = props.get("item_alias")
        separator = props.get("separator")
        expanded: list[Widget] = []

        for index, item in enumerate(items):
            scoped = self._scope(context, alias, item)
            expanded.extend(self._children(node.children, scoped, depth))
            if separator and index < len(items) - 1:
                expanded.append(Widget(ComponentKind.SIZED_BOX.value, props={"height": separator}))

        return Widget(FRAGMENT, children=expanded)

    @staticmethod
    def _scope(context: Mapping[str, Any], alias: Any, item: Any) -> dict[str, Any]:
        if isinstance(alias, str) and alias:
            return {**context, alias: item}
        scoped = {**context, DEFAULT_ALIAS: item}
        if isinstance(item, Mapping):
            scoped.update(item)
        return scoped

    def _component(self, node: ComponentNode, context: Mapping[str, Any], depth: int) -> Widget:
        props = node.properties
        template_id = props.get("template_id")
        template = self.templates.get(template_id) if isinstance(template_id, str) else None
        if template is None:
            logger.debug("unknown_template", template_id=template_id)
            return Widget(FRAGMENT)

        binding = props.get("data_binding")
        if isinstance(binding, Mapping):
            bound: Any = binding
        elif isinstance(binding, str):
            bound = lookup(strip_placeholder(binding), context)
        else:
            bound = None

        scoped = {**context, **bound} if isinstance(bound, Mapping) else context
        return self.interpret(template, scoped, depth + 1)

    def _wire_actions(self, widget: Widget, properties: Mapping[str, Any]) -> None:
        if self.on_action is None:
            return

        for key in ("on_click", "on_press"):
            descriptor = ActionDescriptor.coerce(properties.get(key))
            if descriptor is not None:
                widget.on_click = bind_action(self.on_action, descriptor)
                break

        descriptor = ActionDescriptor.coerce(properties.get("on_value_change"))
        if descriptor is not None:
            widget.on_value_change = bind_action(self.on_action, descriptor)


def interpret(
    node: ComponentNode | Mapping[str, Any],
    data_context: Mapping[str, Any] | None,
    on_action: ActionHandler | None = None,
    templates: TemplateLibrary | None = None,
) -> Widget:
    """
    Interpret a component tree into live UI.

    Args:
        node: Root node (model or wire dict)
        data_context: Values for bindings
        on_action: Receives the action descriptor each time an element is activated
        templates: Template library for ``Component`` nodes

    Returns:
        Root widget (a ``Fragment`` if the root itself expands to many)
    """
    root = node if isinstance(node, ComponentNode) else ComponentNode.model_validate(node)
    return Interpreter(on_action, templates).interpret(root, data_context or {})
