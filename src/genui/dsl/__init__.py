"""Component tree DSL: model, bindings, templates and interpreter."""

from .models import (
    ACTION_PROPERTIES,
    ActionDescriptor,
    ComponentKind,
    ComponentNode,
    LEAF_KINDS,
    parse_component_tree,
    validate_component_tree,
)
from .bindings import lookup, resolve_value, resolve_properties
from .templates import TemplateLibrary
from .widgets import ActionHandler, Widget
from .interpreter import Interpreter, interpret

__all__ = [
    "ACTION_PROPERTIES",
    "ActionDescriptor",
    "ActionHandler",
    "ComponentKind",
    "ComponentNode",
    "Interpreter",
    "LEAF_KINDS",
    "TemplateLibrary",
    "Widget",
    "interpret",
    "lookup",
    "parse_component_tree",
    "resolve_properties",
    "resolve_value",
    "validate_component_tree",
]
