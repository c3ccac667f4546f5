"""Binding resolution.

Property strings may embed ``{{path}}`` placeholders (optionally piped
through ``padLeft(n, 'c')``) or the older ``${path}`` form. Resolution is
total: a path that does not resolve renders as an empty string.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from genui.core import UnresolvedBinding, get_logger


logger = get_logger(__name__)

_MISSING = object()

_MUSTACHE = re.compile(r"\{\{(.*?)\}\}")
_DOLLAR = re.compile(r"\$\{(.*?)\}")
_PAD_LEFT = re.compile(r"padLeft\(\s*(\d+)\s*,\s*'(.)'\s*\)")


def _walk(path: str, source: Any) -> Any:
    current = source
    for segment in path.split("."):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        elif (
            isinstance(current, Sequence)
            and not isinstance(current, str)
            and segment.lstrip("-").isdigit()
            and -len(current) <= int(segment) < len(current)
        ):
            current = current[int(segment)]
        else:
            return _MISSING
    return current


def lookup(path: str, context: Mapping[str, Any]) -> Any:
    """
    Resolve a dot path against a data context.

    A ``data.`` prefix is retried without the prefix.

    Returns:
        The value, or None when the path does not resolve
    """
    path = path.strip()
    if not path:
        return None

    value = _walk(path, context)
    if value is _MISSING and path.startswith("data."):
        value = _walk(path[5:], context)

    if value is _MISSING:
        logger.debug("unresolved_binding", path=path, code=UnresolvedBinding.code)
        return None
    return value


def strip_placeholder(expression: str) -> str:
    """``"{{pois}}"`` -> ``"pois"``; bare paths pass through."""
    match = _MUSTACHE.fullmatch(expression.strip())
    return match.group(1).strip() if match else expression.strip()


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render_mustache(match: re.Match[str], context: Mapping[str, Any]) -> str:
    expression = match.group(1)
    path, _, pipe = expression.partition("|")
    text = _stringify(lookup(path, context))

    pipe = pipe.strip()
    if pipe.startswith("padLeft"):
        args = _PAD_LEFT.match(pipe)
        if args:
            text = text.rjust(int(args.group(1)), args.group(2))
    return text


def resolve_value(value: Any, context: Mapping[str, Any]) -> Any:
    """
    Resolve placeholders in a property value.

    Non-string values are returned unchanged.
    """
    if not isinstance(value, str):
        return value

    if "{{" in value and "}}" in value:
        return _MUSTACHE.sub(lambda m: _render_mustache(m, context), value)

    if "${" in value and "}" in value:
        return _DOLLAR.sub(lambda m: _stringify(lookup(m.group(1), context)), value)

    return value


def resolve_properties(properties: Mapping[str, Any], context: Mapping[str, Any], skip: Sequence[str] = ()) -> dict[str, Any]:
    """Resolve every property value, leaving the ``skip`` keys untouched."""
    return {
        key: value if key in skip else resolve_value(value, context)
        for key, value in properties.items()
    }
