"""Fast, tolerant JSON handling for model output and wire events."""

from typing import Any
import json

import msgspec
import orjson
from json_repair import repair_json

_decoder = msgspec.json.Decoder()


class JSONParseError(Exception):
    """JSON parsing failed."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


def strip_fences(text: str) -> str:
    """Drop a surrounding markdown code fence, if any."""
    if "```" not in text:
        return text

    if "```json" in text:
        start = text.find("```json") + 7
    else:
        start = text.find("```") + 3

    end = text.find("```", start)
    if end == -1:
        return text[start:].strip()
    return text[start:end].strip()


def extract_json_object(text: str) -> str | None:
    """
    Cut the outermost ``{...}`` span out of free text.

    Args:
        text: Model output, possibly wrapped in prose or fences

    Returns:
        The candidate JSON object text, or None if there is no object
    """
    working = strip_fences(text.strip())
    start = working.find("{")
    end = working.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return working[start : end + 1]


def extract_json(text: str, repair: bool = True) -> dict[str, Any]:
    """
    Extract and parse a JSON object from text with fallbacks.

    Tries msgspec first, then the standard library, then json_repair.

    Args:
        text: Text containing JSON
        repair: Attempt to repair invalid JSON with json_repair

    Returns:
        Parsed JSON dictionary

    Raises:
        JSONParseError: If parsing fails
    """
    json_str = extract_json_object(text)
    if json_str is None:
        raise JSONParseError("No JSON object found in text")

    try:
        result = _decoder.decode(json_str.encode("utf-8"))
    except msgspec.DecodeError as e:
        if not repair:
            raise JSONParseError(f"Invalid JSON: {e}", e) from e
        result = None

    if result is None:
        try:
            result = json.loads(json_str)
        except json.JSONDecodeError:
            try:
                result = json.loads(repair_json(json_str))
            except (ValueError, TypeError) as repair_error:
                raise JSONParseError(f"JSON repair failed: {repair_error}", repair_error) from repair_error

    if not isinstance(result, dict):
        raise JSONParseError(f"Expected object, got {type(result).__name__}")
    return result


def safe_json_dumps(obj: Any, **kwargs: Any) -> str:
    """
    Encode object to a JSON string.

    Compact output goes through orjson; ``indent`` falls back to stdlib.
    Non-ASCII text is kept as-is.
    """
    indent = kwargs.get("indent", 0)

    if indent == 0:
        try:
            return orjson.dumps(obj).decode("utf-8")
        except TypeError:
            # e.g. integers outside 64-bit range
            return msgspec.json.encode(obj).decode("utf-8")

    return json.dumps(obj, indent=indent, ensure_ascii=False)


def validate_json_size(data: str, max_size: int, name: str = "JSON") -> None:
    """
    Reject payloads larger than ``max_size`` bytes (UTF-8).

    Raises:
        JSONParseError: If size exceeds limit
    """
    size = len(data.encode("utf-8"))
    if size > max_size:
        raise JSONParseError(f"{name} size {size} bytes exceeds maximum {max_size} bytes")


def validate_json_depth(obj: Any, max_depth: int = 40, current_depth: int = 0) -> None:
    """
    Reject documents nested deeper than ``max_depth``.

    Raises:
        JSONParseError: If depth exceeds limit
    """
    if current_depth > max_depth:
        raise JSONParseError(f"JSON nesting depth {current_depth} exceeds maximum {max_depth}")

    if isinstance(obj, dict):
        for value in obj.values():
            validate_json_depth(value, max_depth, current_depth + 1)
    elif isinstance(obj, list):
        for item in obj:
            validate_json_depth(item, max_depth, current_depth + 1)
