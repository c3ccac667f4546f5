"""
Generation Prompts
Per-domain style guides and prompt assembly for component-tree generation.
"""

from collections.abc import Callable, Mapping
from typing import Any

from genui.core import safe_json_dumps
from genui.dsl import ComponentNode
from .intent import Intent, IntentResult, VehicleSubtype


# ============================================================================
# Base section
# ============================================================================

COMPONENT_SCHEMA = """
=== COMPONENT TREE (JSON) ===

type Component = {
  component_type: string;
  properties?: Record<string, any>;
  children?: Component[];
}

CONTAINERS: Column, Row, Card, Center, Align, ConstrainedBox, Padding, SizedBox, LinearGradient
LEAVES (no children): Text, Image, Icon, IconButton, Button, Slider, Spacer
HOST CARDS (leaves, rendered natively): car_control_ac, car_control_seat, car_control_window

STRUCTURAL:
- Loop: {"items": "{{pois}}", "item_alias": "poi", "separator": 8}; children repeat once per item
- Component: {"template_id": "PoiCardItem", "data_binding": "poi"}
  Templates: PoiCardItem, PoiList, WeatherCard, MusicCard

COMMON PROPERTIES:
- Text: text (required), font_size, font_weight, color, max_lines
- Image: source (required URL), width, height, border_radius, content_fit
- Card: background_color, padding, shape_border_radius, elevation, width
- Row/Column: main_axis_alignment, cross_axis_alignment, spacing, padding
- Button: text, background_color, text_color, border_radius, on_click

BINDINGS: "{{path.to.value}}" is filled from the data context, e.g. "{{weather.current.tempC}}°C".
Pipe "| padLeft(2, '0')" pads a value on the left.

ACTIONS: {"on_click": {"action_type": "toast", "payload": {"message": "..."}}}
"""

BASE_RULES = """
=== RULES ===
1. Output ONLY one valid JSON object. NO markdown, NO explanations.
2. The root is a single component.
3. Fill the UI from the data context; text the user asks for explicitly always wins.
4. Keep to the component vocabulary above.
"""

REPLACEMENT_RULE = (
    "Apply the request to the CURRENT TREE and return the COMPLETE replacement tree. "
    "Never return a diff, a fragment or only the changed part."
)


def _base_section() -> str:
    return "You are a UI generation assistant that turns requests into component trees.\n" + COMPONENT_SCHEMA + BASE_RULES


# ============================================================================
# Domain guides
# ============================================================================


def _weather_guide(result: IntentResult) -> str:
    return """
=== WEATHER GUIDE ===
- Warm palette: card '#FFCC80', accent '#E65100', root background '#FFFFFF'
- Card width 340, centered
- Top: city (left) and date (right); middle: condition icon and large temperature;
  bottom: condition text plus humidity and wind
- Bind to the data context: {{city}}, {{high}}, {{low}}, {{cond}}, {{weather.current.tempC}},
  {{weather.current.humidity}}, {{weather.current.windDir}}
"""


def _music_guide(result: IntentResult) -> str:
    return """
=== MUSIC GUIDE ===
- Player card: cover image on top, title and artist below, a Slider for progress,
  a Row of IconButtons (skip_previous, play_circle_fill, skip_next)
- Deep purple card '#6200EA', white text
- The MusicCard template binds {{music.cover}}, {{music.name}}, {{music.artists}}
"""


def _poi_guide(result: IntentResult) -> str:
    keyword = result.extracted_keyword or result.extracted_entities.get("keyword", "")
    hint = f"\n- The user is looking for: {keyword}" if keyword else ""
    return f"""
=== POI GUIDE ===
- A Column titled with the search, then the places
- Repeat places with Loop over "{{{{pois}}}}" (item_alias "poi") and a Component
  with template_id "PoiCardItem" and data_binding "poi"; separator 8
- Green palette: '#E8F5E9' cards, '#1B5E20' titles{hint}
"""


def _route_guide(result: IntentResult) -> str:
    entities = result.extracted_entities
    ends = ""
    if entities.get("origin") or entities.get("destination"):
        ends = f"\n- From {entities.get('origin', '?')} to {entities.get('destination', '?')}"
    return f"""
=== ROUTE GUIDE ===
- Blue card '#E3F2FD', headline '🚗 驾车路线'
- Row: origin ➝ destination; Row of two Columns: distance and estimated duration
- Steps as a bulleted Text (max_lines 10), bound to {{{{route.steps}}}} when present{ends}
"""


def _image_guide(result: IntentResult) -> str:
    description = result.extracted_entities.get("description", "")
    subject = f"\n- Subject: {description}" if description else ""
    return f"""
=== IMAGE GUIDE ===
- White card, centered, a short caption Text above one Image
- Image: width "100%", height 320, content_fit "cover", border_radius 16{subject}
"""


_HOST_CARDS = {
    VehicleSubtype.AC: "car_control_ac",
    VehicleSubtype.WINDOW: "car_control_window",
    VehicleSubtype.SEAT: "car_control_seat",
}


def _vehicle_guide(result: IntentResult) -> str:
    subtype = result.vehicle_subtype or VehicleSubtype.GENERAL
    host = _HOST_CARDS.get(subtype)
    if host:
        body = (
            f'- Use the host card {{"component_type": "{host}"}} as the main element;\n'
            "  it renders natively, do not rebuild its controls\n"
            "- Optionally wrap it in a Center with a short Text title"
        )
    else:
        body = (
            "- A Card titled '车控' with one Button per control (空调, 车窗, 座椅, 灯光)\n"
            '- Each Button carries on_click {"action_type": "<area>_control"}'
        )
    return f"\n=== VEHICLE CONTROL GUIDE ({subtype.value}) ===\n{body}\n"


def _chat_guide(result: IntentResult) -> str:
    return """
=== CHAT GUIDE ===
- A simple Card (padding 16, shape_border_radius 16) holding the reply as Text
- White background, dark grey text '#333333'
"""


def _default_guide(result: IntentResult) -> str:
    return """
=== GUIDE ===
- Clean modern layout on a white background; pick the components that best answer the request
"""


GUIDES: dict[Intent, Callable[[IntentResult], str]] = {
    Intent.WEATHER: _weather_guide,
    Intent.MUSIC: _music_guide,
    Intent.POI: _poi_guide,
    Intent.ROUTE_PLANNING: _route_guide,
    Intent.IMAGE: _image_guide,
    Intent.VEHICLE_CONTROL: _vehicle_guide,
    Intent.CHAT: _chat_guide,
}


def select_guide(intent: Any) -> Callable[[IntentResult], str]:
    """Guide for an intent; unmapped or unknown intents get the default."""
    return GUIDES.get(Intent.from_wire(intent), _default_guide)


# ============================================================================
# Assembly
# ============================================================================


def build_generation_prompt(
    intent_result: IntentResult,
    utterance: str,
    data_context: Mapping[str, Any] | None,
    previous_tree: ComponentNode | Mapping[str, Any] | None = None,
) -> str:
    """
    Build the generation prompt for one turn.

    Args:
        intent_result: Resolved intent (selects the domain guide)
        utterance: The user's request
        data_context: Values the tree may bind to
        previous_tree: Tree currently on screen, if any

    Returns:
        Complete prompt
    """
    parts = [_base_section(), select_guide(intent_result.intent)(intent_result)]

    context = safe_json_dumps(dict(data_context or {}), indent=2)
    parts.append(f"\n=== DATA CONTEXT ===\n{context}")

    if previous_tree is not None:
        tree = previous_tree.to_dict() if isinstance(previous_tree, ComponentNode) else dict(previous_tree)
        parts.append(f"\n=== CURRENT TREE ===\n{safe_json_dumps(tree, indent=2)}\n\n{REPLACEMENT_RULE}")

    parts.append(f"\n=== REQUEST ===\n{utterance}\n\nGenerate the component tree:")
    return "\n".join(parts)


__all__ = ["GUIDES", "REPLACEMENT_RULE", "build_generation_prompt", "select_guide"]
