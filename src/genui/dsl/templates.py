"""
Named Component Templates
Reusable component trees referenced by ``Component`` nodes via ``template_id``.
"""

from typing import Any

from .models import ComponentNode


def _node(component_type: str, children: list[dict[str, Any]] | None = None, **properties: Any) -> dict[str, Any]:
    node: dict[str, Any] = {"component_type": component_type, "properties": properties}
    if children is not None:
        node["children"] = children
    return node


def _text(text: str, **style: Any) -> dict[str, Any]:
    return _node("Text", text=text, **style)


POI_CARD_ITEM = _node(
    "Row",
    [
        _node(
            "Image",
            source="{{image}}",
            width=100,
            height=100,
            border_radius=8,
            placeholder_text="无相关图片",
            placeholder_color="#E0E0E0",
        ),
        _node(
            "Column",
            [
                _text("{{name}}", font_size=16, font_weight="bold"),
                _text("{{type}}", icon="category"),
                _text("评分：{{rating}}", icon="star"),
                _text("人均：{{cost}}", icon="attach_money"),
                _text("今日营业：{{opentimeToday}}", icon="access_time"),
                _text("{{address}}", icon="location_on"),
            ],
            cross_axis_alignment="start",
        ),
    ],
    spacing=12,
    padding=[12, 12, 12, 12],
)

POI_LIST = _node(
    "Column",
    [
        _node(
            "Loop",
            [_node("Component", template_id="PoiCardItem", data_binding="poi")],
            items="pois",
            item_alias="poi",
            separator=8,
        )
    ],
    padding=[8, 8, 8, 8],
    cross_axis_alignment="start",
)

WEATHER_CARD = _node(
    "Card",
    [
        _node(
            "Column",
            [
                _node(
                    "Row",
                    [
                        _text("{{city}}", font_size=28, font_weight="bold", color="#FFFFFF"),
                        _text(
                            "{{date.year}}-{{date.month | padLeft(2, '0')}}-{{date.day | padLeft(2, '0')}} {{date.weekday}}",
                            font_size=14,
                            color="#C5CAE9",
                        ),
                    ],
                    main_axis_alignment="spaceBetween",
                ),
                _node("SizedBox", height=24),
                _node(
                    "Row",
                    [
                        _text("{{high}}°", font_size=64, font_weight="300", color="#FFFFFF"),
                        _node("SizedBox", width=12),
                        _node(
                            "Column",
                            [
                                _text("{{cond}}", font_size=20, font_weight="bold", color="#FFFFFF"),
                                _text("Low: {{low}}°", font_size=16, color="#E8EAF6"),
                            ],
                            cross_axis_alignment="start",
                        ),
                    ],
                    cross_axis_alignment="end",
                ),
                _node("SizedBox", height=16),
                _text("{{extra}}", font_size=14, color="#C5CAE9"),
            ],
            cross_axis_alignment="start",
        )
    ],
    shape_border_radius=24,
    elevation=8,
    padding=24,
    background_color="#5C6BC0",
)

MUSIC_CARD = _node(
    "Column",
    [
        _node("Image", source="{{music.cover}}", height=180, width="infinity", border_radius=12, color="#E0E0E0"),
        _node("SizedBox", height=12),
        _text("{{music.name}}", font_size=20, font_weight="bold", color="#000000"),
        _text("{{music.albumName}} · {{music.artists}}", font_size=14, color="#666666"),
        _node("Slider", value_binding="durationState.position", max_binding="durationState.total"),
        _node(
            "Row",
            [
                _node("IconButton", icon="skip_previous", size=36),
                _node("IconButton", icon="play_circle_fill", size=48, color="#2196F3"),
                _node("IconButton", icon="skip_next", size=36),
            ],
            main_axis_alignment="center",
        ),
    ],
    padding=[16, 16, 16, 16],
    cross_axis_alignment="center",
)


class TemplateLibrary:
    """Library of named component templates."""

    TEMPLATES: dict[str, dict[str, Any]] = {
        "PoiCardItem": POI_CARD_ITEM,
        "PoiList": POI_LIST,
        "WeatherCard": WEATHER_CARD,
        "MusicCard": MUSIC_CARD,
    }

    def __init__(self, extra: dict[str, ComponentNode | dict[str, Any]] | None = None) -> None:
        self._templates: dict[str, ComponentNode] = {
            template_id: ComponentNode.model_validate(tree) for template_id, tree in self.TEMPLATES.items()
        }
        for template_id, tree in (extra or {}).items():
            self.register(template_id, tree)

    def register(self, template_id: str, tree: ComponentNode | dict[str, Any]) -> None:
        """Add or replace a template."""
        node = tree if isinstance(tree, ComponentNode) else ComponentNode.model_validate(tree)
        self._templates[template_id] = node

    def get(self, template_id: str) -> ComponentNode | None:
        """Template by id, or None if unknown."""
        return self._templates.get(template_id)

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates
