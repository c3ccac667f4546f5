"""Deterministic generation without a model.

Used when the completion backend is ``mock`` and as the fallback when a
generation call times out or fails. Output is JSON text so that it goes
through the same parsing path as model output.
"""

from collections.abc import Mapping
from typing import Any

from genui.core import get_logger, safe_json_dumps
from .intent import Intent, IntentResult, VehicleSubtype


logger = get_logger(__name__)


def _node(component_type: str, children: list[dict[str, Any]] | None = None, **properties: Any) -> dict[str, Any]:
    node: dict[str, Any] = {"component_type": component_type, "properties": properties}
    if children is not None:
        node["children"] = children
    return node


def _text(text: str, **style: Any) -> dict[str, Any]:
    return _node("Text", text=text, **style)


def _centered_card(children: list[dict[str, Any]], **card: Any) -> dict[str, Any]:
    card = {"padding": 24, "shape_border_radius": 24, "elevation": 4, "width": 380, **card}
    return _node("Center", [_node("Card", [_node("Column", children, spacing=16)], **card)], background_color="#FFFFFF")


class MockGenerator:
    """Builds a fixed tree per intent."""

    def generate(
        self,
        intent_result: IntentResult,
        utterance: str,
        data_context: Mapping[str, Any] | None = None,
    ) -> str:
        """Component tree for the turn, as JSON text."""
        context = data_context or {}

        match intent_result.intent:
            case Intent.WEATHER:
                tree = self._weather()
            case Intent.MUSIC:
                tree = self._music()
            case Intent.POI:
                tree = self._poi(intent_result)
            case Intent.ROUTE_PLANNING:
                tree = self._route(context)
            case Intent.IMAGE:
                tree = self._image(utterance)
            case Intent.VEHICLE_CONTROL:
                tree = self._vehicle(intent_result.vehicle_subtype or VehicleSubtype.GENERAL)
            case _:
                tree = self._chat(utterance)

        logger.info("mock_generated", intent=intent_result.intent.value)
        return safe_json_dumps(tree)

    def _weather(self) -> dict[str, Any]:
        return _centered_card(
            [
                _node(
                    "Row",
                    [
                        _text("{{city}}", font_size=24, font_weight="bold", color="#333333"),
                        _text("{{date.year}}-{{date.month | padLeft(2, '0')}}-{{date.day | padLeft(2, '0')}} {{date.weekday}}", font_size=16, color="#E65100"),
                    ],
                    main_axis_alignment="spaceBetween",
                ),
                _node(
                    "Row",
                    [
                        _text("☁️", font_size=64),
                        _text("{{weather.current.tempC}}°C", font_size=72, font_weight="bold", color="#E65100"),
                    ],
                    main_axis_alignment="center",
                    spacing=16,
                ),
                _text("{{cond}} {{low}}° ~ {{high}}°", font_size=20, font_weight="bold", color="#4E342E"),
                _text(
                    "湿度: {{weather.current.humidity}}% 风向: {{weather.current.windDir}} {{weather.current.windPower}}级",
                    font_size=14,
                    color="#5D4037",
                ),
                _text("{{extra}}", font_size=14, color="#5D4037"),
            ],
            background_color="#FFCC80",
            elevation=8,
        )

    def _music(self) -> dict[str, Any]:
        return _node(
            "Center",
            [
                _node(
                    "Card",
                    [_node("Component", template_id="MusicCard")],
                    background_color="#6200EA",
                    padding=12,
                    shape_border_radius=16,
                    elevation=8,
                    width=280,
                )
            ],
        )

    def _poi(self, intent_result: IntentResult) -> dict[str, Any]:
        keyword = intent_result.extracted_keyword or "精选好店"
        return _node(
            "Center",
            [
                _node(
                    "Column",
                    [
                        _text(f"附近的{keyword}", font_size=28, font_weight="bold", color="#2E7D32"),
                        _node(
                            "Loop",
                            [_node("Component", template_id="PoiCardItem", data_binding="poi")],
                            items="{{pois}}",
                            item_alias="poi",
                            separator=8,
                        ),
                    ],
                    spacing=12,
                    padding=16,
                    width=380,
                )
            ],
            background_color="#FFFFFF",
        )

    def _route(self, context: Mapping[str, Any]) -> dict[str, Any]:
        route = context.get("route")
        steps = route.get("steps") if isinstance(route, Mapping) else None
        if not isinstance(steps, list) or not steps:
            steps = ["从人民广场出发", "驶入G2京沪高速"]
        return _centered_card(
            [
                _text("🚗 驾车路线", font_size=20, font_weight="bold", color="#1565C0"),
                _node(
                    "Row",
                    [
                        _text("{{route.origin}}", font_size=18, font_weight="bold", color="#333333"),
                        _text("➝", font_size=18, color="#999999"),
                        _text("{{route.destination}}", font_size=18, font_weight="bold", color="#333333"),
                    ],
                    main_axis_alignment="spaceBetween",
                ),
                _node(
                    "Row",
                    [
                        _node("Column", [_text("距离", font_size=12), _text("{{route.distance}}", font_size=24, font_weight="bold")]),
                        _node("Column", [_text("预计耗时", font_size=12), _text("{{route.duration}}", font_size=24, font_weight="bold")]),
                    ],
                    spacing=20,
                ),
                _text("\n".join(f"• {step}" for step in steps), font_size=14, color="#546E7A", max_lines=10),
            ],
            background_color="#E3F2FD",
        )

    def _image(self, utterance: str) -> dict[str, Any]:
        subject = "puppy" if "小狗" in utterance else "cat" if "猫" in utterance else "cartoon"
        return _centered_card(
            [
                _text("为您生成的卡通图片:", font_size=20, font_weight="bold", color="#333333"),
                _node(
                    "Image",
                    source=f"https://loremflickr.com/800/600/{subject}",
                    width="100%",
                    height=320,
                    content_fit="cover",
                    border_radius=16,
                ),
            ],
            background_color="#FFFFFF",
        )

    def _vehicle(self, subtype: VehicleSubtype) -> dict[str, Any]:
        match subtype:
            case VehicleSubtype.AC:
                return _node("Center", [_node("car_control_ac")])
            case VehicleSubtype.WINDOW:
                return _node("Center", [_node("car_control_window")])
            case VehicleSubtype.SEAT:
                return _node("Center", [_node("car_control_seat")])

        buttons = [
            ("❄️ 空调控制", "ac_control"),
            ("🪟 车窗控制", "window_control"),
            ("💺 座椅控制", "seat_control"),
            ("💡 灯光控制", "light_control"),
        ]
        return _centered_card(
            [_text("车控", font_size=24, font_weight="bold", color="#333333")]
            + [
                _node("Button", text=label, width="100%", height=48, border_radius=12, on_click={"action_type": action})
                for label, action in buttons
            ]
        )

    def _chat(self, utterance: str) -> dict[str, Any]:
        return _node(
            "Center",
            [
                _node(
                    "Card",
                    [
                        _node(
                            "Column",
                            [
                                _text("你好！很高兴为您服务。", font_size=16, color="#333333"),
                                _text(utterance, font_size=14, color="#666666"),
                            ],
                            spacing=8,
                        )
                    ],
                    padding=16,
                    shape_border_radius=16,
                    elevation=4,
                )
            ],
            background_color="#FFFFFF",
        )


__all__ = ["MockGenerator"]
