"""Tests for intent resolution, sticky intent, prompts and mock generation."""

import asyncio
import time

import pytest
from unittest.mock import patch

from genui.agents import (
    ContextConfig,
    Intent,
    IntentResolver,
    IntentResult,
    MockGenerator,
    VehicleSubtype,
    apply_sticky_intent,
    build_generation_prompt,
    quick_classify,
)
from genui.agents.intent import (
    apply_context_rules,
    build_classifier_prompt,
    is_ambiguous_followup,
    parse_classification,
)
from genui.agents.sticky import STICKY_REASONING
from genui.core import ClassificationFailure
from genui.dsl import ComponentNode, parse_component_tree
from genui.session import ConversationTurn


def turn(query: str, intent: str | None, response: str = "ok") -> ConversationTurn:
    return ConversationTurn(query=query, response=response, timestamp=time.time(), intent=intent)


# ============================================================================
# Intent
# ============================================================================

class TestIntent:
    """Test intent labels."""

    def test_legacy_aliases(self):
        assert Intent.from_wire("cartoon_image") is Intent.IMAGE
        assert Intent.from_wire("car_control") is Intent.VEHICLE_CONTROL
        assert Intent.from_wire("WEATHER") is Intent.WEATHER

    def test_unknown_label(self):
        assert Intent.from_wire("dance") is Intent.UNKNOWN
        assert Intent.from_wire(None) is Intent.UNKNOWN

    def test_concrete(self):
        assert Intent.POI.is_concrete
        assert not Intent.CHAT.is_concrete
        assert not Intent.UNKNOWN.is_concrete


class TestQuickClassify:
    """Test keyword classification."""

    @pytest.mark.parametrize(
        "utterance,intent",
        [
            ("今天天气怎么样", Intent.WEATHER),
            ("播放周杰伦的歌", Intent.MUSIC),
            ("附近有什么咖啡店", Intent.POI),
            ("导航去虹桥机场", Intent.ROUTE_PLANNING),
            ("帮我画一张卡通图片", Intent.IMAGE),
            ("打开车窗", Intent.VEHICLE_CONTROL),
            ("你好呀", Intent.CHAT),
        ],
    )
    def test_keywords(self, utterance, intent):
        assert quick_classify(utterance).intent is intent

    def test_card_edit_is_not_image(self):
        assert quick_classify("把卡片颜色改成绿色").intent is not Intent.IMAGE

    def test_vehicle_subtypes(self):
        assert quick_classify("打开空调").vehicle_subtype is VehicleSubtype.AC
        assert quick_classify("座椅加热").vehicle_subtype is VehicleSubtype.SEAT
        assert quick_classify("打开车窗").vehicle_subtype is VehicleSubtype.WINDOW
        assert quick_classify("开灯").vehicle_subtype is VehicleSubtype.LIGHT

    def test_confidences(self):
        assert quick_classify("今天天气怎么样").confidence == 0.5
        assert quick_classify("你好呀").confidence == 0.3


class TestClassification:
    """Test classifier prompt and reply parsing."""

    def test_reply_normalized(self):
        result = parse_classification(
            '```json\n{"intent": "car_control", "confidence": 1.7, "carControlSubType": "seat", '
            '"extractedKeyword": "座椅"}\n```'
        )

        assert result.intent is Intent.VEHICLE_CONTROL
        assert result.confidence == 1.0
        assert result.vehicle_subtype is VehicleSubtype.SEAT
        assert result.extracted_keyword == "座椅"

    def test_reply_unknown_subtype(self):
        result = parse_classification('{"intent": "vehicle_control", "vehicleSubtype": "trunk"}')
        assert result.vehicle_subtype is VehicleSubtype.GENERAL

    def test_reply_not_json(self):
        with pytest.raises(ClassificationFailure):
            parse_classification("I think it's about weather")

    def test_prompt_weights_recent_turns(self):
        history = [turn("查天气", "weather"), turn("改成绿色", "weather", response="x" * 400)]
        prompt = build_classifier_prompt("再大一点", history, ContextConfig())

        assert "weight: 1.00" in prompt
        assert "weight: 1.50" in prompt
        assert "x" * 300 + "..." in prompt
        assert '"再大一点"' in prompt

    def test_prompt_respects_max_turns(self):
        history = [turn(f"q{i}", "chat") for i in range(5)]
        prompt = build_classifier_prompt("hi", history, ContextConfig(max_turns=2))

        assert "q4" in prompt
        assert "q2" not in prompt

    def test_prompt_without_context(self):
        prompt = build_classifier_prompt("hi", [turn("q0", "chat")], ContextConfig(enable_context_awareness=False))
        assert "q0" not in prompt


class TestIntentResolver:
    """Test resolution with and without a classifier."""

    @pytest.mark.asyncio
    async def test_keyword_mode(self):
        result = await IntentResolver().resolve("今天天气怎么样")
        assert result.intent is Intent.WEATHER

    @pytest.mark.asyncio
    async def test_classifier_reply_used(self, fake_completion):
        completion = fake_completion('{"intent": "poi", "confidence": 0.95, "extractedKeyword": "咖啡"}')
        result = await IntentResolver(completion).resolve("想喝咖啡")

        assert result.intent is Intent.POI
        assert result.extracted_keyword == "咖啡"
        assert "想喝咖啡" in completion.prompts[0]

    @pytest.mark.asyncio
    async def test_malformed_reply_falls_back(self, fake_completion):
        result = await IntentResolver(fake_completion("no idea")).resolve("hmm")

        assert result.intent is Intent.UNKNOWN
        assert result.confidence == 0.3

    @pytest.mark.asyncio
    async def test_classifier_error_falls_back(self, fake_completion):
        completion = fake_completion("", error=RuntimeError("down"))
        with patch("genui.agents.intent.logger") as mock_logger:
            result = await IntentResolver(completion).resolve("hmm")

        assert result.intent is Intent.UNKNOWN
        assert result.confidence == 0.3
        assert mock_logger.warning.call_args[0][0] == "classification_failed"

    @pytest.mark.asyncio
    async def test_classifier_timeout_falls_back(self, fake_completion):
        completion = fake_completion('{"intent": "poi"}', delay=1.0)
        result = await IntentResolver(completion, timeout=0.01).resolve("hmm")

        assert result.intent is Intent.UNKNOWN


class TestContextRules:
    """Test cross-turn continuity."""

    def test_followup_after_chat_is_chat(self):
        fresh = IntentResult(intent=Intent.IMAGE, confidence=0.8)
        result = apply_context_rules(fresh, "把它改成红色", [turn("你好", "chat")])

        assert result.intent is Intent.CHAT

    def test_edit_continues_concrete_intent(self):
        fresh = IntentResult(intent=Intent.CHAT, confidence=0.6)
        result = apply_context_rules(fresh, "把颜色改成绿色", [turn("查天气", "weather")])

        assert result.intent is Intent.WEATHER

    def test_new_request_stands(self):
        fresh = IntentResult(intent=Intent.MUSIC, confidence=0.9)
        result = apply_context_rules(fresh, "播放音乐", [turn("查天气", "weather")])

        assert result.intent is Intent.MUSIC

    def test_no_history(self):
        fresh = IntentResult(intent=Intent.IMAGE, confidence=0.8)
        assert apply_context_rules(fresh, "把它改成红色", []) is fresh

    def test_unknown_origin_history_ignored(self):
        fresh = IntentResult(intent=Intent.IMAGE, confidence=0.8)
        assert apply_context_rules(fresh, "把它改成红色", [turn("x", None)]) is fresh

    def test_ambiguous_followup_detection(self):
        assert is_ambiguous_followup("把它改大一点")
        assert not is_ambiguous_followup("帮我画一只猫")


# ============================================================================
# Sticky intent
# ============================================================================

class TestStickyIntent:
    """Test the sticky-intent override."""

    def test_weather_recolor_sticks(self):
        fresh = IntentResult(intent=Intent.CHAT, confidence=0.95)
        result = apply_sticky_intent(fresh, "weather", "把颜色改成绿色")

        assert result.intent is Intent.WEATHER
        assert result.sticky is True
        assert result.reasoning == STICKY_REASONING.format(intent="weather")

    def test_low_confidence_sticks(self):
        fresh = IntentResult(intent=Intent.MUSIC, confidence=0.6)
        assert apply_sticky_intent(fresh, "poi", "change the title").intent is Intent.POI

    def test_confident_new_domain_wins(self):
        fresh = IntentResult(intent=Intent.MUSIC, confidence=0.95)
        result = apply_sticky_intent(fresh, "weather", "换成周杰伦的歌")

        assert result is fresh

    def test_no_modification_keyword(self):
        fresh = IntentResult(intent=Intent.CHAT, confidence=0.4)
        assert apply_sticky_intent(fresh, "weather", "谢谢") is fresh

    def test_previous_not_concrete(self):
        fresh = IntentResult(intent=Intent.CHAT, confidence=0.4)
        assert apply_sticky_intent(fresh, "chat", "改成红色") is fresh
        assert apply_sticky_intent(fresh, None, "改成红色") is fresh

    def test_threshold_configurable(self):
        fresh = IntentResult(intent=Intent.MUSIC, confidence=0.8)
        assert apply_sticky_intent(fresh, "weather", "改成红色", threshold=0.5) is fresh


# ============================================================================
# Prompts and mock generation
# ============================================================================

class TestPrompts:
    """Test generation prompt assembly."""

    def test_sections(self):
        result = IntentResult(intent=Intent.WEATHER, confidence=0.9)
        prompt = build_generation_prompt(result, "查天气", {"city": "上海"})

        assert "DATA CONTEXT" in prompt
        assert "上海" in prompt
        assert "查天气" in prompt
        assert "CURRENT TREE" not in prompt

    def test_previous_tree_requires_full_replacement(self):
        previous = ComponentNode.model_validate({"component_type": "Text", "properties": {"text": "old"}})
        prompt = build_generation_prompt(IntentResult(intent=Intent.WEATHER), "改成绿色", {}, previous)

        assert "CURRENT TREE" in prompt
        assert '"old"' in prompt
        assert "COMPLETE" in prompt


class TestMockGenerator:
    """Test deterministic generation."""

    @pytest.mark.parametrize("intent", list(Intent))
    def test_every_intent_parses(self, intent):
        raw = MockGenerator().generate(IntentResult(intent=intent), "你好", {})
        assert isinstance(parse_component_tree(raw), ComponentNode)

    def test_weather_binds_context(self):
        tree = parse_component_tree(MockGenerator().generate(IntentResult(intent=Intent.WEATHER), "天气"))
        texts = [n.properties.get("text") for n in tree.walk()]

        assert "{{city}}" in texts
        assert "{{weather.current.tempC}}°C" in texts

    def test_poi_uses_keyword(self):
        result = IntentResult(intent=Intent.POI, extracted_keyword="咖啡")
        tree = parse_component_tree(MockGenerator().generate(result, "附近的咖啡"))

        assert any(n.properties.get("text") == "附近的咖啡" for n in tree.walk())
        assert any(n.component_type == "Loop" for n in tree.walk())

    def test_vehicle_host_card(self):
        result = IntentResult(intent=Intent.VEHICLE_CONTROL, vehicle_subtype=VehicleSubtype.AC)
        tree = parse_component_tree(MockGenerator().generate(result, "打开空调"))

        assert tree.children[0].component_type == "car_control_ac"

    def test_vehicle_general_buttons(self):
        result = IntentResult(intent=Intent.VEHICLE_CONTROL, vehicle_subtype=VehicleSubtype.GENERAL)
        tree = parse_component_tree(MockGenerator().generate(result, "车控"))
        buttons = [n for n in tree.walk() if n.component_type == "Button"]

        assert len(buttons) == 4
        assert buttons[0].properties["on_click"] == {"action_type": "ac_control"}
