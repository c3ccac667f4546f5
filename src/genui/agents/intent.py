"""
Intent Resolver
Classifies an utterance into a UI domain, using the conversation so far.
"""

import asyncio
from collections.abc import Sequence
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from genui.core import ClassificationFailure, JSONParseError, extract_json, get_logger
from genui.session import ConversationTurn


logger = get_logger(__name__)


class Intent(str, Enum):
    """UI domains a turn can resolve to."""

    WEATHER = "weather"
    MUSIC = "music"
    POI = "poi"
    ROUTE_PLANNING = "route_planning"
    IMAGE = "image"
    VEHICLE_CONTROL = "vehicle_control"
    CHAT = "chat"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: Any) -> "Intent":
        """Map a classifier label (including legacy aliases) to an intent."""
        if isinstance(value, Intent):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        label = value.strip().lower()
        label = _ALIASES.get(label, label)
        try:
            return cls(label)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_concrete(self) -> bool:
        """A real domain, as opposed to chat/unknown."""
        return self not in (Intent.CHAT, Intent.UNKNOWN)


_ALIASES = {
    "cartoon_image": Intent.IMAGE.value,
    "car_control": Intent.VEHICLE_CONTROL.value,
}


class VehicleSubtype(str, Enum):
    AC = "ac"
    WINDOW = "window"
    SEAT = "seat"
    LIGHT = "light"
    GENERAL = "general"


class IntentResult(BaseModel):
    """Outcome of intent resolution for one turn."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    extracted_entities: dict[str, Any] = Field(default_factory=dict)
    extracted_keyword: str = ""
    vehicle_subtype: VehicleSubtype | None = None
    reasoning: str = ""
    sticky: bool = False


class ContextConfig(BaseModel):
    """How much conversation the classifier sees."""

    max_turns: int = Field(default=10, gt=0)
    enable_context_awareness: bool = True


class CompletionService(Protocol):
    async def ainvoke(self, prompt: str) -> str: ...


CLASSIFIER_SYSTEM_PROMPT = (
    "You are a professional intent recognition assistant. Analyze the user's intent "
    "from the dialogue history and its semantics rather than by matching keywords. "
    "Return the result strictly as a JSON object."
)

FALLBACK_CONFIDENCE = 0.3
QUICK_MATCH_CONFIDENCE = 0.5


def fallback_result(reason: str) -> IntentResult:
    return IntentResult(intent=Intent.UNKNOWN, confidence=FALLBACK_CONFIDENCE, reasoning=reason)


# ============================================================================
# Language signals
# ============================================================================

# Explicit request verbs that open a new topic
DOMAIN_VERBS = ("画", "生成", "绘制", "创建", "播放", "搜索", "导航", "规划", "我想听", "查一下")

# Edits to what is already on screen
MODIFICATION_WORDS = (
    "改成", "换成", "修改", "调整", "变为", "大一点", "小一点", "换个", "颜色", "背景", "字体", "样式",
    "change", "make it", "bigger", "smaller", "color", "colour", "background",
)

# Pointers back at the previous answer
PRONOUNS = ("它", "这个", "那个", "这张", "把", "卡片", "界面", "this", "that", " it")


def _contains_any(text: str, words: Sequence[str]) -> bool:
    return any(word in text for word in words)


def is_ambiguous_followup(utterance: str) -> bool:
    """Modification or pronoun language with no explicit request verb."""
    text = utterance.lower()
    if _contains_any(text, DOMAIN_VERBS):
        return False
    return _contains_any(text, MODIFICATION_WORDS) or _contains_any(text, PRONOUNS)


def is_modification_request(utterance: str) -> bool:
    """Modification language with no competing request verb."""
    text = utterance.lower()
    return _contains_any(text, MODIFICATION_WORDS) and not _contains_any(text, DOMAIN_VERBS)


# ============================================================================
# Keyword classifier
# ============================================================================

_VEHICLE_SUBTYPE_WORDS: tuple[tuple[VehicleSubtype, tuple[str, ...]], ...] = (
    (VehicleSubtype.AC, ("空调", "温度", "制冷", "制热")),
    (VehicleSubtype.WINDOW, ("车窗",)),
    (VehicleSubtype.SEAT, ("座椅",)),
    (VehicleSubtype.LIGHT, ("灯光", "车灯", "开灯", "关灯", "大灯", "雾灯")),
)

_VEHICLE_WORDS = ("空调", "温度", "调节", "制冷", "制热", "车窗", "座椅", "灯光", "车控", "开灯", "关灯")


def _vehicle_subtype(text: str) -> VehicleSubtype:
    for subtype, words in _VEHICLE_SUBTYPE_WORDS:
        if _contains_any(text, words):
            return subtype
    return VehicleSubtype.GENERAL


def quick_classify(utterance: str) -> IntentResult:
    """
    Keyword classification without context.

    Used by mock generation and when no completion backend is configured.
    Matches get confidence 0.5; anything else is chat at 0.3.
    """
    text = utterance.lower()

    def matched(intent: Intent, reason: str, **extra: Any) -> IntentResult:
        return IntentResult(
            intent=intent,
            confidence=QUICK_MATCH_CONFIDENCE,
            reasoning=f"keyword match: {reason}",
            **extra,
        )

    if _contains_any(text, ("天气", "气温", "下雨", "晴天")):
        return matched(Intent.WEATHER, "weather")
    if _contains_any(text, ("音乐", "歌曲", "播放", "歌手")):
        return matched(Intent.MUSIC, "music")
    if _contains_any(text, ("附近", "查找", "咖啡", "餐厅")):
        return matched(Intent.POI, "poi")
    if _contains_any(text, ("去", "到", "导航", "路线")):
        return matched(Intent.ROUTE_PLANNING, "route")

    # "卡片"/"图片" alone are just names for whatever is on screen
    card_edit = _contains_any(text, ("卡片", "图片")) and _contains_any(
        text, ("改成", "换成", "颜色", "字体", "大小", "样式", "背景", "修改")
    )
    generates = _contains_any(text, ("画", "生成", "绘制"))
    image_word = _contains_any(text, ("图片", "卡通"))
    edits = _contains_any(text, ("改成", "换成", "修改", "调整"))
    if generates and image_word and not edits and not card_edit:
        return matched(Intent.IMAGE, "image generation")

    if _contains_any(text, _VEHICLE_WORDS):
        subtype = _vehicle_subtype(text)
        return matched(Intent.VEHICLE_CONTROL, f"vehicle control ({subtype.value})", vehicle_subtype=subtype)

    return IntentResult(intent=Intent.CHAT, confidence=FALLBACK_CONFIDENCE, reasoning="keyword match: none, chat")


# ============================================================================
# Classifier prompt and reply
# ============================================================================


def build_classifier_prompt(
    utterance: str,
    history: Sequence[ConversationTurn],
    config: ContextConfig,
) -> str:
    """Prompt listing recent turns (newest weighted highest) and the utterance."""
    parts = [
        "# Intent recognition",
        "Identify the user's real intent from the current input and the dialogue so far.",
        "",
        "## Principles",
        "1. Context first: judge continuity with the dialogue, not keywords alone.",
        "2. Decide whether the input continues the previous topic or opens a new one.",
        "3. The latest input carries the highest weight.",
    ]

    if config.enable_context_awareness and history:
        recent = list(history)[-config.max_turns :]
        parts += ["", f"## Dialogue history (last {len(recent)} turns, newer turns weigh more)"]
        for index, turn in enumerate(recent):
            weight = 1 + index / len(recent)
            response = turn.response if len(turn.response) <= 300 else turn.response[:300] + "..."
            parts += [
                f"### Turn {index + 1} (weight: {weight:.2f})",
                f'User: "{turn.query}"',
                f'Assistant: "{response}"',
            ]

    parts += [
        "",
        "## Current input (highest weight)",
        f'"{utterance}"',
        "",
        "## Intents",
        "- weather: weather lookups",
        "- music: playing or searching music",
        "- poi: finding places and nearby facilities",
        "- route_planning: routes and navigation",
        "- image: drawing or generating a picture",
        "- vehicle_control: air conditioning, windows, seats, lights",
        "- chat: anything else",
        "",
        "For vehicle_control also give vehicleSubtype: ac | window | seat | light | general.",
        "",
        "## Rules",
        "- Pronouns (它/这个/那个/把...) and edit verbs (改成/换成/修改/调整) continue the previous topic.",
        "- Continue only a concrete previous intent; after chat or unknown an edit request is chat.",
        "- Without history do not guess a continuation.",
        "- '卡片' and '图片' name whatever is on screen; only 画/生成/绘制 mean image.",
        "",
        "## Reply format",
        '{"intent": "...", "confidence": 0.0, "extractedEntities": {}, '
        '"extractedKeyword": "", "vehicleSubtype": null, "reasoning": ""}',
    ]
    return "\n".join(parts)


def parse_classification(raw: str) -> IntentResult:
    """
    Normalize a classifier reply.

    Raises:
        ClassificationFailure: If the reply is not a JSON object
    """
    try:
        data = extract_json(raw)
    except JSONParseError as e:
        raise ClassificationFailure(f"Malformed classifier reply: {e}", e) from e

    intent = Intent.from_wire(data.get("intent"))

    try:
        confidence = float(data.get("confidence", QUICK_MATCH_CONFIDENCE))
    except (TypeError, ValueError):
        confidence = QUICK_MATCH_CONFIDENCE
    confidence = min(max(confidence, 0.0), 1.0)

    entities = data.get("extractedEntities", data.get("extracted_entities"))
    subtype = None
    if intent is Intent.VEHICLE_CONTROL:
        label = data.get("vehicleSubtype") or data.get("carControlSubType") or data.get("vehicle_subtype")
        try:
            subtype = VehicleSubtype(str(label).lower())
        except ValueError:
            subtype = VehicleSubtype.GENERAL

    return IntentResult(
        intent=intent,
        confidence=confidence,
        extracted_entities=entities if isinstance(entities, dict) else {},
        extracted_keyword=str(data.get("extractedKeyword") or data.get("extracted_keyword") or ""),
        vehicle_subtype=subtype,
        reasoning=str(data.get("reasoning") or ""),
    )


# ============================================================================
# Resolver
# ============================================================================


class IntentResolver:
    """Resolves the intent of a turn. Never raises."""

    def __init__(self, completion: CompletionService | None = None, timeout: float = 20.0) -> None:
        self.completion = completion
        self.timeout = timeout

    async def resolve(
        self,
        utterance: str,
        history: Sequence[ConversationTurn] = (),
        config: ContextConfig | None = None,
    ) -> IntentResult:
        config = config or ContextConfig()
        if self.completion is None:
            result = quick_classify(utterance)
        else:
            result = await self._classify(utterance, history, config)

        result = apply_context_rules(result, utterance, history)
        logger.info(
            "intent_resolved",
            intent=result.intent.value,
            confidence=result.confidence,
            reasoning=result.reasoning[:120],
        )
        return result

    async def _classify(
        self,
        utterance: str,
        history: Sequence[ConversationTurn],
        config: ContextConfig,
    ) -> IntentResult:
        prompt = f"{CLASSIFIER_SYSTEM_PROMPT}\n\n{build_classifier_prompt(utterance, history, config)}"
        try:
            raw = await asyncio.wait_for(self.completion.ainvoke(prompt), timeout=self.timeout)
            return parse_classification(raw)
        except ClassificationFailure as e:
            failure = e
        except TimeoutError as e:
            failure = ClassificationFailure(f"Classifier timed out after {self.timeout}s", e)
        except Exception as e:
            failure = ClassificationFailure(f"Classifier call failed: {e}", e)

        logger.warning("classification_failed", code=failure.code, error=failure.message)
        return fallback_result("classifier unavailable, default intent")


def apply_context_rules(
    result: IntentResult,
    utterance: str,
    history: Sequence[ConversationTurn],
) -> IntentResult:
    """
    Enforce cross-turn continuity on a fresh classification.

    - no history (or a previous turn of unknown origin): the classification stands
    - previous turn chat/unknown and an ambiguous follow-up: chat
    - previous turn a concrete domain and an edit request: that domain
    """
    if not history or history[-1].intent is None:
        return result

    previous = Intent.from_wire(history[-1].intent)

    if not previous.is_concrete:
        if result.intent is not Intent.CHAT and is_ambiguous_followup(utterance):
            return result.model_copy(
                update={"intent": Intent.CHAT, "reasoning": f"context: follow-up after {previous.value}"}
            )
        return result

    if result.intent is not previous and is_modification_request(utterance):
        return result.model_copy(
            update={
                "intent": previous,
                "vehicle_subtype": result.vehicle_subtype if previous is Intent.VEHICLE_CONTROL else None,
                "reasoning": f"context: edit continues {previous.value}",
            }
        )
    return result


__all__ = [
    "Intent",
    "VehicleSubtype",
    "IntentResult",
    "ContextConfig",
    "CompletionService",
    "IntentResolver",
    "apply_context_rules",
    "build_classifier_prompt",
    "fallback_result",
    "is_ambiguous_followup",
    "is_modification_request",
    "parse_classification",
    "quick_classify",
]
