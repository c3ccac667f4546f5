"""Sticky intent: keep the previous domain for style follow-ups.

"把颜色改成绿色" right after a weather card means "recolor the weather
card", whatever a classifier without that context thinks it means.
"""

from typing import Any

from genui.core import get_logger
from .intent import Intent, IntentResult


logger = get_logger(__name__)

STICKY_CONFIDENCE_THRESHOLD = 0.9

MODIFICATION_KEYWORDS = (
    # Visual and style
    "改成", "换成", "颜色", "变为", "adjust", "change", "color", "background",
    "larger", "smaller", "font", "red", "green", "blue", "purple",
    # Text and content
    "标题", "文字", "文本", "修改", "title", "text", "size", "字体", "字号", "内容", "大小", "updated",
)

STICKY_REASONING = "sticky-intent: style modification of the previous {intent} result"


def has_modification_signal(utterance: str) -> bool:
    text = utterance.lower()
    return any(keyword in text for keyword in MODIFICATION_KEYWORDS)


def apply_sticky_intent(
    result: IntentResult,
    last_intent: Any,
    utterance: str,
    threshold: float = STICKY_CONFIDENCE_THRESHOLD,
) -> IntentResult:
    """
    Return ``result`` re-pointed at ``last_intent`` when the utterance
    edits the previous answer, otherwise ``result`` unchanged.

    Overrides only when the last intent is concrete, the utterance carries
    a modification keyword, and the fresh result is chat, image or below
    ``threshold`` confidence.
    """
    if last_intent is None:
        return result

    previous = Intent.from_wire(last_intent)
    if not previous.is_concrete or not has_modification_signal(utterance):
        return result

    weak = result.intent in (Intent.CHAT, Intent.IMAGE) or result.confidence < threshold
    if not weak:
        return result

    logger.info(
        "sticky_override",
        fresh_intent=result.intent.value,
        confidence=result.confidence,
        last_intent=previous.value,
    )
    return result.model_copy(
        update={
            "intent": previous,
            "sticky": True,
            "vehicle_subtype": result.vehicle_subtype if previous is Intent.VEHICLE_CONTROL else None,
            "reasoning": STICKY_REASONING.format(intent=previous.value),
        }
    )
