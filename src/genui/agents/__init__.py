"""Turn agents: intent resolution, prompts, generation."""

from .intent import (
    ContextConfig,
    Intent,
    IntentResolver,
    IntentResult,
    VehicleSubtype,
    quick_classify,
)
from .sticky import apply_sticky_intent
from .prompts import build_generation_prompt
from .mock import MockGenerator
from .orchestrator import GenerationOrchestrator, InvalidDocument, TurnSummary

__all__ = [
    "ContextConfig",
    "GenerationOrchestrator",
    "Intent",
    "IntentResolver",
    "IntentResult",
    "InvalidDocument",
    "MockGenerator",
    "TurnSummary",
    "VehicleSubtype",
    "apply_sticky_intent",
    "build_generation_prompt",
    "quick_classify",
]
