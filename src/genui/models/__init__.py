"""Text-completion backends."""

from .config import Backend, ChatCompletionsConfig, GeminiConfig, ModelConfig
from .loader import ChatCompletionsModel, CompletionService, GeminiModel, ModelLoader, ModelLoadError

__all__ = [
    "Backend",
    "ChatCompletionsConfig",
    "ChatCompletionsModel",
    "CompletionService",
    "GeminiConfig",
    "GeminiModel",
    "ModelConfig",
    "ModelLoader",
    "ModelLoadError",
]
