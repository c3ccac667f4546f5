"""
Model configuration with strong typing.
Settings for the text-completion backends.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from genui.core import Settings


class Backend(str, Enum):
    """Available completion backends."""

    GEMINI = "gemini"
    OPENAI = "openai"  # any OpenAI-compatible /chat/completions endpoint
    MOCK = "mock"  # no model; mock generation only


class GeminiConfig(BaseModel):
    """Type-safe Gemini API configuration."""

    model_config = ConfigDict(frozen=True)

    model_name: str = Field(default="gemini-2.0-flash-exp")
    api_key: str | None = Field(default=None)

    # Generation parameters
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1, le=8192)
    top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    top_k: int = Field(default=40, ge=1, le=100)

    # JSON mode
    json_mode: bool = Field(default=True)


class ChatCompletionsConfig(BaseModel):
    """OpenAI-compatible chat completions configuration."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    model_name: str = Field(default="qwen-flash")
    api_key: str = Field(default="")
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1)
    timeout: float = Field(default=60.0, gt=0)
    system_prompt: str = Field(
        default="You generate UI component trees. Reply with a single JSON object only."
    )
    json_mode: bool = Field(default=True)


class ModelConfig(BaseModel):
    """Backend selection plus the settings of the selected backend."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    backend: Backend = Field(default=Backend.OPENAI)
    gemini: GeminiConfig | None = None
    chat: ChatCompletionsConfig | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelConfig":
        return cls(
            backend=settings.llm_backend,
            gemini=GeminiConfig(
                model_name=settings.gemini_model,
                api_key=settings.gemini_api_key or None,
                temperature=settings.temperature,
                max_tokens=min(settings.max_tokens, 8192),
            ),
            chat=ChatCompletionsConfig(
                endpoint=settings.completion_endpoint,
                model_name=settings.completion_model,
                api_key=settings.completion_api_key,
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
                timeout=settings.generation_timeout,
            ),
        )
