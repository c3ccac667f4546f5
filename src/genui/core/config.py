"""Configuration Management."""

import os
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="GENUI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Server
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=3001, gt=0, lt=65536, description="HTTP port")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    # Model
    llm_backend: str = Field(
        default="openai", pattern="^(gemini|openai|mock)$", description="Completion backend"
    )
    gemini_api_key: str = Field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY", ""), description="Gemini API key"
    )
    gemini_model: str = Field(default="gemini-2.0-flash-exp", description="Gemini model name")
    completion_endpoint: str = Field(
        default="https://dashscope.aliyuncs.com/compatible-mode/v1/chat/completions",
        description="OpenAI-compatible chat completions URL",
    )
    completion_api_key: str = Field(default="", description="Chat completions API key")
    completion_model: str = Field(default="qwen-flash", description="Chat completions model name")
    temperature: float = Field(default=0.1, ge=0.0, le=2.0, description="Model temperature")
    max_tokens: int = Field(default=4096, gt=0, description="Max output tokens")

    # Turn pipeline
    generation_timeout: float = Field(default=60.0, gt=0, description="Hard bound on a generation call (seconds)")
    classifier_timeout: float = Field(default=20.0, gt=0, description="Bound on an intent classification call (seconds)")
    heartbeat_interval: float = Field(default=15.0, gt=0, description="Idle seconds between stream heartbeats")
    sticky_confidence_threshold: float = Field(
        default=0.9, ge=0.0, le=1.0, description="Below this confidence a modification follow-up keeps the last intent"
    )

    # Sessions
    history_max_turns: int = Field(default=10, gt=0, description="Turns kept per session")
    session_ttl: int = Field(default=3600, gt=0, description="Idle session lifetime (seconds)")
    max_sessions: int = Field(default=1000, gt=0, description="Max live sessions")

    # Domain data
    data_service_url: str = Field(default="", description="Base URL of the domain data service")
    data_timeout: float = Field(default=5.0, gt=0, description="Domain data request timeout")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Use JSON log format")

    # Streaming
    stream_batch_size: int = Field(default=20, gt=0, description="Characters per message-content batch")

    # Validation
    max_message_length: int = Field(default=10_000, gt=0, description="Max utterance length")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
