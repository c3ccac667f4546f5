"""Model Loader - completion backends behind one async contract."""

import asyncio
from typing import Any, Optional, Protocol, runtime_checkable

import google.generativeai as genai
import httpx

from genui.core import get_logger
from .config import Backend, ChatCompletionsConfig, GeminiConfig, ModelConfig


logger = get_logger(__name__)


class ModelLoadError(Exception):
    """Model loading failed."""
    pass


@runtime_checkable
class CompletionService(Protocol):
    """Black-box text completion: prompt in, text out."""

    async def ainvoke(self, prompt: str) -> str: ...


class GeminiModel:
    """Gemini API wrapper."""

    def __init__(self, config: GeminiConfig):
        self.config = config
        genai.configure(api_key=config.api_key)

        generation_config = genai.GenerationConfig(
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
            top_p=config.top_p,
            top_k=config.top_k,
            response_mime_type="application/json" if config.json_mode else None,
        )

        self.model = genai.GenerativeModel(
            model_name=config.model_name,
            generation_config=generation_config,
        )

        logger.info("model_loaded", backend="gemini", model=config.model_name)

    def invoke(self, prompt: str) -> str:
        """Non-streaming generation."""
        try:
            response = self.model.generate_content(prompt)
            return response.text
        except Exception as e:
            logger.error("invoke_error", error=str(e))
            raise

    async def ainvoke(self, prompt: str) -> str:
        """Async generation (runs sync API in thread pool)."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.invoke, prompt)


class ChatCompletionsModel:
    """OpenAI-compatible ``/chat/completions`` client."""

    def __init__(self, config: ChatCompletionsConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client or httpx.AsyncClient(timeout=config.timeout)
        logger.info("model_loaded", backend="openai", model=config.model_name, endpoint=config.endpoint)

    def _payload(self, prompt: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.config.model_name,
            "messages": [
                {"role": "system", "content": self.config.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if self.config.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def ainvoke(self, prompt: str) -> str:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        response = await self._client.post(self.config.endpoint, json=self._payload(prompt), headers=headers)
        response.raise_for_status()

        data = response.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("invoke_error", error="unexpected response shape")
            raise ValueError("Completion response has no message content") from e
        return content or ""

    async def aclose(self) -> None:
        await self._client.aclose()


class ModelLoader:
    """Model lifecycle manager."""

    _instance: Optional[CompletionService] = None

    @classmethod
    def load(cls, config: ModelConfig) -> CompletionService | None:
        """
        Load the configured backend.

        Returns:
            The completion service, or None for the mock backend

        Raises:
            ModelLoadError: If the backend cannot be constructed
        """
        logger.info("loading", backend=config.backend)
        if config.backend == Backend.MOCK:
            cls._instance = None
            return None

        try:
            if config.backend == Backend.GEMINI:
                model: CompletionService = GeminiModel(config.gemini or GeminiConfig())
            else:
                if config.chat is None:
                    raise ValueError("chat completions backend needs an endpoint")
                model = ChatCompletionsModel(config.chat)
        except Exception as e:
            logger.error("load_failed", error=str(e))
            raise ModelLoadError(f"Failed to load {config.backend} backend") from e

        cls._instance = model
        return model

    @classmethod
    def unload(cls) -> None:
        """Unload model."""
        if cls._instance:
            logger.info("unloading")
            cls._instance = None
