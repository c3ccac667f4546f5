"""Dependency Injection Container."""

from dataclasses import dataclass

from injector import Injector, Module, provider, singleton

from genui.agents import ContextConfig, GenerationOrchestrator, IntentResolver, MockGenerator
from genui.clients import DataProviderRegistry
from genui.handlers import ChatHandler
from genui.models import CompletionService, ModelConfig, ModelLoader
from genui.monitoring import MetricsCollector, metrics_collector
from genui.session import InMemorySessionStore, SessionStore
from genui.streaming.emitter import TurnStreamer
from .config import Settings, get_settings


@dataclass(frozen=True)
class CompletionBackend:
    """Loaded model, or ``None`` when running on the mock generator."""

    service: CompletionService | None


class CoreModule(Module):
    """Core dependencies."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @singleton
    @provider
    def provide_settings(self) -> Settings:
        return self.settings

    @singleton
    @provider
    def provide_metrics(self) -> MetricsCollector:
        return metrics_collector

    @singleton
    @provider
    def provide_session_store(self) -> SessionStore:
        """Provide the in-process session store."""
        return InMemorySessionStore(
            max_sessions=self.settings.max_sessions,
            ttl_seconds=self.settings.session_ttl,
            history_max_turns=self.settings.history_max_turns,
        )

    @singleton
    @provider
    def provide_completion(self) -> CompletionBackend:
        """Provide the configured model backend."""
        return CompletionBackend(ModelLoader.load(ModelConfig.from_settings(self.settings)))

    @singleton
    @provider
    def provide_data_providers(self) -> DataProviderRegistry:
        return DataProviderRegistry.from_settings(self.settings)

    @singleton
    @provider
    def provide_intent_resolver(self, backend: CompletionBackend) -> IntentResolver:
        return IntentResolver(backend.service, timeout=self.settings.classifier_timeout)

    @singleton
    @provider
    def provide_mock_generator(self) -> MockGenerator:
        return MockGenerator()

    @singleton
    @provider
    def provide_orchestrator(
        self,
        store: SessionStore,
        resolver: IntentResolver,
        data_providers: DataProviderRegistry,
        backend: CompletionBackend,
        mock: MockGenerator,
        metrics: MetricsCollector,
    ) -> GenerationOrchestrator:
        """Provide the turn orchestrator with all dependencies."""
        return GenerationOrchestrator(
            store=store,
            resolver=resolver,
            data_providers=data_providers,
            completion=backend.service,
            mock=mock,
            generation_timeout=self.settings.generation_timeout,
            sticky_threshold=self.settings.sticky_confidence_threshold,
            context_config=ContextConfig(max_turns=self.settings.history_max_turns),
            metrics=metrics,
        )

    @singleton
    @provider
    def provide_streamer(
        self, orchestrator: GenerationOrchestrator, store: SessionStore, metrics: MetricsCollector
    ) -> TurnStreamer:
        return TurnStreamer(orchestrator, store, batch_size=self.settings.stream_batch_size, metrics=metrics)

    @singleton
    @provider
    def provide_chat_handler(self, streamer: TurnStreamer, metrics: MetricsCollector) -> ChatHandler:
        return ChatHandler(
            streamer,
            heartbeat_interval=self.settings.heartbeat_interval,
            max_message_length=self.settings.max_message_length,
            metrics=metrics,
        )


def create_container(settings: Settings | None = None) -> Injector:
    """Create configured injector."""
    return Injector([CoreModule(settings or get_settings())])
