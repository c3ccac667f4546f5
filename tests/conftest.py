"""Pytest configuration and fixtures."""

import asyncio
import os

import pytest
from prometheus_client import CollectorRegistry

from genui.agents import IntentResolver, MockGenerator
from genui.clients import DataProviderRegistry, MockWeatherProvider
from genui.agents.intent import Intent
from genui.agents.orchestrator import GenerationOrchestrator
from genui.monitoring import MetricsCollector
from genui.session import InMemorySessionStore
from genui.streaming.emitter import TurnStreamer


# ============================================================================
# Pytest Hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with environment variables."""
    os.environ["GENUI_LLM_BACKEND"] = "mock"
    os.environ["GENUI_LOG_LEVEL"] = "DEBUG"
    os.environ["GENUI_HEARTBEAT_INTERVAL"] = "15"
    os.environ["GENUI_DATA_SERVICE_URL"] = ""


# ============================================================================
# Fakes
# ============================================================================

class FakeCompletion:
    """Completion service returning canned replies in order."""

    def __init__(self, *replies: str, delay: float = 0.0, error: Exception | None = None):
        self.replies = list(replies)
        self.delay = delay
        self.error = error
        self.prompts: list[str] = []

    async def ainvoke(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]


@pytest.fixture
def fake_completion():
    """Factory for canned completion services."""
    return FakeCompletion


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def metrics():
    """Metrics collector on a private registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def store():
    """Fresh in-memory session store."""
    return InMemorySessionStore(max_sessions=100, ttl_seconds=3600, history_max_turns=10)


@pytest.fixture
def data_providers():
    """Registry with only the mock weather provider."""
    return DataProviderRegistry({Intent.WEATHER: MockWeatherProvider()})


@pytest.fixture
def orchestrator(store, data_providers, metrics):
    """Orchestrator running on the mock generator."""
    return GenerationOrchestrator(
        store=store,
        resolver=IntentResolver(),
        data_providers=data_providers,
        mock=MockGenerator(),
        metrics=metrics,
    )


@pytest.fixture
def streamer(orchestrator, store, metrics):
    """Turn streamer over the mock orchestrator."""
    return TurnStreamer(orchestrator, store, batch_size=20, metrics=metrics)


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def weather_tree():
    """Small weather card tree."""
    return {
        "component_type": "Card",
        "properties": {"padding": 16},
        "children": [
            {"component_type": "Text", "properties": {"text": "{{city}}"}},
            {"component_type": "Text", "properties": {"text": "{{weather.current.tempC}}°C"}},
        ],
    }
