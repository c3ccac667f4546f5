"""Domain Data Providers

Fetch the data a domain card binds to (weather readings, places, routes)
before generation. Providers never raise: a failed fetch yields ``{}`` and
the turn carries on with whatever context it already has.
"""

import asyncio
from collections.abc import Mapping
from typing import Any, Protocol

import httpx
import pybreaker

from genui.agents.intent import Intent, IntentResult
from genui.core import Settings, get_logger

logger = get_logger(__name__)


class DataProvider(Protocol):
    """Source of domain data for one or more intents."""

    async def fetch(self, intent_result: IntentResult, utterance: str) -> dict[str, Any]: ...


MOCK_WEATHER: dict[str, Any] = {
    "city": "上海",
    "date": {"year": 2025, "month": 12, "day": 20, "weekday": "周六"},
    "high": "12",
    "low": "5",
    "cond": "多云",
    "extra": "AQI 55 良",
    "weather": {
        "location": {"name": "上海"},
        "current": {
            "tempC": "12",
            "text": "多云",
            "humidity": "55",
            "windDir": "东北风",
            "windPower": "3",
        },
        "reportTime": "2025-12-19 16:00",
    },
}


class MockWeatherProvider:
    """Fixed weather readings for demos and tests."""

    async def fetch(self, intent_result: IntentResult, utterance: str) -> dict[str, Any]:
        data = {**MOCK_WEATHER, "date": dict(MOCK_WEATHER["date"])}
        city = intent_result.extracted_entities.get("city")
        if isinstance(city, str) and city:
            data["city"] = city
        return data


class BreakerListener(pybreaker.CircuitBreakerListener):
    """Logs circuit breaker state changes."""

    def state_change(self, cb, old_state, new_state):
        logger.warning(
            "breaker_state_change",
            breaker=cb.name,
            from_state=str(getattr(old_state, "name", old_state)),
            to_state=str(getattr(new_state, "name", new_state)),
        )


class HttpDataProvider:
    """
    Domain data over HTTP with circuit breaker protection.

    Calls ``GET {base_url}/{intent}?q=<utterance>&keyword=<keyword>`` and
    expects a JSON object, which is merged into the data context as-is.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, client: httpx.Client | None = None) -> None:
        """
        Initialize provider with circuit breaker.

        Args:
            base_url: Base URL of the data service
            timeout: Request timeout in seconds
            client: HTTP client (injectable for tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)
        self._breaker = pybreaker.CircuitBreaker(
            fail_max=5,
            reset_timeout=30,
            name="data-http",
            listeners=[BreakerListener()],
        )
        logger.info("data_provider_init", url=self.base_url)

    def _request(self, intent: str, params: dict[str, str]) -> Any:
        response = self._client.get(f"{self.base_url}/{intent}", params=params)
        response.raise_for_status()
        return response.json()

    async def fetch(self, intent_result: IntentResult, utterance: str) -> dict[str, Any]:
        intent = intent_result.intent.value
        params = {"q": utterance, "keyword": intent_result.extracted_keyword}
        try:
            data = await asyncio.to_thread(self._breaker.call, self._request, intent, params)
        except pybreaker.CircuitBreakerError:
            logger.error("data_fetch_failed", intent=intent, error="Circuit breaker open - data service unavailable")
            return {}
        except httpx.HTTPError as e:
            logger.warning("http_error", intent=intent, error=str(e))
            return {}
        except ValueError as e:
            logger.warning("invalid_response", intent=intent, error=str(e))
            return {}

        if not isinstance(data, dict):
            logger.error("invalid_response", intent=intent, type=type(data).__name__)
            return {}
        return data

    def close(self) -> None:
        self._client.close()


PROGRESS_LABELS = {
    Intent.WEATHER: "weather",
    Intent.MUSIC: "music",
    Intent.POI: "nearby places",
    Intent.ROUTE_PLANNING: "route",
}


class DataProviderRegistry:
    """Maps intents to providers."""

    def __init__(self, providers: Mapping[Intent, DataProvider] | None = None) -> None:
        self._providers: dict[Intent, DataProvider] = dict(providers or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> "DataProviderRegistry":
        """Weather is always served by the mock; other domains need ``data_service_url``."""
        providers: dict[Intent, DataProvider] = {Intent.WEATHER: MockWeatherProvider()}
        if settings.data_service_url:
            http = HttpDataProvider(settings.data_service_url, timeout=settings.data_timeout)
            for intent in (Intent.POI, Intent.ROUTE_PLANNING, Intent.MUSIC):
                providers[intent] = http
        return cls(providers)

    def register(self, intent: Intent, provider: DataProvider) -> None:
        self._providers[intent] = provider

    def get(self, intent: Intent) -> DataProvider | None:
        return self._providers.get(intent)

    def __contains__(self, intent: Intent) -> bool:
        return intent in self._providers

    def progress_text(self, intent: Intent) -> str:
        label = PROGRESS_LABELS.get(intent, intent.value)
        return f"(Fetching {label} data...)"

    async def fetch(self, intent_result: IntentResult, utterance: str) -> dict[str, Any]:
        """Data for the intent, or ``{}`` when there is no provider or it fails."""
        provider = self._providers.get(intent_result.intent)
        if provider is None:
            return {}
        try:
            data = await provider.fetch(intent_result, utterance)
        except Exception as e:
            logger.warning("data_provider_failed", intent=intent_result.intent.value, error=str(e))
            return {}
        logger.info("data_fetched", intent=intent_result.intent.value, keys=sorted(data)[:10])
        return data

    def close(self) -> None:
        for provider in {id(p): p for p in self._providers.values()}.values():
            close = getattr(provider, "close", None)
            if close is not None:
                close()


__all__ = [
    "MOCK_WEATHER",
    "BreakerListener",
    "DataProvider",
    "DataProviderRegistry",
    "HttpDataProvider",
    "MockWeatherProvider",
]
