"""Clients for external data services."""

from .data import (
    DataProvider,
    DataProviderRegistry,
    HttpDataProvider,
    MockWeatherProvider,
)

__all__ = ["DataProvider", "DataProviderRegistry", "HttpDataProvider", "MockWeatherProvider"]
