"""Fake telemetry API plumbing shared by the test modules."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import httpx

from cache.store import CacheStore
from services.dashboard import DashboardService
from services.feed_source import FeedSource
from settings import Settings

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    def __init__(self, handler: Handler) -> None:
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "product_id": "egg-product",
        "api_key": "read-key",
        "api_url": "https://api.example.test",
        "cache_ttl_seconds": 300,
        "environment": "development",
        "session_secret": "test-secret",
        "request_timeout": 5.0,
        "log_level": "INFO",
    }
    values.update(overrides)
    return Settings(**values)


def make_source(transport: httpx.BaseTransport) -> FeedSource:
    return FeedSource.from_settings(make_settings(), transport=transport)


def make_dashboard(
    transport: httpx.BaseTransport,
    cache: Optional[CacheStore] = None,
    **settings_overrides: Any,
) -> DashboardService:
    settings = make_settings(**settings_overrides)
    return DashboardService(
        settings=settings,
        source=FeedSource.from_settings(settings, transport=transport),
        cache=cache or CacheStore(),
    )


def feed_record(
    feed_id: int,
    title: Optional[str] = "Egg",
    lat: Any = None,
    lon: Any = None,
    **extra: Any,
) -> Dict[str, Any]:
    location: Dict[str, Any] = {}
    if lat is not None:
        location["lat"] = lat
    if lon is not None:
        location["lon"] = lon
    record: Dict[str, Any] = {"id": feed_id, "location": location}
    if title is not None:
        record["title"] = title
    record.update(extra)
    return record


def search_page(*records: Dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, json={"totalResults": len(records), "results": list(records)})
