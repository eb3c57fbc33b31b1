"""Query and mutation orchestration behind the dashboard routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from app.schemas import FeedDetail, FeedView, MapMarker, RecentOrder, SensorChannel
from cache.store import CacheStore, build_default_cache
from models.feeds import Datastream, FeedSummary, SessionCredential
from services import credentials
from services.aggregator import FeedAggregator
from services.errors import (
    DashboardError,
    FeedNotFound,
    UpstreamUnavailable,
    ValidationError,
)
from services.feed_source import EGG_TAG, FeedSource
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

ALL_FEEDS_CACHE_KEY = "all_feeds"
SENSOR_TYPES = {
    "no2": "NO2",
    "co": "CO",
    "temperature": "Temperature",
    "humidity": "Humidity",
}


@dataclass
class FeedUpdate:
    """Metadata submitted from the egg edit form."""

    title: Optional[str] = None
    description: Optional[str] = None
    location_lat: Optional[str] = None
    location_lon: Optional[str] = None
    location_ele: Optional[str] = None
    location_exposure: Optional[str] = None
    existing_tags: Optional[str] = None

    def tags(self) -> List[str]:
        merged: List[str] = []
        for tag in (self.existing_tags or "").split(",") + [EGG_TAG]:
            tag = tag.strip()
            if tag and tag not in merged:
                merged.append(tag)
        return merged

    def to_feed_body(self, feed_id: int) -> Dict[str, Any]:
        return {
            "version": "1.0.0",
            "id": feed_id,
            "title": self.title,
            "description": self.description,
            "private": False,
            "location": {
                "lat": self.location_lat,
                "lon": self.location_lon,
                "ele": self.location_ele,
                "exposure": self.location_exposure,
            },
            "tags": self.tags(),
        }


def select_channel(feed: FeedSummary, sensor_type: str) -> Optional[Datastream]:
    for stream in feed.datastreams:
        if stream.is_computed_sensor(sensor_type):
            return stream
    return None


class DashboardService:
    """Answers dashboard reads through the cache and forwards egg edits."""

    def __init__(
        self,
        settings: Settings,
        source: FeedSource,
        cache: CacheStore,
    ) -> None:
        self.settings = settings
        self.source = source
        self.cache = cache
        self.aggregator = FeedAggregator(source)

    def get_all_feeds(self) -> List[Dict[str, Any]]:
        return self.cache.fetch(
            ALL_FEEDS_CACHE_KEY,
            self.settings.cache_ttl_seconds,
            self.aggregator.fetch_all_markers,
        )

    def get_recent(self, order: str) -> List[Dict[str, Any]]:
        try:
            order = RecentOrder(order).value
        except ValueError as exc:
            raise ValidationError(f"Unsupported order {order!r}") from exc
        return self.cache.fetch(
            f"recently_{order}",
            self.settings.cache_ttl_seconds,
            lambda: self.aggregator.fetch_recent(order),
        )

    def get_feed(self, feed_id: int) -> FeedDetail:
        feed = self._load_feed(feed_id)
        channels = {
            name: SensorChannel.from_datastream(select_channel(feed, sensor_type))
            for name, sensor_type in SENSOR_TYPES.items()
        }
        nearby = self.aggregator.find_nearby(feed)
        return FeedDetail(
            feed=FeedView.from_feed(feed),
            map_markers=[MapMarker(**marker) for marker in nearby],
            **channels,
        )

    def get_editable_feed(self, feed_id: int, session: Mapping[str, Any]) -> FeedView:
        credential = self._require_credential(session, feed_id)
        feed = self._load_feed(feed_id, api_key=credential.write_key)
        return FeedView.from_feed(feed)

    def register(self, serial: Optional[str], session: MutableMapping[str, Any]) -> SessionCredential:
        serial = (serial or "").strip()
        if not serial:
            raise ValidationError("Please enter a serial number")

        response = self.source.activate(serial.lower())
        if response.status_code != 200:
            logger.info("Activation refused", extra={"status_code": response.status_code})
            raise FeedNotFound()
        try:
            payload = response.json()
        except ValueError as exc:
            raise FeedNotFound() from exc

        credential = credentials.store_registration(session, payload)
        logger.info("Egg registered", extra={"feed_id": credential.feed_id})
        return credential

    def update(self, feed_id: int, fields: FeedUpdate, session: Mapping[str, Any]) -> None:
        credential = self._require_credential(session, feed_id)
        response = self.source.update_feed(
            credential.feed_id,
            fields.to_feed_body(credential.feed_id),
            api_key=credential.write_key,
        )
        if response.status_code not in (200, 204):
            logger.warning(
                "Feed update rejected",
                extra={"feed_id": feed_id, "status_code": response.status_code},
            )
            raise UpstreamUnavailable("Could not update your egg", status_code=response.status_code)
        logger.info("Feed updated", extra={"feed_id": feed_id})

    def flush_cache(self) -> int:
        return self.cache.flush()

    def close(self) -> None:
        self.source.close()

    def _require_credential(self, session: Mapping[str, Any], feed_id: int) -> SessionCredential:
        check = credentials.authorize(session, feed_id)
        if check.failure is not None:
            raise check.failure
        if check.credential is None:
            raise DashboardError()
        return check.credential

    def _load_feed(self, feed_id: int, api_key: Optional[str] = None) -> FeedSummary:
        response = self.source.get_feed(feed_id, api_key=api_key)
        if response.status_code == 404:
            raise FeedNotFound(status_code=404)
        if response.status_code != 200:
            raise UpstreamUnavailable(status_code=response.status_code)
        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("Feed payload is not an object")
            return FeedSummary.from_record(payload)
        except ValueError as exc:
            raise UpstreamUnavailable(
                "Telemetry API returned an unreadable feed", status_code=response.status_code
            ) from exc


@lru_cache
def build_default_dashboard() -> DashboardService:
    """Factory that wires the dashboard with the process settings."""
    settings = get_settings()
    return DashboardService(
        settings=settings,
        source=FeedSource.from_settings(settings),
        cache=build_default_cache(),
    )
