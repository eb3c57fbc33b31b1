"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.feeds import Datastream, FeedSummary


class RecentOrder(str, Enum):
    """Sort values the telemetry API accepts for the recent listing."""

    asc = "asc"
    desc = "desc"
    created_at = "created_at"
    retrieved_at = "retrieved_at"
    relevance = "relevance"


class MapMarker(BaseModel):
    """Lightweight feed projection drawn on the map.

    Serialize with ``exclude_none`` so absent coordinates are omitted.
    """

    feed_id: int
    lat: Optional[float] = None
    lng: Optional[float] = None
    title: Optional[str] = None


class LocationView(BaseModel):
    lat: Optional[float] = None
    lon: Optional[float] = None
    elevation: Optional[float] = None
    exposure: Optional[str] = None


class FeedView(BaseModel):
    id: int
    title: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    location: LocationView = Field(default_factory=LocationView)

    @classmethod
    def from_feed(cls, feed: FeedSummary) -> "FeedView":
        return cls(
            id=feed.id,
            title=feed.title,
            description=feed.description,
            tags=sorted(feed.tags),
            location=LocationView(
                lat=feed.location.lat,
                lon=feed.location.lon,
                elevation=feed.location.elevation,
                exposure=feed.location.exposure,
            ),
        )


class SensorChannel(BaseModel):
    """Latest reading of one computed datastream."""

    id: str
    current_value: Optional[str] = None
    unit: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def from_datastream(cls, stream: Optional[Datastream]) -> Optional["SensorChannel"]:
        if stream is None:
            return None
        return cls(
            id=stream.id,
            current_value=stream.current_value,
            unit=stream.unit,
            tags=sorted(stream.tags),
        )


class FeedDetail(BaseModel):
    """Everything the egg dashboard page shows for a single feed."""

    feed: FeedView
    no2: Optional[SensorChannel] = None
    co: Optional[SensorChannel] = None
    temperature: Optional[SensorChannel] = None
    humidity: Optional[SensorChannel] = None
    map_markers: List[MapMarker] = Field(default_factory=list)


class HomeStatus(BaseModel):
    status: str = "ok"
    error: Optional[str] = Field(
        default=None, description="One-shot error message left by a failed mutation."
    )
