"""Aggregation of paginated feed search results."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from app.schemas import MapMarker
from models.feeds import FeedSummary, Location
from services.errors import UpstreamUnavailable
from services.feed_source import FeedSource

logger = logging.getLogger(__name__)

ALL_FEEDS_PAGE_SIZE = 100
RECENT_PAGE_SIZE = 10
NEARBY_DISTANCE = 400


def _results(response: httpx.Response) -> List[Dict[str, Any]]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise UpstreamUnavailable(
            "Telemetry API returned malformed JSON", status_code=response.status_code
        ) from exc
    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        raise UpstreamUnavailable(
            "Telemetry API response has no results list", status_code=response.status_code
        )
    return [record for record in results if isinstance(record, dict)]


def to_map_marker(record: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Project a feed record to a marker dict, omitting blank fields."""
    try:
        feed_id = int(record["id"])
    except (KeyError, TypeError, ValueError):
        return None
    location = Location.from_record(record.get("location"))
    title = record.get("title")
    title = str(title).strip() if title is not None else ""
    marker = MapMarker(
        feed_id=feed_id,
        lat=location.lat,
        lng=location.lon,
        title=title or None,
    )
    return marker.model_dump(exclude_none=True)


def collect_map_markers(records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    markers = []
    for record in records:
        marker = to_map_marker(record)
        if marker is None:
            logger.debug("Skipping feed record without an id")
            continue
        markers.append(marker)
    return markers


class FeedAggregator:
    """Walks the telemetry search API and flattens its pages."""

    def __init__(self, source: FeedSource) -> None:
        self.source = source

    def fetch_all_markers(self) -> List[Dict[str, Any]]:
        """Collect markers for every egg feed across all result pages.

        The sweep stops at the first page the API refuses; a refusal on the
        first page means nothing could be fetched and is raised.
        """
        markers: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = self.source.search(
                {
                    "content": "summary",
                    "per_page": ALL_FEEDS_PAGE_SIZE,
                    "page": page,
                }
            )
            if self.source.is_end_of_pages(response):
                if page == 1:
                    raise UpstreamUnavailable(status_code=response.status_code)
                break
            page_markers = collect_map_markers(_results(response))
            logger.debug(
                "Fetched feed page",
                extra={"page": page, "result_count": len(page_markers)},
            )
            markers.extend(page_markers)
            page += 1

        logger.info(
            "Aggregated egg feeds",
            extra={"page": page - 1, "result_count": len(markers)},
        )
        return markers

    def fetch_recent(self, order: str) -> List[Dict[str, Any]]:
        response = self.source.search(
            {
                "content": "summary",
                "per_page": RECENT_PAGE_SIZE,
                "order": order,
            }
        )
        if response.status_code != 200:
            raise UpstreamUnavailable(status_code=response.status_code)
        results = _results(response)
        logger.info("Fetched recent feeds", extra={"order": order, "result_count": len(results)})
        return results

    def find_nearby(self, feed: Optional[FeedSummary] = None) -> List[Dict[str, Any]]:
        """Markers for eggs within range of ``feed``, or all eggs if it has no position."""
        params: Dict[str, Any] = {}
        if feed is not None and feed.location.has_coordinates:
            params.update(
                lat=feed.location.lat,
                lon=feed.location.lon,
                distance=NEARBY_DISTANCE,
            )
        try:
            response = self.source.search(params)
            if response.status_code != 200:
                raise UpstreamUnavailable(status_code=response.status_code)
            return collect_map_markers(_results(response))
        except UpstreamUnavailable as exc:
            logger.warning(
                "Geosearch failed; showing no nearby eggs",
                extra={"feed_id": feed.id if feed else None, "status_code": exc.status_code},
            )
            return []
