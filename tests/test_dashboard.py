"""Tests for the dashboard query and mutation service."""

from __future__ import annotations

import json

import httpx
import pytest

from services import credentials
from services.dashboard import FeedUpdate
from services.errors import (
    CredentialMissing,
    FeedNotFound,
    NotOwner,
    UpstreamUnavailable,
    ValidationError,
)
from upstream import RecordingTransport, feed_record, make_dashboard, search_page


def _single_page_handler(*records):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("page", "1") == "1":
            return search_page(*records)
        return httpx.Response(500)

    return handler


def _detail_record() -> dict:
    return feed_record(
        42,
        title="Back garden",
        lat="51.5",
        lon="-0.1",
        description="Egg by the shed",
        tags=["device:type=airqualityegg", "garden"],
        datastreams=[
            {"id": "CO_raw", "tags": ["sensor_type=CO"], "current_value": "9000"},
            {"id": "CO2", "tags": ["computed", "sensor_type=CO2"], "current_value": "400"},
            {
                "id": "CO",
                "tags": ["computed", "sensor_type=CO"],
                "current_value": "1.5",
                "unit": {"label": "parts per million", "symbol": "ppm"},
            },
            {"id": "NO2", "tags": "computed,sensor_type=NO2", "current_value": "20"},
            {"id": "NO2_second", "tags": ["computed", "sensor_type=NO2"], "current_value": "21"},
            {"id": "temperature", "tags": ["computed", "sensor_type=Temperature"], "current_value": "18"},
        ],
    )


def test_get_all_feeds_is_cached() -> None:
    transport = RecordingTransport(_single_page_handler(feed_record(1), feed_record(2)))
    dashboard = make_dashboard(transport)

    first = dashboard.get_all_feeds()
    second = dashboard.get_all_feeds()

    assert first == second == [
        {"feed_id": 1, "title": "Egg"},
        {"feed_id": 2, "title": "Egg"},
    ]
    assert len(transport.requests) == 2


def test_failed_aggregation_does_not_poison_cache() -> None:
    outcomes = iter([httpx.Response(502), search_page(feed_record(5)), httpx.Response(500)])
    transport = RecordingTransport(lambda request: next(outcomes))
    dashboard = make_dashboard(transport)

    with pytest.raises(UpstreamUnavailable):
        dashboard.get_all_feeds()

    assert dashboard.get_all_feeds() == [{"feed_id": 5, "title": "Egg"}]


def test_flush_forces_recompute() -> None:
    transport = RecordingTransport(_single_page_handler(feed_record(1)))
    dashboard = make_dashboard(transport)

    dashboard.get_all_feeds()
    assert dashboard.flush_cache() == 1
    dashboard.get_all_feeds()

    assert len(transport.requests) == 4


def test_get_recent_caches_per_order() -> None:
    transport = RecordingTransport(lambda request: search_page(feed_record(3)))
    dashboard = make_dashboard(transport)

    dashboard.get_recent("asc")
    dashboard.get_recent("asc")
    dashboard.get_recent("desc")

    assert [request.url.params["order"] for request in transport.requests] == ["asc", "desc"]


def test_get_recent_rejects_unknown_order_without_upstream_call() -> None:
    transport = RecordingTransport(lambda request: search_page())
    dashboard = make_dashboard(transport)

    with pytest.raises(ValidationError):
        dashboard.get_recent("sideways")

    assert transport.requests == []


def test_get_feed_selects_computed_channels_and_nearby_markers() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v2/feeds/42.json":
            return httpx.Response(200, json=_detail_record())
        return search_page(feed_record(42, title="Back garden", lat="51.5", lon="-0.1"), feed_record(43))

    transport = RecordingTransport(handler)
    dashboard = make_dashboard(transport)

    detail = dashboard.get_feed(42)

    assert detail.feed.title == "Back garden"
    assert detail.co is not None and detail.co.id == "CO"
    assert detail.co.unit == "ppm"
    assert detail.no2 is not None and detail.no2.id == "NO2"
    assert detail.temperature is not None and detail.temperature.current_value == "18"
    assert detail.humidity is None
    assert [marker.feed_id for marker in detail.map_markers] == [42, 43]

    feed_request, search_request = transport.requests
    assert feed_request.headers["X-ApiKey"] == "read-key"
    assert search_request.url.params["distance"] == "400"


def test_get_feed_is_never_cached() -> None:
    transport = RecordingTransport(
        lambda request: httpx.Response(200, json=feed_record(42))
        if request.url.path.startswith("/v2/feeds/")
        else search_page()
    )
    dashboard = make_dashboard(transport)

    dashboard.get_feed(42)
    dashboard.get_feed(42)

    assert transport.paths().count("/v2/feeds/42.json") == 2


def test_get_feed_not_found() -> None:
    dashboard = make_dashboard(RecordingTransport(lambda request: httpx.Response(404)))

    with pytest.raises(FeedNotFound):
        dashboard.get_feed(404)


def test_get_feed_server_error_is_upstream_unavailable() -> None:
    dashboard = make_dashboard(RecordingTransport(lambda request: httpx.Response(500)))

    with pytest.raises(UpstreamUnavailable) as excinfo:
        dashboard.get_feed(1)

    assert not isinstance(excinfo.value, FeedNotFound)


def test_register_stores_credential_in_session() -> None:
    transport = RecordingTransport(
        lambda request: httpx.Response(200, json={"feed_id": 42, "apikey": "write-key"})
    )
    dashboard = make_dashboard(transport)
    session: dict = {}

    credential = dashboard.register("  ABC123  ", session)

    assert credential.feed_id == 42
    assert credentials.extract(session) == credential
    request = transport.requests[0]
    assert request.url.path == "/v2/products/egg-product/devices/abc123/activate"
    assert request.headers["X-ApiKey"] == "read-key"


@pytest.mark.parametrize("serial", [None, "", "   "])
def test_register_requires_serial(serial) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={}))
    dashboard = make_dashboard(transport)
    session: dict = {}

    with pytest.raises(ValidationError) as excinfo:
        dashboard.register(serial, session)

    assert excinfo.value.message == "Please enter a serial number"
    assert transport.requests == []
    assert session == {}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"errors": "not found"}),
        httpx.Response(200, json={"errors": "unexpected"}),
        httpx.Response(200, text="not json"),
    ],
)
def test_register_failure_leaves_session_untouched(response) -> None:
    dashboard = make_dashboard(RecordingTransport(lambda request: response))
    session = {"error": None}

    with pytest.raises((FeedNotFound, CredentialMissing)) as excinfo:
        dashboard.register("abc", session)

    assert excinfo.value.message == "Egg not found"
    assert session == {"error": None}


def test_update_sends_full_replace_with_session_key() -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200))
    dashboard = make_dashboard(transport)
    session = {credentials.REGISTRATION_SESSION_KEY: {"feed_id": 42, "apikey": "write-key"}}
    fields = FeedUpdate(
        title="Kitchen",
        description="Indoors",
        location_lat="51.5",
        location_lon="-0.1",
        location_ele="12",
        location_exposure="indoor",
        existing_tags="garden, device:type=airqualityegg,,london",
    )

    dashboard.update(42, fields, session)

    request = transport.requests[0]
    assert request.method == "PUT"
    assert request.url.path == "/v2/feeds/42.json"
    assert request.headers["X-ApiKey"] == "write-key"
    body = json.loads(request.content)
    assert body["title"] == "Kitchen"
    assert body["private"] is False
    assert body["location"] == {"lat": "51.5", "lon": "-0.1", "ele": "12", "exposure": "indoor"}
    assert body["tags"] == ["garden", "device:type=airqualityegg", "london"]


def test_update_adds_marker_tag_when_user_gives_none() -> None:
    assert FeedUpdate().tags() == ["device:type=airqualityegg"]


def test_update_for_another_feed_is_not_owner_and_writes_nothing() -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200))
    dashboard = make_dashboard(transport)
    session = {credentials.REGISTRATION_SESSION_KEY: {"feed_id": 42, "apikey": "write-key"}}

    with pytest.raises(NotOwner):
        dashboard.update(7, FeedUpdate(title="mine now"), session)

    assert transport.requests == []


def test_update_without_registration_is_credential_missing() -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200))
    dashboard = make_dashboard(transport)

    with pytest.raises(CredentialMissing):
        dashboard.update(42, FeedUpdate(), {})

    assert transport.requests == []


def test_update_rejected_upstream_raises() -> None:
    dashboard = make_dashboard(RecordingTransport(lambda request: httpx.Response(403)))
    session = {credentials.REGISTRATION_SESSION_KEY: {"feed_id": 42, "apikey": "write-key"}}

    with pytest.raises(UpstreamUnavailable) as excinfo:
        dashboard.update(42, FeedUpdate(), session)

    assert excinfo.value.status_code == 403


def test_get_editable_feed_uses_write_key() -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json=feed_record(42, title="Mine")))
    dashboard = make_dashboard(transport)
    session = {credentials.REGISTRATION_SESSION_KEY: {"feed_id": 42, "apikey": "write-key"}}

    feed = dashboard.get_editable_feed(42, session)

    assert feed.title == "Mine"
    assert transport.requests[0].headers["X-ApiKey"] == "write-key"


def test_get_feed_selects_channels_with_namespaced_tags() -> None:
    record = feed_record(
        42,
        datastreams=[
            {"id": "no2_raw", "tags": ["aqe:sensor_type=NO2"], "current_value": "900"},
            {"id": "no2", "tags": ["aqe:data_origin=computed", "aqe:sensor_type=NO2"], "current_value": "20"},
            {"id": "humidity", "tags": ["aqe:data_origin=computed", "aqe:sensor_type=Humidity"]},
        ],
    )

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v2/feeds/42.json":
            return httpx.Response(200, json=record)
        return search_page()

    detail = make_dashboard(RecordingTransport(handler)).get_feed(42)

    assert detail.no2 is not None and detail.no2.id == "no2"
    assert detail.humidity is not None and detail.humidity.id == "humidity"
    assert detail.co is None


def test_get_all_feeds_tolerates_malformed_location() -> None:
    transport = RecordingTransport(
        _single_page_handler(feed_record(1, lat="51.5", lon="-0.1"), {"id": 2, "location": "n/a", "tags": 5})
    )
    dashboard = make_dashboard(transport)

    assert dashboard.get_all_feeds() == [
        {"feed_id": 1, "lat": 51.5, "lng": -0.1, "title": "Egg"},
        {"feed_id": 2},
    ]
