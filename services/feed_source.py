"""HTTP client for the external telemetry API that hosts the egg feeds."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from services.errors import UpstreamUnavailable
from settings import Settings

logger = logging.getLogger(__name__)

EGG_TAG = "device:type=airqualityegg"
API_VERSION_PATH = "/v2"


class FeedSource:
    """Wraps the telemetry API's feed, search, activation and update calls.

    Transport faults surface as :class:`UpstreamUnavailable`; HTTP status
    codes are returned to the caller untouched so each operation can apply
    its own policy.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        product_id: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.product_id = product_id
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + API_VERSION_PATH,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None
    ) -> "FeedSource":
        return cls(
            base_url=settings.api_url,
            api_key=settings.api_key,
            product_id=settings.product_id,
            timeout=settings.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def is_end_of_pages(response: httpx.Response) -> bool:
        # The search endpoint answers with an error status rather than an
        # empty page once the results are exhausted.
        return response.status_code != 200

    def search(self, params: Mapping[str, Any]) -> httpx.Response:
        query: Dict[str, Any] = {"tag": EGG_TAG, "mapped": "true"}
        query.update(params)
        return self._request("GET", "/feeds.json", params=query)

    def get_feed(self, feed_id: int, api_key: Optional[str] = None) -> httpx.Response:
        return self._request("GET", f"/feeds/{feed_id}.json", api_key=api_key)

    def activate(self, serial: str) -> httpx.Response:
        path = f"/products/{self.product_id}/devices/{serial}/activate"
        return self._request("GET", path)

    def update_feed(self, feed_id: int, body: Mapping[str, Any], api_key: str) -> httpx.Response:
        return self._request("PUT", f"/feeds/{feed_id}.json", api_key=api_key, json=dict(body))

    def _request(
        self,
        method: str,
        path: str,
        api_key: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = {"X-ApiKey": api_key or self.api_key}
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as exc:
            logger.warning(
                "Telemetry API request failed",
                extra={"url": path, "reason": exc.__class__.__name__},
            )
            raise UpstreamUnavailable(status_code=None) from exc
        logger.info(
            "%s %s", method, path, extra={"status_code": response.status_code}
        )
        return response
