from __future__ import annotations

from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the dashboard service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_all_feeds(self) -> List[Dict[str, Any]]:
        return self._get_json("/all_feeds.json")

    def get_recent(self, order: str) -> List[Dict[str, Any]]:
        return self._get_json(f"/recently_{order}.json")

    def get_egg(self, feed_id: int) -> Dict[str, Any]:
        return self._get_json(f"/egg/{feed_id}")

    def flush_cache(self) -> str:
        response = self._send("/cache/flush")
        return response.text.strip()

    def _get_json(self, path: str) -> Any:
        return self._send(path).json()

    def _send(self, path: str) -> httpx.Response:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
