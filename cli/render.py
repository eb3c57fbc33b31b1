from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _position(lat: Any, lng: Any) -> str:
    if lat is None or lng is None:
        return "unmapped"
    return f"{lat}, {lng}"


def render_markers(markers: List[Dict[str, Any]]) -> None:
    echo_heading(f"Eggs ({len(markers)})")
    if not markers:
        typer.echo("No eggs found.")
        return
    for marker in markers:
        title = marker.get("title") or "(untitled)"
        position = _position(marker.get("lat"), marker.get("lng"))
        typer.echo(f"  - {marker.get('feed_id')}: {title} [{position}]")


def render_recent(order: str, feeds: List[Dict[str, Any]]) -> None:
    echo_heading(f"Recently updated ({order})")
    if not feeds:
        typer.echo("No eggs found.")
        return
    for feed in feeds:
        title = feed.get("title") or "(untitled)"
        updated = feed.get("updated") or "unknown"
        typer.echo(f"  - {feed.get('id')}: {title} updated {updated}")


def _render_channel(label: str, channel: Optional[Dict[str, Any]]) -> tuple[str, Any]:
    if not channel:
        return label, "no data"
    value = channel.get("current_value")
    unit = channel.get("unit")
    return label, f"{value} {unit}" if unit else value


def render_egg(payload: Dict[str, Any]) -> None:
    feed = payload.get("feed") or {}
    location = feed.get("location") or {}
    echo_heading("Egg")
    echo_key_values(
        [
            ("feed_id", feed.get("id")),
            ("title", feed.get("title")),
            ("description", feed.get("description")),
            ("position", _position(location.get("lat"), location.get("lon"))),
            ("exposure", location.get("exposure")),
        ]
    )

    typer.echo()
    echo_heading("Readings")
    echo_key_values(
        [
            _render_channel("NO2", payload.get("no2")),
            _render_channel("CO", payload.get("co")),
            _render_channel("Temperature", payload.get("temperature")),
            _render_channel("Humidity", payload.get("humidity")),
        ]
    )

    typer.echo()
    render_markers(payload.get("map_markers") or [])
