"""Domain models for feeds parsed from the telemetry API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional


def _parse_tags(raw: Any) -> frozenset[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        items: Iterable[Any] = raw.split(",")
    elif isinstance(raw, (list, tuple, set, frozenset)):
        items = raw
    else:
        return frozenset()
    return frozenset(str(tag).strip() for tag in items if str(tag).strip())


def _as_list(raw: Any) -> list:
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return []


def _parse_float(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _parse_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class Location:
    lat: Optional[float] = None
    lon: Optional[float] = None
    elevation: Optional[float] = None
    exposure: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    @classmethod
    def from_record(cls, record: Any) -> "Location":
        if not isinstance(record, Mapping):
            record = {}
        return cls(
            lat=_parse_float(record.get("lat")),
            lon=_parse_float(record.get("lon")),
            elevation=_parse_float(record.get("ele")),
            exposure=_parse_text(record.get("exposure")),
        )


@dataclass(frozen=True, slots=True)
class Datastream:
    """A single sensor channel on a feed."""

    id: str
    tags: frozenset[str] = frozenset()
    current_value: Optional[str] = None
    unit: Optional[str] = None

    def is_computed_sensor(self, sensor_type: str) -> bool:
        """True for a derived channel of ``sensor_type``, namespaced tags included."""
        suffix = f"sensor_type={sensor_type}"
        computed = any("computed" in tag for tag in self.tags)
        return computed and any(tag.endswith(suffix) for tag in self.tags)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Datastream":
        unit = record.get("unit")
        if isinstance(unit, Mapping):
            unit = unit.get("symbol") or unit.get("label")
        return cls(
            id=str(record.get("id", "")),
            tags=_parse_tags(record.get("tags")),
            current_value=_parse_text(record.get("current_value")),
            unit=_parse_text(unit),
        )


@dataclass(frozen=True, slots=True)
class FeedSummary:
    """A feed record as returned by the telemetry API."""

    id: int
    title: Optional[str] = None
    description: Optional[str] = None
    tags: frozenset[str] = frozenset()
    location: Location = field(default_factory=Location)
    datastreams: tuple[Datastream, ...] = ()

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "FeedSummary":
        try:
            feed_id = int(record["id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Feed record has no usable id: {record.get('id')!r}") from exc
        return cls(
            id=feed_id,
            title=_parse_text(record.get("title")),
            description=_parse_text(record.get("description")),
            tags=_parse_tags(record.get("tags")),
            location=Location.from_record(record.get("location")),
            datastreams=tuple(
                Datastream.from_record(stream)
                for stream in _as_list(record.get("datastreams"))
                if isinstance(stream, Mapping)
            ),
        )


@dataclass(frozen=True, slots=True)
class SessionCredential:
    """Write access to one feed, granted by a successful registration."""

    feed_id: int
    write_key: str
