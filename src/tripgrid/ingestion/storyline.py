"""
Storyline loader.

Reads a Moves-style storyline export (JSON) and flattens it into `MoveSegment`s:

    [{"date": "20130315",
      "segments": [
        {"type": "place", "place": {"location": {"lat": .., "lon": ..}}},
        {"type": "move", "activities": [
            {"activity": "walking", "trackPoints": [{"lat": .., "lon": .., "time": ..}]}
        ]}
      ]}]

Each activity of a move segment becomes its own `MoveSegment(type="move")`, so
endpoints are per activity. Places become single-point `MoveSegment(type="place")`.
Only `lat`/`lon` are kept from track points.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from tripgrid.core.geo import GeoPoint
from tripgrid.domain.models import MoveSegment

logger = logging.getLogger(__name__)


class _RawPoint(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class _RawActivity(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    activity: str | None = None
    track_points: list[_RawPoint] = Field(default_factory=list, alias="trackPoints")


class _RawPlace(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location: _RawPoint | None = None


class _RawSegment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    activities: list[_RawActivity] | None = None
    place: _RawPlace | None = None


class _RawDay(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str | None = None
    segments: list[_RawSegment] | None = None


_DAYS_ADAPTER = TypeAdapter(list[_RawDay])


def _to_point(raw: _RawPoint) -> GeoPoint:
    return GeoPoint(lat=raw.lat, lon=raw.lon)


def flatten_days(days: list[_RawDay]) -> list[MoveSegment]:
    """Flatten validated storyline days into segments, preserving file order."""
    segments: list[MoveSegment] = []
    for day in days:
        for seg in day.segments or []:
            if seg.type == "move":
                for act in seg.activities or []:
                    segments.append(
                        MoveSegment(
                            type="move",
                            activity=act.activity,
                            track_points=[_to_point(p) for p in act.track_points],
                        )
                    )
            elif seg.place is not None and seg.place.location is not None:
                segments.append(MoveSegment(type=seg.type, track_points=[_to_point(seg.place.location)]))
    return segments


def parse_storyline(payload: object) -> list[MoveSegment]:
    """Validate a decoded storyline payload (a list of days, or a single day)."""
    if isinstance(payload, dict):
        payload = [payload]
    days = _DAYS_ADAPTER.validate_python(payload)
    return flatten_days(days)


def load_storyline(path: str | Path) -> list[MoveSegment]:
    """Load and validate a storyline JSON file.

    Raises:
        ValueError: If the file is not valid JSON or not a storyline export.
    """
    p = Path(path)
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
        segments = parse_storyline(payload)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ValueError(f"{p} is not a valid storyline export: {exc}") from exc

    moves = sum(1 for s in segments if s.is_move)
    logger.info("Loaded %d segments (%d moves) from %s", len(segments), moves, p)
    return segments
