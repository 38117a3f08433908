import pytest

from tripgrid.core.geo import GeoPoint
from tripgrid.domain.models import MoveSegment

SAN_FRANCISCO = (37.7749, -122.4194)
NEW_YORK = (40.7128, -74.0060)


def _two_city_segments():
    """20 move segments: 12 inside San Francisco, 8 inside New York.

    Every endpoint is unique and within a few hundred meters of its city center.
    """
    segments = []
    for city, count, activity in [(SAN_FRANCISCO, 12, "walking"), (NEW_YORK, 8, "cycling")]:
        lat0, lon0 = city
        for i in range(count):
            start = GeoPoint(lat0 + i * 0.0002, lon0)
            middle = GeoPoint(lat0 + i * 0.0002 + 0.0001, lon0 + 0.0015)
            end = GeoPoint(lat0 + i * 0.0002 + 0.0001, lon0 + 0.003)
            segments.append(MoveSegment(type="move", activity=activity, track_points=[start, middle, end]))
    return segments


@pytest.fixture
def two_city_segments():
    return _two_city_segments()


@pytest.fixture
def two_city_storyline():
    """The same trips in storyline-export shape (one day, one activity per move)."""
    segments = []
    for seg in _two_city_segments():
        segments.append(
            {
                "type": "move",
                "activities": [
                    {
                        "activity": seg.activity,
                        "trackPoints": [{"lat": p.lat, "lon": p.lon} for p in seg.track_points],
                    }
                ],
            }
        )
        segments.append({"type": "place", "place": {"location": {"lat": 0.0, "lon": 0.0}}})
    return [{"date": "20140101", "segments": segments}]
