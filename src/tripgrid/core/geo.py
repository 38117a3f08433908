from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt
from typing import Iterable

"""
Geospatial helpers.

We keep a tiny geometry layer here so clustering and layout can do distance
calculations without pulling in heavier GIS dependencies.
"""

EARTH_RADIUS_M = 6_371_000


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees.

    Frozen and hashable: two points are equal only when both coordinates match
    exactly, which is what dataset deduplication relies on.
    """

    lat: float
    lon: float


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points.
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))


def meters_per_degree_lat() -> float:
    """Arc length of one degree of latitude on the spherical Earth."""
    return radians(1.0) * EARTH_RADIUS_M


def centroid(points: Iterable[GeoPoint]) -> GeoPoint:
    """Planar mean of latitudes and longitudes.

    All cluster members are local, so the curvature of the earth is ignored.
    """
    pts = list(points)
    if not pts:
        raise ValueError("centroid requires at least one point")
    lat = sum(p.lat for p in pts) / len(pts)
    lon = sum(p.lon for p in pts) / len(pts)
    return GeoPoint(lat=lat, lon=lon)
