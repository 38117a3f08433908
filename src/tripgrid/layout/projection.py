"""
Per-tile map projection.

Each tile gets its own spherical Mercator projection, fitted so the bounding box
of the cluster's control points fills the central 60% of the tile (20% margin on
every side) without distorting either axis. The looser axis is centered.

Projected coordinates are tile-local pixels: (0, 0) is the tile's top-left
corner and y grows downward. Anything outside the tile is clipped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from tripgrid.core.geo import GeoPoint

MAX_LATITUDE = 85.05112877980659
INSET_MARGIN = 0.2
# Smallest bounding box (radians, either axis) we zoom into; one hundredth of a
# degree is roughly 1 km. Tighter boxes (e.g. a single point) are padded to it.
MIN_SPAN_RAD = math.radians(0.01)


def mercator_raw(lat: float, lon: float) -> tuple[float, float]:
    """Unit-sphere Mercator: (x, y) in radians, y pointing north."""
    phi = math.radians(max(-MAX_LATITUDE, min(MAX_LATITUDE, lat)))
    return math.radians(lon), math.log(math.tan(math.pi / 4 + phi / 2))


@dataclass(frozen=True)
class MercatorProjection:
    """Fitted Mercator projection for one tile.

    Attributes:
        scale: Pixels per radian.
        translate_x: Pixel x of raw x == 0.
        translate_y: Pixel y of raw y == 0.
        clip_width: Tile width in pixels.
        clip_height: Tile height in pixels.
    """

    scale: float
    translate_x: float
    translate_y: float
    clip_width: float
    clip_height: float

    def __call__(self, lat: float, lon: float) -> tuple[float, float]:
        x, y = mercator_raw(lat, lon)
        return self.translate_x + self.scale * x, self.translate_y - self.scale * y

    def project(self, point: GeoPoint) -> tuple[float, float]:
        return self(point.lat, point.lon)

    def contains(self, px: float, py: float) -> bool:
        """True when a projected point lies inside the clip extent."""
        return 0.0 <= px <= self.clip_width and 0.0 <= py <= self.clip_height

    def project_clipped(self, point: GeoPoint) -> tuple[float, float] | None:
        """Project `point`, or return None when it falls outside the tile."""
        px, py = self.project(point)
        return (px, py) if self.contains(px, py) else None


def bounding_box(points: Iterable[GeoPoint]) -> tuple[GeoPoint, GeoPoint]:
    """Return (top_left, bottom_right) = ((max_lat, min_lon), (min_lat, max_lon))."""
    pts = list(points)
    if not pts:
        raise ValueError("bounding_box requires at least one point")
    lats = [p.lat for p in pts]
    lons = [p.lon for p in pts]
    top_left = GeoPoint(lat=max(lats), lon=min(lons))
    bottom_right = GeoPoint(lat=min(lats), lon=max(lons))
    return top_left, bottom_right


def inset_extent(tile_height: float, tile_width: float) -> tuple[tuple[float, float], tuple[float, float]]:
    """Target rectangle ((x0, y0), (x1, y1)) inside the tile."""
    lo, hi = INSET_MARGIN, 1.0 - INSET_MARGIN
    return (tile_width * lo, tile_height * lo), (tile_width * hi, tile_height * hi)


def fit_projection(control_points: Sequence[GeoPoint], tile_height: float, tile_width: float) -> MercatorProjection:
    """Fit a Mercator projection of `control_points` into the tile's inset extent.

    Raises:
        ValueError: If there are no control points or the tile has no area.
    """
    if not control_points:
        raise ValueError("fit_projection requires at least one control point")
    if tile_height <= 0 or tile_width <= 0:
        raise ValueError("tile dimensions must be > 0")

    top_left, bottom_right = bounding_box(control_points)
    x0, y1 = mercator_raw(top_left.lat, top_left.lon)
    x1, y0 = mercator_raw(bottom_right.lat, bottom_right.lon)
    span_x = x1 - x0
    span_y = y1 - y0
    center_x = (x0 + x1) / 2
    center_y = (y0 + y1) / 2

    if max(span_x, span_y) < MIN_SPAN_RAD:
        span_x = span_y = MIN_SPAN_RAD

    (ex0, ey0), (ex1, ey1) = inset_extent(tile_height, tile_width)
    extent_w = ex1 - ex0
    extent_h = ey1 - ey0

    # A zero span on one axis leaves the other axis to decide.
    scales = []
    if span_x > 0:
        scales.append(extent_w / span_x)
    if span_y > 0:
        scales.append(extent_h / span_y)
    scale = min(scales)

    return MercatorProjection(
        scale=scale,
        translate_x=(ex0 + ex1) / 2 - scale * center_x,
        translate_y=(ey0 + ey1) / 2 + scale * center_y,
        clip_width=float(tile_width),
        clip_height=float(tile_height),
    )
