"""
Density-based clustering (DBSCAN) of trip endpoints.

The dataset is the de-duplicated set of first/last track points of every move
segment. Clusters are discovered by core-point reachability: a point is *core*
when at least `min_points` dataset points (itself included) lie within
`epsilon_m` meters of it. Core points seed and grow clusters; non-core points
reachable from a core point join as border points; everything else is noise.

This module is a pure function of its inputs: no caching, no global state.
"""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from collections import deque
from typing import Callable, Iterable, Sequence

from tripgrid.core.geo import GeoPoint, haversine_m, meters_per_degree_lat
from tripgrid.domain.models import MoveSegment

logger = logging.getLogger(__name__)

DistanceFn = Callable[[GeoPoint, GeoPoint], float]


def filter_activity(segments: Iterable[MoveSegment], activity: str | None) -> list[MoveSegment]:
    """Keep only segments with the given activity (None keeps everything)."""
    if not activity:
        return list(segments)
    return [s for s in segments if s.activity == activity]


def extract_dataset(segments: Iterable[MoveSegment]) -> list[GeoPoint]:
    """Unique first/last track points of move segments, in first-seen order."""
    seen: set[GeoPoint] = set()
    dataset: list[GeoPoint] = []
    for segment in segments:
        if not segment.is_move or not segment.track_points:
            continue
        for point in (segment.track_points[0], segment.track_points[-1]):
            key = GeoPoint(lat=float(point.lat), lon=float(point.lon))
            if key in seen:
                continue
            seen.add(key)
            dataset.append(key)
    return dataset


class _NeighborIndex:
    """Epsilon-neighborhood lookups over a fixed point list.

    Candidates are narrowed with a latitude band (great-circle distance is never
    shorter than the meridian arc between the two latitudes) and then checked
    with the real distance function. Results are returned in dataset order.
    """

    def __init__(self, points: Sequence[GeoPoint], epsilon_m: float, distance: DistanceFn, *, use_band: bool):
        self._points = points
        self._epsilon_m = float(epsilon_m)
        self._distance = distance
        self._use_band = use_band
        self._order = sorted(range(len(points)), key=lambda i: points[i].lat)
        self._lats = [points[i].lat for i in self._order]
        # Small slack so float rounding never drops a point exactly at epsilon.
        self._band_deg = self._epsilon_m / meters_per_degree_lat() * (1 + 1e-9) + 1e-12

    def neighbors(self, i: int) -> list[int]:
        p = self._points[i]
        if self._use_band:
            lo = bisect_left(self._lats, p.lat - self._band_deg)
            hi = bisect_right(self._lats, p.lat + self._band_deg)
            candidates = sorted(self._order[lo:hi])
        else:
            candidates = range(len(self._points))
        return [j for j in candidates if j == i or self._distance(p, self._points[j]) <= self._epsilon_m]


def cluster_points(
    points: Sequence[GeoPoint],
    epsilon_m: float,
    min_points: int,
    *,
    distance: DistanceFn = haversine_m,
) -> list[list[int]]:
    """Run DBSCAN and return clusters as lists of dataset indices.

    Args:
        points: Dataset in stable insertion order.
        epsilon_m: Neighborhood radius in meters (inclusive).
        min_points: Minimum neighborhood size (point itself included) for a core point.
        distance: Metric; the latitude-band shortcut is only used with the default.

    Returns:
        Groups in discovery order; members listed in the order they were claimed.
        Unclaimed (noise) points appear in no group.
    """
    if epsilon_m < 0:
        raise ValueError("epsilon_m must be >= 0")
    n = len(points)
    if n == 0:
        return []

    index = _NeighborIndex(points, epsilon_m, distance, use_band=distance is haversine_m)
    visited = [False] * n
    assigned = [False] * n
    clusters: list[list[int]] = []

    for i in range(n):
        if visited[i]:
            continue
        visited[i] = True
        seed_neighbors = index.neighbors(i)
        if len(seed_neighbors) < min_points:
            # Noise for now; a later cluster may still claim it as a border point.
            continue

        members: list[int] = []
        frontier = deque(seed_neighbors)
        while frontier:
            j = frontier.popleft()
            if not visited[j]:
                visited[j] = True
                neighbors = index.neighbors(j)
                if len(neighbors) >= min_points:
                    frontier.extend(neighbors)
            if not assigned[j]:
                assigned[j] = True
                members.append(j)
        clusters.append(members)

    logger.debug(
        "DBSCAN eps=%.1fm min_points=%d: %d points -> %d clusters (%d noise)",
        epsilon_m,
        min_points,
        n,
        len(clusters),
        n - sum(len(c) for c in clusters),
    )
    return clusters


def clusters_to_points(groups: Iterable[Sequence[int]], dataset: Sequence[GeoPoint]) -> list[list[GeoPoint]]:
    """Map index groups back to their dataset points."""
    return [[dataset[i] for i in group] for group in groups]
