"""
Cluster ranking: label, order, filter and truncate.

Ranking turns raw DBSCAN groups into display-ready `Cluster` objects:
1. biggest clusters first (stable, so ties keep discovery order),
2. a display label per cluster from an injected resolver,
3. optional case-insensitive label filter,
4. a result-count limit.

The label resolver is the only side-effecting collaborator. It is injected so the
ranking stays testable with a stub, and it may be called from a thread pool:
results are joined back by cluster index, so output never depends on timing.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence

from tripgrid.core.geo import GeoPoint, centroid
from tripgrid.domain.models import Cluster

logger = logging.getLogger(__name__)

LabelFn = Callable[[GeoPoint], str]


@dataclass(frozen=True)
class RankOptions:
    """Knobs for `rank_clusters` (see `ClusterOptions` for the full set)."""

    limit: int = 12
    label_filter: str | None = None
    label_workers: int = 1


def _safe_label(label_fn: LabelFn, points: Sequence[GeoPoint]) -> str:
    center = centroid(points)
    try:
        label = label_fn(center)
    except Exception as exc:
        logger.warning("Label lookup failed for %.4f,%.4f: %s", center.lat, center.lon, exc)
        return ""
    return str(label or "")


def _resolve_labels(label_fn: LabelFn, groups: Sequence[Sequence[GeoPoint]], workers: int) -> list[str]:
    if workers <= 1 or len(groups) <= 1:
        return [_safe_label(label_fn, g) for g in groups]
    with ThreadPoolExecutor(max_workers=min(workers, len(groups))) as pool:
        # `map` yields in submission order regardless of completion order.
        return list(pool.map(lambda g: _safe_label(label_fn, g), groups))


def label_matches(label: str, label_filter: str | None) -> bool:
    """Case-insensitive substring match; an empty filter matches everything."""
    if not label_filter:
        return True
    return label_filter.lower() in (label or "").lower()


def rank_clusters(
    groups: Sequence[Sequence[GeoPoint]],
    label_fn: LabelFn,
    options: RankOptions | None = None,
) -> list[Cluster]:
    """Order, label, filter and truncate clusters.

    Raises:
        ValueError: If `options.limit` is negative.
    """
    opts = options or RankOptions()
    if opts.limit < 0:
        raise ValueError("limit must be >= 0")

    candidates = [list(g) for g in groups if g]
    # Python's sort is stable: equal sizes keep discovery order.
    ordered = sorted(candidates, key=len, reverse=True)

    if not opts.label_filter:
        # Without a filter only the first `limit` clusters can survive, so skip the rest.
        ordered = ordered[: opts.limit]

    labels = _resolve_labels(label_fn, ordered, opts.label_workers)
    clusters = [Cluster(points=pts, label=label) for pts, label in zip(ordered, labels)]

    if opts.label_filter:
        clusters = [c for c in clusters if label_matches(c.label, opts.label_filter)]

    result = clusters[: opts.limit]
    logger.info(
        "Ranked %d clusters -> %d kept (limit=%d, filter=%r)",
        len(candidates),
        len(result),
        opts.limit,
        opts.label_filter,
    )
    return result
