from __future__ import annotations

# Orchestrator for the small-multiples pipeline:
#   segments -> (activity filter) -> move endpoints -> DBSCAN -> rank/label
#   -> tile layout -> per-tile projection
# Each step lives in its own module; this file only wires them together and
# never reads global settings (callers pass an explicit ClusterOptions).

import logging
from dataclasses import dataclass
from typing import Sequence

from tripgrid.clustering.dbscan import cluster_points, clusters_to_points, extract_dataset, filter_activity
from tripgrid.clustering.ranking import LabelFn, RankOptions, rank_clusters
from tripgrid.config.settings import ClusterOptions
from tripgrid.domain.models import Cluster, MoveSegment, Tile
from tripgrid.layout.projection import MercatorProjection, fit_projection
from tripgrid.layout.tiles import layout_tiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CityMap:
    """One rendered cell: where it goes, what it shows, how to project it."""

    tile: Tile
    cluster: Cluster
    projection: MercatorProjection


def find_clusters(
    segments: Sequence[MoveSegment],
    options: ClusterOptions,
    label_fn: LabelFn,
) -> list[Cluster]:
    """Cluster move endpoints and return ranked, labeled clusters."""
    moves = filter_activity(segments, options.activity)
    dataset = extract_dataset(moves)
    groups = cluster_points(dataset, options.epsilon_m, options.min_points)
    logger.info(
        "Clustered %d unique endpoints into %d clusters (eps=%.0fm, min_points=%d)",
        len(dataset),
        len(groups),
        options.epsilon_m,
        options.min_points,
    )
    return rank_clusters(
        clusters_to_points(groups, dataset),
        label_fn,
        RankOptions(
            limit=options.limit,
            label_filter=options.label_filter,
            label_workers=options.label_workers,
        ),
    )


def place_clusters(clusters: Sequence[Cluster], *, canvas_height: int, canvas_width: int) -> list[CityMap]:
    """Assign each cluster a tile and fit a projection to it."""
    if not clusters:
        return []
    tiles = layout_tiles(len(clusters), canvas_height, canvas_width)
    return [
        CityMap(tile=tile, cluster=cluster, projection=fit_projection(cluster.points, tile.size, tile.size))
        for tile, cluster in zip(tiles, clusters)
    ]


def build_city_maps(
    segments: Sequence[MoveSegment],
    *,
    options: ClusterOptions,
    label_fn: LabelFn,
    canvas_height: int,
    canvas_width: int,
) -> list[CityMap]:
    """Run the full pipeline; an empty list means nothing dense enough was found."""
    clusters = find_clusters(segments, options, label_fn)
    if not clusters:
        logger.warning("No clusters found; try a larger epsilon or smaller min_points.")
        return []
    return place_clusters(clusters, canvas_height=canvas_height, canvas_width=canvas_width)
