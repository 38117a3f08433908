from tripgrid.clustering.dbscan import cluster_points, extract_dataset
from tripgrid.config.settings import ClusterOptions
from tripgrid.pipeline import build_city_maps, find_clusters


def _label(centroid):
    return "New York, New York" if centroid.lon > -100 else "San Francisco, California"


def test_two_tight_groups_become_two_clusters(two_city_segments):
    dataset = extract_dataset(two_city_segments)
    assert len(dataset) == 40

    groups = cluster_points(dataset, 1000, 4)
    assert len(groups) == 2
    assert all(len(g) >= 4 for g in groups)
    assert sorted(len(g) for g in groups) == [16, 24]


def test_ranked_larger_cluster_first(two_city_segments):
    clusters = find_clusters(two_city_segments, ClusterOptions(epsilon_m=1000, min_points=4, limit=12), _label)
    assert [c.label for c in clusters] == ["San Francisco, California", "New York, New York"]
    assert [c.size for c in clusters] == [24, 16]


def test_activity_filter_applies_before_clustering(two_city_segments):
    options = ClusterOptions(epsilon_m=1000, min_points=4, activity="cycling")
    clusters = find_clusters(two_city_segments, options, _label)
    assert [c.label for c in clusters] == ["New York, New York"]


def test_city_maps_get_tiles_and_projections(two_city_segments):
    maps = build_city_maps(
        two_city_segments,
        options=ClusterOptions(epsilon_m=1000, min_points=4),
        label_fn=_label,
        canvas_height=400,
        canvas_width=800,
    )
    assert [(m.tile.row, m.tile.column) for m in maps] == [(0, 0), (0, 1)]
    for m in maps:
        for p in m.cluster.points:
            x, y = m.projection.project(p)
            assert m.projection.contains(x, y)


def test_nothing_dense_enough_yields_no_maps(two_city_segments):
    maps = build_city_maps(
        two_city_segments,
        options=ClusterOptions(epsilon_m=1, min_points=4),
        label_fn=_label,
        canvas_height=400,
        canvas_width=800,
    )
    assert maps == []
