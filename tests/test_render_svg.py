import xml.etree.ElementTree as ET

import pytest

from tripgrid.config.settings import ClusterOptions
from tripgrid.core.geo import GeoPoint
from tripgrid.domain.models import MoveSegment
from tripgrid.layout.projection import fit_projection
from tripgrid.pipeline import build_city_maps
from tripgrid.render.svg import activity_colors, path_data, render_svg, write_output
from tripgrid.render.themes import load_theme, theme_names

NS = {"svg": "http://www.w3.org/2000/svg"}


def _maps(segments):
    return build_city_maps(
        segments,
        options=ClusterOptions(epsilon_m=1000, min_points=4),
        label_fn=lambda c: "San Francisco" if c.lon < -100 else "",
        canvas_height=300,
        canvas_width=600,
    )


def test_theme_lookup():
    assert "default" in theme_names()
    theme = load_theme("default")
    assert theme.background_for(0, 0) == theme.background_colors[0]
    assert theme.background_for(0, 1) == theme.background_colors[-1]
    with pytest.raises(KeyError, match="available"):
        load_theme("no-such-theme")


def test_activity_colors_are_ordinal_over_sorted_activities(two_city_segments):
    colors = activity_colors(two_city_segments, ["red", "blue"])
    assert colors == {"cycling": "red", "walking": "blue"}


def test_path_data_drops_segments_outside_the_tile(two_city_segments):
    maps = _maps(two_city_segments)
    sf_map = maps[0]
    assert path_data(two_city_segments[0], sf_map.projection).startswith("M")
    # A New York trip never enters the San Francisco tile.
    assert path_data(two_city_segments[-1], sf_map.projection) == ""


def test_render_svg_draws_one_group_per_tile(two_city_segments, tmp_path):
    maps = _maps(two_city_segments)
    svg = render_svg(maps, two_city_segments, width=600, height=300, theme=load_theme("dark"))
    root = ET.fromstring(svg)

    groups = root.findall("svg:g", NS)
    assert len(groups) == 2
    assert groups[1].get("transform") == "translate(300,0)"
    assert len(root.findall("svg:defs/svg:clipPath", NS)) == 2

    sf_paths = groups[0].findall("svg:path", NS)
    assert len(sf_paths) == 12
    assert all(p.get("opacity") == "0.2" for p in sf_paths)

    labels = [t.text for t in root.iter("{http://www.w3.org/2000/svg}text")]
    assert labels == ["San Francisco"]

    out = write_output(svg, tmp_path / "nested" / "cities.svg")
    assert out.read_text(encoding="utf-8").startswith("<?xml")


def test_path_data_keeps_a_piece_crossing_the_tile_with_both_ends_outside():
    projection = fit_projection([GeoPoint(37.77, -122.42), GeoPoint(37.78, -122.41)], 100, 100)
    crossing = MoveSegment(
        type="move", activity="train", track_points=[GeoPoint(37.775, -124.015), GeoPoint(37.775, -120.815)]
    )
    passing_north = MoveSegment(
        type="move", activity="train", track_points=[GeoPoint(38.5, -124.015), GeoPoint(38.5, -120.815)]
    )

    d = path_data(crossing, projection)
    assert d.startswith("M") and d.count("L") == 1
    assert path_data(passing_north, projection) == ""
