"""
TripGrid CLI entrypoint.

    tripgrid cities storyline.json cities.svg --limit 9 --filter cal

It delegates clustering/layout to `tripgrid.pipeline` and drawing to
`tripgrid.render.svg`; this module only maps flags onto settings.
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any

from tripgrid.clustering.dbscan import filter_activity
from tripgrid.config.overrides import apply_settings_overrides
from tripgrid.config.settings import Settings, get_settings, to_cluster_options
from tripgrid.core.logging import configure_logging
from tripgrid.ingestion.geocode_client import NullLabelResolver, build_label_resolver
from tripgrid.ingestion.storyline import load_storyline
from tripgrid.pipeline import CityMap, build_city_maps
from tripgrid.render.svg import render_svg, write_output
from tripgrid.render.themes import load_theme

logger = logging.getLogger(__name__)


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Collect only the flags the user actually passed."""
    clustering: dict[str, Any] = {}
    for attr, key in [
        ("limit", "limit"),
        ("activity", "activity"),
        ("filter", "label_filter"),
        ("min_points", "min_points"),
        ("cluster_epsilon", "epsilon_m"),
        ("label_workers", "label_workers"),
    ]:
        v = getattr(args, attr)
        if v is not None:
            clustering[key] = v

    canvas: dict[str, Any] = {}
    if args.width is not None:
        canvas["width"] = args.width
    if args.height is not None:
        canvas["height"] = args.height

    overrides: dict[str, Any] = {}
    if clustering:
        overrides["clustering"] = clustering
    if canvas:
        overrides["canvas"] = canvas
    if args.theme is not None:
        overrides["render"] = {"theme": args.theme}
    if args.no_labels:
        overrides["geocoding"] = {"enabled": False}
    return overrides


def _layout_payload(city_maps: list[CityMap]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for cm in city_maps:
        center = cm.cluster.centroid
        out.append(
            {
                "tile": cm.tile.model_dump(),
                "label": cm.cluster.label,
                "points": cm.cluster.size,
                "centroid": {"lat": center.lat, "lon": center.lon},
                "scale": cm.projection.scale,
            }
        )
    return out


def _cmd_cities(args: argparse.Namespace) -> int:
    """Handle the `cities` subcommand."""
    settings: Settings = apply_settings_overrides(get_settings(), _overrides_from_args(args))
    theme = load_theme(settings.render.theme)
    # Drawing shows only the selected activity too, not just the clustering.
    segments = filter_activity(load_storyline(args.input), settings.clustering.activity)

    resolver = build_label_resolver(settings)
    try:
        city_maps = build_city_maps(
            segments,
            options=to_cluster_options(settings),
            label_fn=resolver,
            canvas_height=settings.canvas.height,
            canvas_width=settings.canvas.width,
        )
    finally:
        if not isinstance(resolver, NullLabelResolver):
            resolver.close()

    if args.json:
        print(json.dumps(_layout_payload(city_maps), ensure_ascii=False, indent=2))
        return 0

    svg = render_svg(
        city_maps,
        segments,
        width=settings.canvas.width,
        height=settings.canvas.height,
        theme=theme,
        opacity=settings.render.path_opacity,
        max_font_px=settings.render.label_max_font_px,
    )
    write_output(svg, args.output)
    for cm in city_maps:
        print(f"{cm.tile.row},{cm.tile.column}  {cm.cluster.size:>4} pts  {cm.cluster.label or '(unlabeled)'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the TripGrid CLI."""
    parser = argparse.ArgumentParser(prog="tripgrid")
    parser.add_argument("--log-level", type=str, default=None, help="Override the configured log level.")
    sub = parser.add_subparsers(dest="command", required=True)

    cities = sub.add_parser("cities", help="Generate small multiple city maps.")
    cities.add_argument("input", help="Storyline JSON export")
    cities.add_argument("output", help="Output SVG path")
    cities.add_argument("--limit", type=int, default=None, help="Limit the number of cities displayed")
    cities.add_argument("--activity", type=str, default=None, help="Filter movements to specified activity")
    cities.add_argument(
        "--filter", type=str, default=None, help="Only render cities whose label contains the given string"
    )
    cities.add_argument(
        "--min-points", dest="min_points", type=int, default=None, help="(advanced) Minimum points per cluster"
    )
    cities.add_argument(
        "--cluster-epsilon",
        dest="cluster_epsilon",
        type=float,
        default=None,
        help="(advanced) Clustering neighbor radius, in meters",
    )
    cities.add_argument("--label-workers", dest="label_workers", type=int, default=None)
    cities.add_argument("--width", type=int, default=None)
    cities.add_argument("--height", type=int, default=None)
    cities.add_argument("--theme", type=str, default=None)
    cities.add_argument("--no-labels", dest="no_labels", action="store_true", help="Skip reverse geocoding")
    cities.add_argument("--json", action="store_true", help="Print the tile layout as JSON instead of drawing")
    cities.set_defaults(func=_cmd_cities)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m tripgrid.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
