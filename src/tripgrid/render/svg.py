"""
SVG renderer for the small-multiples grid.

Every tile is drawn as a group translated to the tile origin and clipped to the
tile square: a background rectangle, every move segment projected through the
tile's own projection, and the cluster label in the bottom-left corner.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Sequence

from tripgrid.domain.models import MoveSegment
from tripgrid.layout.projection import MercatorProjection
from tripgrid.pipeline import CityMap
from tripgrid.render.themes import Theme

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"


def activity_colors(segments: Sequence[MoveSegment], palette: Sequence[str]) -> dict[str, str]:
    """Ordinal color scale over the sorted unique activities (cycles the palette)."""
    activities = sorted({s.activity or "" for s in segments if s.is_move})
    return {a: palette[i % len(palette)] for i, a in enumerate(activities)}


def _fmt(v: float) -> str:
    return f"{v:.1f}"


def _piece_enters(a: tuple[float, float], b: tuple[float, float], width: float, height: float) -> bool:
    """Liang-Barsky test: does the line piece a-b touch the [0,w]x[0,h] box?"""
    dx, dy = b[0] - a[0], b[1] - a[1]
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, a[0]), (dx, width - a[0]), (-dy, a[1]), (dy, height - a[1])):
        if p == 0:
            if q < 0:
                return False
            continue
        t = q / p
        if p < 0:
            t0 = max(t0, t)
        else:
            t1 = min(t1, t)
        if t0 > t1:
            return False
    return True


def path_data(segment: MoveSegment, projection: MercatorProjection) -> str:
    """SVG path `d` for a segment, dropping stretches that never enter the tile.

    A line piece is kept when it intersects the tile, even with both ends
    outside; the group's clip path trims the part that sticks out.
    """
    projected = [projection.project(p) for p in segment.track_points]
    width, height = projection.clip_width, projection.clip_height

    runs: list[list[tuple[float, float]]] = []
    if len(projected) == 1 and projection.contains(*projected[0]):
        runs.append(projected)
    current: list[tuple[float, float]] = []
    for a, b in zip(projected, projected[1:]):
        if _piece_enters(a, b, width, height):
            if not current:
                current.append(a)
            current.append(b)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)

    parts: list[str] = []
    for run in runs:
        head, *tail = run
        parts.append(f"M{_fmt(head[0])},{_fmt(head[1])}")
        parts.extend(f"L{_fmt(x)},{_fmt(y)}" for x, y in tail)
    return "".join(parts)


def _draw_tile(
    root: ET.Element,
    defs: ET.Element,
    index: int,
    city_map: CityMap,
    moves: Sequence[MoveSegment],
    colors: dict[str, str],
    theme: Theme,
    *,
    opacity: float,
    max_font_px: float,
) -> None:
    tile = city_map.tile
    clip_id = f"tile-{index}"
    clip = ET.SubElement(defs, "clipPath", id=clip_id)
    ET.SubElement(clip, "rect", x="0", y="0", width=str(tile.size), height=str(tile.size))

    group = ET.SubElement(
        root,
        "g",
        {"transform": f"translate({tile.x},{tile.y})", "clip-path": f"url(#{clip_id})"},
    )
    ET.SubElement(
        group,
        "rect",
        x="0",
        y="0",
        width=str(tile.size),
        height=str(tile.size),
        fill=theme.background_for(tile.row, tile.column),
    )

    for move in moves:
        d = path_data(move, city_map.projection)
        if not d:
            continue
        ET.SubElement(
            group,
            "path",
            {
                "class": f"move {move.activity or ''}".strip(),
                "d": d,
                "fill": "none",
                "opacity": str(opacity),
                "stroke": colors.get(move.activity or "", theme.foreground_colors[0]),
                "stroke-width": str(theme.stroke_width),
                "stroke-linejoin": "round",
                "stroke-linecap": "round",
            },
        )

    if city_map.cluster.label:
        font_size = min(tile.size * 0.05, max_font_px)
        text = ET.SubElement(
            group,
            "text",
            {
                "x": _fmt(font_size * 0.5),
                "y": _fmt(tile.size - font_size * 0.5),
                "font-family": "sans-serif",
                "font-size": _fmt(font_size),
                "text-anchor": "start",
                "fill": theme.label_color,
                "stroke": "none",
            },
        )
        text.text = city_map.cluster.label


def render_svg(
    city_maps: Sequence[CityMap],
    segments: Sequence[MoveSegment],
    *,
    width: int,
    height: int,
    theme: Theme,
    opacity: float = 0.2,
    max_font_px: float = 16,
) -> str:
    """Render all tiles into one SVG document string."""
    root = ET.Element(
        "svg",
        {
            "xmlns": SVG_NS,
            "width": str(width),
            "height": str(height),
            "viewBox": f"0 0 {width} {height}",
        },
    )
    defs = ET.SubElement(root, "defs")
    moves = [s for s in segments if s.is_move and s.track_points]
    colors = activity_colors(moves, theme.foreground_colors)

    for index, city_map in enumerate(city_maps):
        _draw_tile(root, defs, index, city_map, moves, colors, theme, opacity=opacity, max_font_px=max_font_px)

    logger.debug("Rendered %d tiles with %d move paths each", len(city_maps), len(moves))
    return ET.tostring(root, encoding="unicode")


def write_output(svg: str, path: str | Path) -> Path:
    """Write the SVG document (UTF-8), creating parent directories."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text('<?xml version="1.0" encoding="UTF-8"?>\n' + svg, encoding="utf-8")
    logger.info("Wrote %s", out)
    return out
