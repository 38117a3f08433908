"""
Square tile packing for the small-multiples canvas.

Every map gets an equal share of the canvas area. The side of that share is then
shrunk independently along each axis until a whole number of tiles fits it, and
the smaller of the two becomes the uniform tile size. Tiles fill rows left to
right, top to bottom. Leftover canvas on the right/bottom edge stays empty.
"""

from __future__ import annotations

import math

from tripgrid.domain.models import Tile


def tile_size(count: int, canvas_height: int, canvas_width: int) -> int:
    """Return the side length (px) shared by all `count` tiles."""
    if count <= 0:
        raise ValueError("count must be > 0")
    if canvas_height <= 0 or canvas_width <= 0:
        raise ValueError("canvas dimensions must be > 0")

    per_tile_area = (canvas_height * canvas_width) / count
    max_side = math.sqrt(per_tile_area)

    height = math.floor(canvas_height / math.ceil(canvas_height / max_side))
    width = math.floor(canvas_width / math.ceil(canvas_width / max_side))
    size = min(height, width)
    if size <= 0:
        raise ValueError(f"canvas {canvas_width}x{canvas_height} is too small for {count} tiles")
    return size


def compute_tile(index: int, count: int, canvas_height: int, canvas_width: int) -> Tile:
    """Place tile `index` out of `count` on the canvas."""
    size = tile_size(count, canvas_height, canvas_width)
    across = canvas_width // size
    row, column = divmod(index, across)
    return Tile(row=row, column=column, x=column * size, y=row * size, size=size)


def layout_tiles(count: int, canvas_height: int, canvas_width: int) -> list[Tile]:
    """Place `count` tiles; one per index in `range(count)`."""
    size = tile_size(count, canvas_height, canvas_width)
    across = canvas_width // size
    tiles: list[Tile] = []
    for index in range(count):
        row, column = divmod(index, across)
        tiles.append(Tile(row=row, column=column, x=column * size, y=row * size, size=size))
    return tiles
