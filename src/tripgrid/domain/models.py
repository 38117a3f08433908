"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- loader output (`MoveSegment`)
- clustering/ranking output (`Cluster`)
- layout output (`Tile`)

Keeping these models in one place helps:
- validation (reject bad inputs early),
- typed refactors,
- consistent JSON output across CLI and renderer.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripgrid.core.geo import GeoPoint, centroid


class MoveSegment(BaseModel):
    """One type-tagged piece of a trip (a move activity or a visited place)."""

    model_config = ConfigDict(frozen=True)

    type: str
    activity: str | None = None
    track_points: list[GeoPoint] = Field(default_factory=list)

    @property
    def is_move(self) -> bool:
        return self.type == "move"


class Cluster(BaseModel):
    """A group of dataset points plus its resolved display label."""

    model_config = ConfigDict(frozen=True)

    points: list[GeoPoint]
    label: str = ""

    @field_validator("points")
    @classmethod
    def _non_empty(cls, points: list[GeoPoint]) -> list[GeoPoint]:
        if not points:
            raise ValueError("cluster points must not be empty")
        return points

    @property
    def centroid(self) -> GeoPoint:
        return centroid(self.points)

    @property
    def size(self) -> int:
        return len(self.points)


class Tile(BaseModel):
    """Placement of one map square on the output canvas (pixels)."""

    model_config = ConfigDict(frozen=True)

    row: int = Field(..., ge=0)
    column: int = Field(..., ge=0)
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    size: int = Field(..., gt=0)
