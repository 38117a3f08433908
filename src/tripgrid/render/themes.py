"""Packaged color themes (`themes.yaml`)."""

from __future__ import annotations

from functools import lru_cache
from importlib import resources
from typing import Any

import yaml
from pydantic import BaseModel, Field


class Theme(BaseModel):
    background_colors: list[str] = Field(..., min_length=1)
    foreground_colors: list[str] = Field(..., min_length=1)
    stroke_width: float = Field(1.0, gt=0)

    @property
    def label_color(self) -> str:
        return self.foreground_colors[-1]

    def background_for(self, row: int, column: int) -> str:
        """Checkerboard between the first and last background color."""
        choices = [self.background_colors[0], self.background_colors[-1]]
        return choices[(row + column) % len(choices)]


@lru_cache
def _raw_themes() -> dict[str, Any]:
    text = resources.files("tripgrid.render").joinpath("themes.yaml").read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("Invalid YAML root object for themes.yaml; expected a mapping.")
    return data


def theme_names() -> list[str]:
    return sorted(_raw_themes())


def load_theme(name: str) -> Theme:
    """Return the named theme.

    Raises:
        KeyError: Unknown theme (message lists the available names).
    """
    raw = _raw_themes().get(name)
    if raw is None:
        raise KeyError(f"Unknown theme '{name}'; available: {', '.join(theme_names())}")
    return Theme.model_validate(raw)
