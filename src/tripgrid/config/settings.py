# src/tripgrid/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/tripgrid/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `GOOGLE_GEOCODING_API_KEY`, `TRIPGRID_LOG_LEVEL`)
- an external YAML file via `TRIPGRID_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
- The clustering/layout core never reads settings itself; callers convert them
  into an explicit `ClusterOptions` via `to_cluster_options`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from tripgrid.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `tripgrid.config`."""
    text = resources.files("tripgrid.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "TripGrid"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/tripgrid"
    default_ttl_seconds: int = 60 * 60 * 24 * 30


class ClusteringSettings(BaseModel):
    epsilon_m: float = Field(12_000, ge=0)
    min_points: int = 4
    limit: int = Field(12, ge=0)
    label_filter: str | None = None
    activity: str | None = None
    label_workers: int = Field(1, ge=1, le=32)


class CanvasSettings(BaseModel):
    width: int = Field(1000, gt=0)
    height: int = Field(1000, gt=0)


class GeocodingSettings(BaseModel):
    enabled: bool = True
    base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    api_key: str | None = None
    language: str | None = None
    cache_ttl_seconds: int = 60 * 60 * 24 * 90
    cache_precision: int = Field(4, ge=0, le=8)
    min_interval_seconds: float = Field(0.0, ge=0)


class RenderSettings(BaseModel):
    theme: str = "default"
    label_max_font_px: float = 16
    path_opacity: float = Field(0.2, ge=0, le=1)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    canvas: CanvasSettings = Field(default_factory=CanvasSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)


@dataclass(frozen=True)
class ClusterOptions:
    """Explicit knobs for the clustering/ranking core."""

    epsilon_m: float = 12_000
    min_points: int = 4
    limit: int = 12
    label_filter: str | None = None
    activity: str | None = None
    label_workers: int = 1


def to_cluster_options(settings: Settings) -> ClusterOptions:
    """Project the `clustering` section onto the core's option object."""
    c = settings.clustering
    return ClusterOptions(
        epsilon_m=float(c.epsilon_m),
        min_points=int(c.min_points),
        limit=int(c.limit),
        label_filter=c.label_filter or None,
        activity=c.activity or None,
        label_workers=int(c.label_workers),
    )


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)
    cache_dir = os.getenv("TRIPGRID_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    log_level = os.getenv("TRIPGRID_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    api_key = os.getenv("GOOGLE_GEOCODING_API_KEY")
    if api_key:
        data.setdefault("geocoding", {})["api_key"] = api_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("TRIPGRID_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
