"""
Reverse geocoding client (Google Geocoding API) used to label clusters.

A cluster label is "<city>, <region>" taken from the first `locality` and the
first `administrative_area_level_1` address components of the response. Label
lookup is cosmetic: on any failure (transport error, non-OK status, odd JSON)
the client returns an empty string and the map is drawn without a title.

Results are cached on disk keyed by rounded coordinates; if the API is down we
fall back to an expired cache entry before giving up.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Protocol

import httpx

from tripgrid.config.settings import Settings
from tripgrid.core.cache import FileCache
from tripgrid.core.env import resolve_project_path
from tripgrid.core.geo import GeoPoint
from tripgrid.core.http import JsonHttpClient

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "geocode"
# Statuses that describe the location itself and are worth remembering.
_CACHEABLE_STATUSES = {"OK", "ZERO_RESULTS"}


class LabelResolver(Protocol):
    """Maps a cluster centroid to a display label ("" when unknown)."""

    def __call__(self, centroid: GeoPoint) -> str: ...


class NullLabelResolver:
    """Resolver for offline runs: every cluster stays unlabeled."""

    def __call__(self, centroid: GeoPoint) -> str:
        return ""


class GeocodeError(RuntimeError):
    """The geocoding API answered, but not with a usable status."""

    def __init__(self, status: str, message: str | None = None):
        super().__init__(f"geocoding status {status}" + (f": {message}" if message else ""))
        self.status = status


def _is_upstream_failure(exc: Exception) -> bool:
    """Failures of the API itself; only these fall back to an expired label."""
    return isinstance(exc, (httpx.HTTPError, GeocodeError, ValueError))


def coord_key(point: GeoPoint, precision: int) -> str:
    """Stable cache key: "lat,lon" rounded to `precision` decimals."""
    return f"{point.lat:.{precision}f},{point.lon:.{precision}f}"


def _first_long_name(components: list[dict[str, Any]], component_type: str) -> str:
    for component in components:
        types = component.get("types") or []
        if component_type in types:
            return str(component.get("long_name") or "")
    return ""


def label_from_response(payload: Any) -> str:
    """Build "<locality>, <region>" from a geocoding response ("" if not OK)."""
    if not isinstance(payload, dict) or payload.get("status") != "OK":
        return ""
    components: list[dict[str, Any]] = []
    for result in payload.get("results") or []:
        if not isinstance(result, dict):
            continue
        for component in result.get("address_components") or []:
            if isinstance(component, dict):
                components.append(component)

    city = _first_long_name(components, "locality")
    region = _first_long_name(components, "administrative_area_level_1")
    return ", ".join(part for part in (city, region) if part)


class GeocodeClient:
    """Cached, throttled reverse geocoder; usable directly as a `LabelResolver`."""

    def __init__(self, settings: Settings, cache: FileCache, http: JsonHttpClient | None = None):
        self._settings = settings
        self._cache = cache
        self._http = http or JsonHttpClient(timeout_seconds=settings.app.http_timeout_seconds)
        self._lock = threading.Lock()
        self._last_request_at = 0.0

    def __call__(self, centroid: GeoPoint) -> str:
        return self.resolve(centroid)

    def close(self) -> None:
        self._http.close()

    def _wait_for_slot(self) -> None:
        interval = float(self._settings.geocoding.min_interval_seconds)
        if interval <= 0:
            return
        with self._lock:
            wait = interval - (time.monotonic() - self._last_request_at)
            if wait > 0:
                time.sleep(wait)
            self._last_request_at = time.monotonic()

    def _fetch(self, centroid: GeoPoint) -> dict[str, Any]:
        cfg = self._settings.geocoding
        params: dict[str, Any] = {"latlng": f"{centroid.lat},{centroid.lon}"}
        if cfg.api_key:
            params["key"] = cfg.api_key
        if cfg.language:
            params["language"] = cfg.language

        self._wait_for_slot()
        logger.info("Reverse geocoding %.4f,%.4f", centroid.lat, centroid.lon)
        payload = self._http.get_json(cfg.base_url, params=params)
        if not isinstance(payload, dict):
            raise GeocodeError("INVALID_RESPONSE", "expected a JSON object")
        status = str(payload.get("status") or "UNKNOWN")
        if status not in _CACHEABLE_STATUSES:
            raise GeocodeError(status, payload.get("error_message"))
        return {"status": status, "label": label_from_response(payload)}

    def resolve(self, centroid: GeoPoint) -> str:
        """Return the label for `centroid`, or "" on any failure."""
        cfg = self._settings.geocoding
        if not cfg.enabled:
            return ""
        key = coord_key(centroid, cfg.cache_precision)
        try:
            entry = self._cache.get_or_set(
                CACHE_NAMESPACE,
                key,
                lambda: self._fetch(centroid),
                ttl_seconds=cfg.cache_ttl_seconds,
                stale_if_error=True,
                stale_predicate=_is_upstream_failure,
            )
        except Exception as exc:
            logger.warning("Reverse geocoding failed for %s: %s", key, exc)
            return ""
        if not isinstance(entry, dict):
            return ""
        return str(entry.get("label") or "")


def build_cache(settings: Settings) -> FileCache:
    """Build the on-disk cache configured in `settings.cache`."""
    return FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )


def build_label_resolver(settings: Settings) -> GeocodeClient | NullLabelResolver:
    """Return the configured resolver (a no-op one when geocoding is disabled)."""
    if not settings.geocoding.enabled:
        return NullLabelResolver()
    return GeocodeClient(settings, build_cache(settings))
