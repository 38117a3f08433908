from __future__ import annotations


# We keep typing intentionally flexible because overrides come from CLI flags and YAML
# fragments (dict-like objects) and we want clear error messages for unexpected shapes.
from typing import Any, Mapping

from tripgrid.config.settings import Settings

"""
Per-run settings overrides (safe subset).

The CLI turns flags such as `--limit` or `--cluster-epsilon` into an override
payload for a single run. This module:
- validates the override payload against a whitelist,
- deep-merges the safe subset onto current settings,
- re-validates with Pydantic to ensure types/ranges remain correct.

Security note:
We intentionally do NOT allow overriding the geocoding API key, URLs or cache paths.
"""

# A value of True means "allow any keys under this subtree".
# A nested dict means "only allow the listed keys, recursively".
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    # Clustering knobs only change numbers and filters.
    "clustering": True,
    "canvas": True,
    # Rendering: theme name and cosmetic numbers only.
    "render": {"theme": True, "label_max_font_px": True, "path_opacity": True},
    # Geocoding can be switched off, but endpoints and secrets stay fixed.
    "geocoding": {"enabled": True, "language": True},
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    # We create a new dict so the caller's `base` object is never mutated (safer for caching/reuse).
    merged: dict[str, Any] = dict(base)
    for key, override_value in override.items():
        # If both values are mappings, we merge recursively so nested keys override cleanly.
        if isinstance(override_value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), override_value)
            continue
        merged[key] = override_value
    return merged


def _filter_overrides(
    overrides: Mapping[str, Any],
    *,
    allowed_tree: Mapping[str, Any],
    path: tuple[str, ...] = (),
) -> dict[str, Any]:
    filtered: dict[str, Any] = {}
    for key, value in overrides.items():
        # If the key is not explicitly allowed, we reject it early with a precise path.
        if key not in allowed_tree:
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides contains a disallowed key: '{dotted_path}'"
            )

        allowed = allowed_tree[key]
        if allowed is True:
            filtered[key] = value
            continue

        # Restricted subtrees must be mappings we can recurse into.
        if not isinstance(value, Mapping):
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides key '{dotted_path}' must be a mapping"
            )

        filtered[key] = _filter_overrides(
            value, allowed_tree=allowed, path=(*path, key)
        )
    return filtered


def apply_settings_overrides(
    settings: Settings, overrides: Mapping[str, Any] | None
) -> Settings:
    """Return a new Settings with a whitelisted override payload merged in."""
    if not overrides:
        return settings

    safe_overrides = _filter_overrides(
        overrides, allowed_tree=ALLOWED_SETTINGS_OVERRIDES_TREE
    )
    merged_payload = _deep_merge(settings.model_dump(mode="python"), safe_overrides)

    # Re-validate via Pydantic so we never run with an invalid Settings object.
    return Settings.model_validate(merged_payload)
