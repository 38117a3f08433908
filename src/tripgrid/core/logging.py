"""
Logging configuration.

We use a YAML logging config (`src/tripgrid/config/logging.yaml`) and then apply
runtime overrides from settings (e.g., `TRIPGRID_LOG_LEVEL`, `--verbose`).
"""

from __future__ import annotations

import copy
import logging.config

from tripgrid.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Configure the Python logging system based on packaged YAML config + settings."""
    settings = get_settings()
    # The cached dict is shared; never mutate it in place.
    config = copy.deepcopy(get_logging_config())

    effective = (level or settings.app.log_level).upper()
    config.setdefault("root", {})["level"] = effective
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = effective

    logging.config.dictConfig(config)
