"""
Environment + project-root helpers.

Problems this module solves:
- Users often keep the geocoding API key in a repo-local `.env` file.
- Running the CLI from different working directories can cause relative paths
  (e.g., the `.cache/...` directory) to resolve in surprising places.

This module provides:
- `load_dotenv_if_present()`: `.env` loading (does not override existing env vars)
- `get_project_root()`: find the project root (prefers `.env` / `.git` / `pyproject.toml`)
- `resolve_project_path()`: resolve relative paths against the project root
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


def _iter_parents(start: Path) -> list[Path]:
    start = start.resolve()
    return [start, *list(start.parents)]


def _looks_like_project_root(path: Path) -> bool:
    if (path / ".env").is_file():
        return True
    if (path / ".git").exists():
        return True
    return (path / "pyproject.toml").is_file()


@lru_cache
def get_project_root() -> Path:
    """Return the best-guess project root directory (cached)."""
    # Explicit override (useful in CI or when running from elsewhere).
    override = os.getenv("TRIPGRID_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    env_file = os.getenv("TRIPGRID_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    for candidate in _iter_parents(Path.cwd()):
        if _looks_like_project_root(candidate):
            return candidate

    return Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once if present; returns the loaded env path (or None).

    It never overrides env vars already set in the process environment.
    """
    explicit = os.getenv("TRIPGRID_ENV_FILE")
    if explicit:
        env_path = Path(explicit).expanduser().resolve()
        if env_path.is_file():
            load_dotenv(dotenv_path=env_path, override=False)
            return env_path
        return None

    env_path = get_project_root() / ".env"
    if env_path.is_file():
        load_dotenv(dotenv_path=env_path, override=False)
        return env_path
    return None


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
