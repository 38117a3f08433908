from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from hashlib import sha256
from pathlib import Path
from typing import Any, Callable

"""
Simple on-disk JSON cache.

This cache is intentionally lightweight:
- It stores JSON-serializable values on disk under `.cache/tripgrid/` by default.
- Keys are hashed (SHA-256) to avoid filesystem path issues.
- TTL is enforced on read; expired entries stay on disk for stale-if-error reads.

It is used by the reverse geocoder so that re-rendering the same storyline does
not repeat label lookups for clusters it has already seen.
"""


@dataclass(frozen=True)
class CacheEntry:
    """Serialized cache envelope stored on disk."""

    created_at_unix: int
    ttl_seconds: int
    value: Any

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "CacheEntry":
        return cls(
            created_at_unix=int(raw["created_at_unix"]),
            ttl_seconds=int(raw["ttl_seconds"]),
            value=raw["value"],
        )

    def is_fresh(self, now: int, ttl_seconds: int | None = None) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        return now - self.created_at_unix <= ttl


class FileCache:
    """A filesystem-backed cache keyed by (namespace, key)."""

    def __init__(
        self, base_dir: Path, enabled: bool = True, default_ttl_seconds: int = 86400
    ):
        self._base_dir = Path(base_dir)
        self._enabled = enabled
        self._default_ttl_seconds = default_ttl_seconds

    def _key_path(self, namespace: str, key: str) -> Path:
        """Return the file path for a cache entry (hash-based)."""
        digest = sha256(f"{namespace}:{key}".encode("utf-8")).hexdigest()
        return self._base_dir / namespace / f"{digest}.json"

    def _read_entry(self, namespace: str, key: str) -> CacheEntry | None:
        path = self._key_path(namespace, key)
        if not path.exists():
            return None
        try:
            return CacheEntry.from_raw(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError):
            # Unreadable or half-written entry: behave like a miss.
            return None

    def get(
        self, namespace: str, key: str, ttl_seconds: int | None = None
    ) -> Any | None:
        """Read a cached value if present and not expired; otherwise return None."""
        if not self._enabled:
            return None
        entry = self._read_entry(namespace, key)
        if entry is None or not entry.is_fresh(int(time.time()), ttl_seconds):
            return None
        return entry.value

    def get_stale(self, namespace: str, key: str) -> Any | None:
        """Read a cached value even if expired; otherwise return None."""
        if not self._enabled:
            return None
        entry = self._read_entry(namespace, key)
        return entry.value if entry is not None else None

    def set(
        self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None
    ) -> None:
        """Write a JSON-serializable value to disk.

        Notes:
        - Writes via a temporary file + atomic replace to avoid partial/corrupt cache files.
        - The temp name is per-thread so concurrent lookups of one key do not collide.
        """
        if not self._enabled:
            return None

        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl_seconds
        path = self._key_path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "created_at_unix": int(time.time()),
            "ttl_seconds": int(ttl),
            "value": value,
        }
        tmp = path.with_suffix(f".{threading.get_ident()}.tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)

    def get_or_set(
        self,
        namespace: str,
        key: str,
        builder: Callable[[], Any],
        ttl_seconds: int | None = None,
        *,
        stale_if_error: bool = False,
        stale_predicate: Callable[[Exception], bool] | None = None,
    ) -> Any:
        """Return cached value, or compute/store it via `builder`.

        If `stale_if_error` is enabled and `builder()` raises, the cache will attempt
        to return a stale (expired) value instead of failing, as long as:
        - a stale value exists on disk, and
        - `stale_predicate(exc)` is True (or predicate is None).
        """
        cached = self.get(namespace, key, ttl_seconds=ttl_seconds)
        if cached is not None:
            return cached
        try:
            value = builder()
        except Exception as exc:
            if stale_if_error and (stale_predicate(exc) if stale_predicate else True):
                stale = self.get_stale(namespace, key)
                if stale is not None:
                    return stale
            raise
        else:
            self.set(namespace, key, value, ttl_seconds=ttl_seconds)
            return value
