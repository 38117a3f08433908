"""
HTTP helpers.

One place for the outbound HTTP behaviour of ingestion clients:
- a shared `httpx.Client` per run (connection reuse across many label lookups;
  httpx clients are safe to share between threads),
- deterministic defaults (timeout + User-Agent),
- raise on non-2xx so callers decide how to fail (the geocoder fails open).
"""

from __future__ import annotations

import threading
from typing import Any

import httpx


DEFAULT_USER_AGENT = "tripgrid/0.1.0 (+https://local)"


class JsonHttpClient:
    """Thin JSON-over-GET wrapper around a lazily created `httpx.Client`."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 15,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ):
        self._timeout_seconds = float(timeout_seconds)
        self._user_agent = user_agent
        self._transport = transport
        self._client: httpx.Client | None = None
        self._lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=self._timeout_seconds,
                    headers={"User-Agent": self._user_agent},
                    transport=self._transport,
                )
            return self._client

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET `url` and return the decoded JSON response.

        Raises:
            httpx.HTTPError: On transport errors or non-2xx status codes.
            ValueError: If the response body is not valid JSON.
        """
        resp = self._get_client().get(url, params=params, headers=headers)
        resp.raise_for_status()
        return resp.json()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "JsonHttpClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
