import pytest

from tripgrid.core.cache import FileCache


def _expired_cache(monkeypatch, tmp_path):
    cache = FileCache(tmp_path, enabled=True, default_ttl_seconds=1)
    monkeypatch.setattr("tripgrid.core.cache.time.time", lambda: 0)
    cache.set("geocode", "37.7749,-122.4194", {"label": "San Francisco, California"})
    monkeypatch.setattr("tripgrid.core.cache.time.time", lambda: 100)
    return cache


def _down():
    raise RuntimeError("upstream down")


def test_expired_entry_is_a_miss_but_still_readable_as_stale(monkeypatch, tmp_path):
    cache = _expired_cache(monkeypatch, tmp_path)
    assert cache.get("geocode", "37.7749,-122.4194") is None
    assert cache.get_stale("geocode", "37.7749,-122.4194") == {"label": "San Francisco, California"}


def test_stale_if_error_returns_expired_value(monkeypatch, tmp_path):
    cache = _expired_cache(monkeypatch, tmp_path)
    val = cache.get_or_set(
        "geocode",
        "37.7749,-122.4194",
        _down,
        ttl_seconds=1,
        stale_if_error=True,
        stale_predicate=lambda exc: isinstance(exc, RuntimeError),
    )
    assert val == {"label": "San Francisco, California"}


def test_stale_if_error_respects_predicate(monkeypatch, tmp_path):
    cache = _expired_cache(monkeypatch, tmp_path)
    with pytest.raises(RuntimeError):
        cache.get_or_set(
            "geocode",
            "37.7749,-122.4194",
            _down,
            ttl_seconds=1,
            stale_if_error=True,
            stale_predicate=lambda exc: isinstance(exc, ValueError),
        )


def test_corrupt_entry_behaves_like_a_miss(tmp_path):
    cache = FileCache(tmp_path)
    cache.set("geocode", "k", {"label": "x"})
    (path,) = (tmp_path / "geocode").glob("*.json")
    path.write_text("{not json", encoding="utf-8")
    assert cache.get("geocode", "k") is None
    assert cache.get_or_set("geocode", "k", lambda: {"label": "y"}) == {"label": "y"}


def test_disabled_cache_always_builds(tmp_path):
    cache = FileCache(tmp_path, enabled=False)
    calls = []
    for _ in range(2):
        cache.get_or_set("geocode", "k", lambda: calls.append(1) or {"label": "z"})
    assert len(calls) == 2
    assert not (tmp_path / "geocode").exists()
