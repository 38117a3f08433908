import httpx

from tripgrid.config.settings import get_settings
from tripgrid.core.cache import FileCache
from tripgrid.core.geo import GeoPoint
from tripgrid.ingestion.geocode_client import GeocodeClient, NullLabelResolver, coord_key, label_from_response

SF = GeoPoint(lat=37.7749, lon=-122.4194)

OK_RESPONSE = {
    "status": "OK",
    "results": [
        {
            "address_components": [
                {"long_name": "Market Street", "types": ["route"]},
                {"long_name": "San Francisco", "types": ["locality", "political"]},
            ]
        },
        {
            "address_components": [
                {"long_name": "California", "types": ["administrative_area_level_1", "political"]},
                {"long_name": "Oakland", "types": ["locality", "political"]},
            ]
        },
    ],
}


class StubHttp:
    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = []

    def get_json(self, url, *, params=None, headers=None):  # noqa: ARG002
        self.calls.append(params)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        pass


def _client(tmp_path, http, **geocoding):
    settings = get_settings()
    if geocoding:
        geo = settings.geocoding.model_copy(update=geocoding)
        settings = settings.model_copy(update={"geocoding": geo})
    return GeocodeClient(settings, FileCache(tmp_path), http=http)


def test_label_uses_first_locality_and_region():
    assert label_from_response(OK_RESPONSE) == "San Francisco, California"


def test_label_skips_missing_parts():
    payload = {"status": "OK", "results": [{"address_components": [{"long_name": "Iceland", "types": ["country"]}]}]}
    assert label_from_response(payload) == ""
    payload["results"][0]["address_components"].append(
        {"long_name": "Capital Region", "types": ["administrative_area_level_1"]}
    )
    assert label_from_response(payload) == "Capital Region"


def test_resolve_sends_latlng_and_caches(tmp_path):
    http = StubHttp(OK_RESPONSE)
    client = _client(tmp_path, http, api_key="secret", language="en")

    assert client(SF) == "San Francisco, California"
    assert client(SF) == "San Francisco, California"
    assert len(http.calls) == 1
    assert http.calls[0] == {"latlng": "37.7749,-122.4194", "key": "secret", "language": "en"}


def test_zero_results_is_an_empty_label(tmp_path):
    client = _client(tmp_path, StubHttp({"status": "ZERO_RESULTS", "results": []}))
    assert client(SF) == ""


def test_error_status_fails_open_and_is_not_cached(tmp_path):
    http = StubHttp({"status": "OVER_QUERY_LIMIT"}, OK_RESPONSE)
    client = _client(tmp_path, http)
    assert client(SF) == ""
    assert client(SF) == "San Francisco, California"


def test_transport_error_fails_open(tmp_path):
    request = httpx.Request("GET", "https://example.test")
    client = _client(tmp_path, StubHttp(httpx.ConnectError("boom", request=request)))
    assert client(SF) == ""


def test_stale_label_served_when_api_is_down(monkeypatch, tmp_path):
    monkeypatch.setattr("tripgrid.core.cache.time.time", lambda: 0)
    cache = FileCache(tmp_path)
    cache.set("geocode", coord_key(SF, 4), {"status": "OK", "label": "San Francisco, California"}, ttl_seconds=1)

    expired_at = get_settings().geocoding.cache_ttl_seconds + 100
    monkeypatch.setattr("tripgrid.core.cache.time.time", lambda: expired_at)
    request = httpx.Request("GET", "https://example.test")
    response = httpx.Response(503, request=request)
    http = StubHttp(httpx.HTTPStatusError("503", request=request, response=response))
    client = GeocodeClient(get_settings(), cache, http=http)

    assert client(SF) == "San Francisco, California"
    assert len(http.calls) == 1


def test_disabled_geocoding_makes_no_requests(tmp_path):
    http = StubHttp()
    client = _client(tmp_path, http, enabled=False)
    assert client(SF) == ""
    assert http.calls == []
    assert NullLabelResolver()(SF) == ""


def _expired_sf_cache(monkeypatch, tmp_path):
    monkeypatch.setattr("tripgrid.core.cache.time.time", lambda: 0)
    cache = FileCache(tmp_path)
    cache.set("geocode", coord_key(SF, 4), {"status": "OK", "label": "San Francisco, California"}, ttl_seconds=1)
    expired_at = get_settings().geocoding.cache_ttl_seconds + 100
    monkeypatch.setattr("tripgrid.core.cache.time.time", lambda: expired_at)
    return cache


def test_stale_label_served_on_quota_status(monkeypatch, tmp_path):
    cache = _expired_sf_cache(monkeypatch, tmp_path)
    http = StubHttp({"status": "OVER_QUERY_LIMIT", "error_message": "quota"})
    client = GeocodeClient(get_settings(), cache, http=http)
    assert client(SF) == "San Francisco, California"


def test_unexpected_error_does_not_fall_back_to_stale_label(monkeypatch, tmp_path):
    cache = _expired_sf_cache(monkeypatch, tmp_path)
    http = StubHttp(TypeError("bad stub"))
    client = GeocodeClient(get_settings(), cache, http=http)
    assert client(SF) == ""
    assert len(http.calls) == 1
