from __future__ import annotations

import asyncio

import pytest
import requests

from ecoroute.core.errors import ServiceError, ServiceUnavailable
from ecoroute.routing.ors_client import ORSClient
from ecoroute.routing.ors_common import (
    MalformedRequest,
    ORSConfig,
    RateLimited,
    RouteNotFound,
    ServiceTimeout,
    backoff_delay,
    is_transient,
)
from ecoroute.routing.resolver import RouteResolver

from conftest import FAST_DEFAULTS


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.headers = {}
        self.mounted = {}
        self.posts = []
        self.response = response
        self.exc = exc
        self.closed = False

    def mount(self, prefix, adapter):
        self.mounted[prefix] = adapter

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json, timeout))
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture
def cfg():
    return ORSConfig(api_key="test-key", base_url="https://ors.example/")


def _client(cfg, **kw):
    return ORSClient(cfg=cfg, session=FakeSession(**kw))


def test_config_requires_api_key(monkeypatch):
    monkeypatch.delenv("ORS_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        ORSConfig()


def test_config_reads_env(monkeypatch):
    monkeypatch.setenv("ORS_API_KEY", "  from-env  ")
    assert ORSConfig().api_key == "from-env"


def test_session_is_configured(cfg):
    client = _client(cfg, response=FakeResponse(payload={"routes": []}))
    sess = client._sess
    assert sess.headers["Authorization"] == "test-key"
    assert sess.headers["Accept"] == "application/json"
    assert set(sess.mounted) == {"https://", "http://"}
    assert client.base_url == "https://ors.example"


def test_route_summary_posts_lon_lat(cfg):
    payload = {"routes": [{"summary": {"distance": 12345.0, "duration": 678.0}}]}
    client = _client(cfg, response=FakeResponse(payload=payload))

    summary = client.route_summary((35.0, 139.0), (34.5, 135.5))

    assert summary == {"distance": 12345.0, "duration": 678.0}
    url, body, timeout = client._sess.posts[0]
    assert url == "https://ors.example/v2/directions/driving-hgv"
    assert body["coordinates"] == [[139.0, 35.0], [135.5, 34.5]]
    assert timeout == cfg.timeouts


def test_route_summary_profile_override(cfg):
    client = _client(cfg, response=FakeResponse(payload={"routes": [{"summary": {}}]}))
    client.route_summary((0.0, 0.0), (1.0, 1.0), profile="driving-car")
    assert client._sess.posts[0][0].endswith("/v2/directions/driving-car")


def test_route_summary_without_routes_is_empty(cfg):
    client = _client(cfg, response=FakeResponse(payload={"routes": []}))
    assert client.route_summary((0.0, 0.0), (1.0, 1.0)) == {}


def test_timeout_maps_to_service_timeout(cfg):
    client = _client(cfg, exc=requests.ReadTimeout("slow"))
    with pytest.raises(ServiceTimeout):
        client.route_summary((0.0, 0.0), (1.0, 1.0))


@pytest.mark.parametrize(
    "status, exc",
    [(404, RouteNotFound), (400, MalformedRequest), (422, MalformedRequest), (429, RateLimited)],
)
def test_status_classification(cfg, status, exc):
    resp = FakeResponse(status, payload={"error": {"message": "nope"}})
    client = _client(cfg, response=resp)
    with pytest.raises(exc, match="nope"):
        client.route_summary((0.0, 0.0), (1.0, 1.0))


def _resolve_through_client(cfg, tokyo, osaka, **session_kw):
    resolver = RouteResolver(_client(cfg, **session_kw), defaults=FAST_DEFAULTS)
    return asyncio.run(resolver.resolve_direct(tokyo, osaka))


@pytest.mark.parametrize(
    "session_kw",
    [
        {"response": FakeResponse(503, text="down")},
        {"response": FakeResponse(502, payload={"error": {"message": "bad gateway"}})},
        {"exc": requests.ConnectionError("refused")},
    ],
    ids=["5xx-after-status-retries", "502", "connection-error"],
)
def test_unreachable_service_is_unavailable(cfg, tokyo, osaka, session_kw):
    with pytest.raises(ServiceUnavailable) as excinfo:
        _resolve_through_client(cfg, tokyo, osaka, **session_kw)
    assert isinstance(excinfo.value.__cause__, requests.RequestException)


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(200, payload=None, text="<html>oops</html>"),
        FakeResponse(200, payload=[{"summary": {"distance": 1.0, "duration": 1.0}}]),
        FakeResponse(200, payload={"routes": ["not-a-route"]}),
        FakeResponse(200, payload={"routes": {"summary": {}}}),
        FakeResponse(200, payload={"routes": [{"summary": "none"}]}),
        FakeResponse(401, payload={"error": {"message": "bad key"}}),
    ],
    ids=["non-json", "json-list", "route-not-object", "routes-not-list", "summary-not-object", "401"],
)
def test_unusable_answer_is_service_error(cfg, tokyo, osaka, response):
    with pytest.raises(ServiceError):
        _resolve_through_client(cfg, tokyo, osaka, response=response)


def test_resolve_direct_through_client(cfg, tokyo, osaka):
    payload = {"routes": [{"summary": {"distance": 500_000.0, "duration": 25_200.0}}]}
    result = _resolve_through_client(cfg, tokyo, osaka, response=FakeResponse(payload=payload))
    assert result.distance_km == pytest.approx(500.0)
    assert result.time_hours == pytest.approx(7.0)


def test_close_closes_session(cfg):
    client = _client(cfg, response=FakeResponse(payload={}))
    client.close()
    assert client._sess.closed


def test_backoff_grows_and_can_be_disabled():
    assert backoff_delay(1, 0.0) == 0.0
    first = backoff_delay(1, 0.2)
    third = backoff_delay(3, 0.2)
    assert 0.2 <= first < 0.3
    assert 0.8 <= third < 0.9


def test_only_timeouts_are_transient():
    assert is_transient(ServiceTimeout("t"))
    assert not is_transient(RouteNotFound("x"))
    assert not is_transient(RateLimited("429"))
    assert not is_transient(None)
