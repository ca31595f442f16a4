from __future__ import annotations

import io
from urllib import error as urllib_error

import pytest

from catastro_enricher.core.exceptions import HttpStatusFailure, MalformedJson, TransportFailure
from catastro_enricher.services import catastro


class FakeResponse(io.BytesIO):
    def __init__(self, body: bytes, status: int = 200) -> None:
        super().__init__(body)
        self.status = status


def patch_urlopen(monkeypatch, behaviour):
    captured = {}

    def fake_urlopen(request, timeout):
        captured["url"] = request.full_url
        captured["user_agent"] = request.get_header("User-agent")
        captured["timeout"] = timeout
        if isinstance(behaviour, Exception):
            raise behaviour
        return behaviour

    monkeypatch.setattr(catastro.urllib_request, "urlopen", fake_urlopen)
    return captured


def test_get_json_sends_query_and_user_agent(monkeypatch):
    captured = patch_urlopen(monkeypatch, FakeResponse(b'{"ok": true}'))
    client = catastro._HTTPClient(user_agent="tester/1.0")

    payload = client.get_json("https://example.test/lookup", {"RefCat": "12 34"}, 7)

    assert payload == {"ok": True}
    assert captured == {
        "url": "https://example.test/lookup?RefCat=12+34",
        "user_agent": "tester/1.0",
        "timeout": 7,
    }


def test_get_json_maps_transport_errors(monkeypatch):
    patch_urlopen(monkeypatch, urllib_error.URLError("connection refused"))

    with pytest.raises(TransportFailure, match="connection refused"):
        catastro._HTTPClient().get_json("https://example.test", {}, 1)


def test_get_json_maps_timeouts(monkeypatch):
    patch_urlopen(monkeypatch, TimeoutError("timed out"))

    with pytest.raises(TransportFailure, match="timed out"):
        catastro._HTTPClient().get_json("https://example.test", {}, 1)


def test_get_json_maps_http_errors(monkeypatch):
    patch_urlopen(
        monkeypatch,
        urllib_error.HTTPError("https://example.test", 503, "Service Unavailable", None, None),
    )

    with pytest.raises(HttpStatusFailure) as excinfo:
        catastro._HTTPClient().get_json("https://example.test", {}, 1)
    assert excinfo.value.status == 503


def test_get_json_rejects_non_2xx_status(monkeypatch):
    patch_urlopen(monkeypatch, FakeResponse(b"{}", status=304))

    with pytest.raises(HttpStatusFailure):
        catastro._HTTPClient().get_json("https://example.test", {}, 1)


def test_get_json_maps_malformed_bodies(monkeypatch):
    patch_urlopen(monkeypatch, FakeResponse(b"<html>maintenance</html>"))

    with pytest.raises(MalformedJson):
        catastro._HTTPClient().get_json("https://example.test", {}, 1)
