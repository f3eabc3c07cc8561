import json
import unittest
import urllib.error

import pytest

from ghwatch.http_utils import HttpClient, HttpResponse, parse_link_header, with_query_params


class TestHttpUtils(unittest.TestCase):
    def test_parse_link_header(self) -> None:
        link = '<https://a?page=2>; rel="next", <https://a?page=9>; rel="last"'
        parsed = parse_link_header(link)
        self.assertEqual(parsed["next"], "https://a?page=2")
        self.assertEqual(parsed["last"], "https://a?page=9")

    def test_parse_link_header_ignores_garbage(self) -> None:
        self.assertEqual(parse_link_header("garbage, <https://a>; foo=bar"), {})

    def test_with_query_params_merges(self) -> None:
        base = "https://example.com/api?x=1"
        url = with_query_params(base, {"x": "2", "y": "3"})
        self.assertIn("x=2", url)
        self.assertIn("y=3", url)

    def test_response_helpers(self) -> None:
        resp = HttpResponse(status=201, url="u", headers={"content-type": "application/json"}, body=b'{"a": 1}')
        self.assertTrue(resp.ok)
        self.assertEqual(resp.header("Content-Type"), "application/json")
        self.assertIsNone(resp.header("Link"))
        self.assertEqual(resp.json(), {"a": 1})
        self.assertFalse(HttpResponse(status=404, url="u", headers={}, body=b"").ok)


class _FakeResponse:
    def __init__(self, *, status: int = 200, body: bytes = b"{}") -> None:
        self.status = status
        self.headers = {"Content-Type": "application/json"}
        self._body = body

    def read(self) -> bytes:
        return self._body

    def geturl(self) -> str:
        return "https://example.com/final"

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        return None


def test_get_retries_server_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    attempts: list[str] = []

    def _fake_urlopen(req, **_kwargs):  # noqa: ANN001
        attempts.append(req.get_header("User-agent"))
        if len(attempts) < 3:
            raise urllib.error.HTTPError(req.full_url, 503, "unavailable", hdrs=None, fp=None)  # type: ignore[arg-type]
        return _FakeResponse(body=b'{"ok": true}')

    monkeypatch.setattr("urllib.request.urlopen", _fake_urlopen)
    monkeypatch.setattr("time.sleep", lambda _s: None)

    resp = HttpClient(user_agent="ghwatch-test").get("https://example.com/api")

    assert resp.json() == {"ok": True}
    assert resp.url == "https://example.com/final"
    assert attempts == ["ghwatch-test"] * 3


def test_get_does_not_retry_client_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    attempts: list[int] = []

    def _fake_urlopen(req, **_kwargs):  # noqa: ANN001
        attempts.append(1)
        raise urllib.error.HTTPError(req.full_url, 404, "not found", hdrs=None, fp=None)  # type: ignore[arg-type]

    monkeypatch.setattr("urllib.request.urlopen", _fake_urlopen)

    with pytest.raises(urllib.error.HTTPError):
        HttpClient().get("https://example.com/api")
    assert attempts == [1]


def test_post_json_encodes_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def _fake_urlopen(req, **kwargs):  # noqa: ANN001
        captured["method"] = req.get_method()
        captured["body"] = json.loads(req.data.decode("utf-8"))
        captured["content_type"] = req.get_header("Content-type")
        captured["kwargs"] = kwargs
        return _FakeResponse(status=200)

    monkeypatch.setattr("urllib.request.urlopen", _fake_urlopen)

    resp = HttpClient(timeout_seconds=3).post_json("https://example.com/hook", {"text": "新版本"})

    assert resp.ok
    assert captured["method"] == "POST"
    assert captured["body"] == {"text": "新版本"}
    assert captured["content_type"] == "application/json; charset=utf-8"
    assert captured["kwargs"]["timeout"] == 3
    assert "context" in captured["kwargs"]
