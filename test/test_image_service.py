from pathlib import Path

import requests

from brilho.services import image_service
from brilho.services.image_service import ImageService


class FakeResponse:
    def __init__(self, content: bytes, content_type: str = "image/png", status: int = 200):
        self.content = content
        self.headers = {"Content-Type": content_type}
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_fetch_downloads_once_and_caches(tmp_path: Path, monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(b"\x89PNG-bytes")

    monkeypatch.setattr(image_service.requests, "get", fake_get)
    svc = ImageService(tmp_path / "images")

    assert svc.fetch("https://cdn.example.com/anel.png") == b"\x89PNG-bytes"
    assert svc.fetch("https://cdn.example.com/anel.png") == b"\x89PNG-bytes"

    assert len(calls) == 1
    assert calls[0][1] == 10
    assert svc.cache_path("https://cdn.example.com/anel.png").exists()


def test_fetch_returns_none_on_http_error(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(image_service.requests, "get", lambda url, timeout: FakeResponse(b"", status=404))
    svc = ImageService(tmp_path)

    assert svc.fetch("https://cdn.example.com/missing.png") is None
    assert not svc.cache_path("https://cdn.example.com/missing.png").exists()


def test_fetch_returns_none_on_network_error(tmp_path: Path, monkeypatch):
    def boom(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(image_service.requests, "get", boom)

    assert ImageService(tmp_path).fetch("https://cdn.example.com/x.png") is None


def test_fetch_rejects_non_image_content(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(
        image_service.requests, "get", lambda url, timeout: FakeResponse(b"<html>", content_type="text/html")
    )

    assert ImageService(tmp_path).fetch("https://example.com/page") is None


def test_blank_url_is_not_fetched(tmp_path: Path, monkeypatch):
    def fail(url, timeout):
        raise AssertionError("should not be called")

    monkeypatch.setattr(image_service.requests, "get", fail)

    assert ImageService(tmp_path).fetch(None) is None
    assert ImageService(tmp_path).fetch("  ") is None


def test_fetch_returns_bytes_when_cache_cannot_be_written(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(image_service.requests, "get", lambda url, timeout: FakeResponse(b"GIF89a"))
    # a plain file where the cache directory should be
    blocked = tmp_path / "images"
    blocked.write_text("not a directory")

    assert ImageService(blocked).fetch("https://cdn.example.com/brinco.gif") == b"GIF89a"
