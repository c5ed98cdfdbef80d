from __future__ import annotations

import logging
from email.message import Message
from io import BytesIO
from urllib.error import HTTPError, URLError

import pytest

from feedbloater import fetch


class FakeResponse:
    def __init__(self, status: int, body: bytes, headers: Message) -> None:
        self._status = status
        self._body = body
        self.headers = headers

    def getcode(self) -> int:
        return self._status

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        return None


class FakeServer:
    """In-memory origin that honours If-None-Match / If-Modified-Since."""

    def __init__(self) -> None:
        self.pages: dict[str, dict] = {}
        self.requests: list[tuple[str, dict[str, str]]] = []

    def add(
        self,
        url: str,
        body: bytes,
        etag: str = "",
        last_modified: str = "",
        status: int = 200,
    ) -> None:
        self.pages[url] = {
            "body": body,
            "etag": etag,
            "last_modified": last_modified,
            "status": status,
        }

    def fail(self, url: str, status: int) -> None:
        self.add(url, b"", status=status)

    def requests_for(self, url: str) -> list[dict[str, str]]:
        return [headers for requested, headers in self.requests if requested == url]

    def urlopen(self, request, timeout=None):
        url = request.full_url
        headers = dict(request.header_items())
        self.requests.append((url, headers))
        page = self.pages.get(url)
        if page is None:
            raise URLError(f"no route to {url}")
        if page["status"] != 200:
            raise HTTPError(url, page["status"], "error", Message(), BytesIO(b""))
        if_none_match = headers.get("If-none-match")
        if_modified_since = headers.get("If-modified-since")
        if (page["etag"] and if_none_match == page["etag"]) or (
            page["last_modified"] and if_modified_since == page["last_modified"]
        ):
            raise HTTPError(url, 304, "Not Modified", Message(), BytesIO(b""))
        response_headers = Message()
        if page["etag"]:
            response_headers["ETag"] = page["etag"]
        if page["last_modified"]:
            response_headers["Last-Modified"] = page["last_modified"]
        return FakeResponse(200, page["body"], response_headers)


@pytest.fixture
def fake_server(monkeypatch):
    server = FakeServer()
    monkeypatch.setattr(fetch, "urlopen", server.urlopen)
    return server


def _rss_document(items: list[tuple[str, str, str]], title: str = "Weekly") -> bytes:
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0"><channel>',
        f"<title>{title}</title>",
        "<link>https://example.com/</link>",
        "<description>Short summaries</description>",
    ]
    for name, link, pub_date in items:
        parts.append(
            f"<item><title>{name}</title><link>{link}</link>"
            f"<pubDate>{pub_date}</pubDate><description>teaser</description></item>"
        )
    parts.append("</channel></rss>")
    return "".join(parts).encode("utf-8")


@pytest.fixture
def rss_document():
    return _rss_document


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler in handlers:
            continue
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
