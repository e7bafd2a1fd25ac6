"""Shared fixtures: an in-memory transport standing in for the network."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any

import pytest

from webcrawl.crawler import FetchRequest, FetchResult, TransportError


def html_page(body: str, status: int = 200, content_type: str = "text/html; charset=utf-8") -> dict[str, Any]:
    return {"status": status, "headers": {"Content-Type": content_type}, "body": body.encode("utf-8")}


def redirect(location: str, status: int = 302) -> dict[str, Any]:
    return {"status": status, "headers": {"Location": location}, "body": b""}


class FakeTransport:
    """Serve canned responses by URL.

    A route is either one response spec, an exception instance, or a list of
    them consumed in order (the last entry repeats). Unknown URLs give 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.requests: list[FetchRequest] = []
        self.calls: dict[str, int] = defaultdict(int)
        self.closed_results = 0
        self.closed = False
        self._lock = threading.Lock()

    def send(self, request: FetchRequest) -> FetchResult:
        with self._lock:
            self.requests.append(request)
            index = self.calls[request.url]
            self.calls[request.url] += 1

        route = self.routes.get(request.url)
        if isinstance(route, list):
            route = route[min(index, len(route) - 1)]
        if isinstance(route, Exception):
            raise TransportError(request.url, route)
        if route is None:
            route = {"status": 404, "headers": {"Content-Type": "text/plain"}, "body": b"missing"}

        return FetchResult(
            status_code=route["status"],
            headers=route.get("headers", {}),
            final_url=request.url,
            body=[route.get("body", b"")],
            closer=self._record_close,
        )

    def _record_close(self) -> None:
        with self._lock:
            self.closed_results += 1

    def fetched_urls(self) -> list[str]:
        with self._lock:
            return [request.url for request in self.requests]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
