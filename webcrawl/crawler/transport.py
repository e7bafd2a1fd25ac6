"""Transport adapter: send one HTTP(S) request and hand back the response."""

from __future__ import annotations

import threading
from typing import Protocol

import requests

from .constants import BODY_CHUNK_SIZE, DEFAULT_TIMEOUT_SECONDS
from .types import FetchRequest, FetchResult, ProxySettings, TransportError


class Transport(Protocol):
    """Anything that can turn a ``FetchRequest`` into a ``FetchResult``.

    Implementations raise ``TransportError`` when no response was received.
    Redirects must not be followed; the engine handles them.
    """

    def send(self, request: FetchRequest) -> FetchResult:
        ...

    def close(self) -> None:
        ...


def proxies_for(proxy: ProxySettings | None) -> dict[str, str] | None:
    if proxy is None:
        return None
    return {"http": proxy.url, "https": proxy.url}


class RequestsTransport:
    """``requests``-backed transport.

    One ``requests.Session`` per worker thread; bodies are streamed so that
    redirect and non-HTML responses are never downloaded.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        chunk_size: int = BODY_CHUNK_SIZE,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.chunk_size = chunk_size

        self._thread_local = threading.local()
        self._sessions_lock = threading.Lock()
        self._sessions: list[requests.Session] = []

    def send(self, request: FetchRequest) -> FetchResult:
        session = self._thread_local_session()
        try:
            response = session.get(
                request.url,
                headers=request.headers or None,
                proxies=proxies_for(request.proxy),
                timeout=self.timeout_seconds,
                allow_redirects=False,
                stream=True,
            )
        except requests.RequestException as exc:
            raise TransportError(request.url, exc) from exc

        return FetchResult(
            status_code=response.status_code,
            headers=response.headers,
            final_url=request.url,
            body=self._iter_body(request.url, response),
            closer=response.close,
        )

    def _iter_body(self, url: str, response: requests.Response):
        try:
            yield from response.iter_content(chunk_size=self.chunk_size)
        except requests.RequestException as exc:
            raise TransportError(url, exc) from exc

    def close(self) -> None:
        """Close every session this transport created."""

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "RequestsTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


__all__ = ["RequestsTransport", "Transport", "proxies_for"]
