"""Core type definitions for the crawl engine.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from requests.structures import CaseInsensitiveDict


class RequestHookKind(str, Enum):
    """Interceptors that decorate an outgoing request."""

    AGENT = "agent"
    PROXY = "proxy"


class ObserverKind(str, Enum):
    """Observers notified after a crawl event."""

    FETCH = "fetch"
    ERROR = "error"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for stats output."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class CrawlError(Exception):
    """Base class for errors raised by the crawl engine."""


class TransportError(CrawlError):
    """One request attempt failed before a response was received."""

    def __init__(self, url: str, cause: BaseException | str) -> None:
        self.url = url
        self.cause = cause
        if isinstance(cause, BaseException):
            message = f"{cause.__class__.__name__}: {cause}"
        else:
            message = str(cause)
        super().__init__(f"{url}: {message}")


class HookError(CrawlError):
    """A registered hook raised while being invoked."""

    def __init__(self, kind: str, cause: BaseException) -> None:
        self.kind = kind
        self.cause = cause
        super().__init__(f"{kind} hook failed: {cause.__class__.__name__}: {cause}")


@dataclass(frozen=True, slots=True)
class ProxySettings:
    """Host/port override returned by the proxy hook."""

    host: str
    port: int

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("proxy host cannot be empty")
        object.__setattr__(self, "port", int(self.port))

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_value(cls, value: Any) -> "ProxySettings":
        """Coerce a hook result into proxy settings.

        Accepts a ``ProxySettings``, a mapping with ``host``/``port``, a
        ``(host, port)`` pair, or a ``"host:port"`` string.
        """

        if isinstance(value, ProxySettings):
            return value
        if isinstance(value, Mapping):
            return cls(host=str(value["host"]), port=int(value["port"]))
        if isinstance(value, str):
            host, sep, port = value.rpartition(":")
            if not sep or not host:
                raise ValueError(f"Invalid proxy string: {value!r}")
            return cls(host=host, port=int(port))
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(host=str(value[0]), port=int(value[1]))
        raise TypeError(f"Unsupported proxy value: {value!r}")


@dataclass(frozen=True, slots=True)
class FetchTask:
    """One unit of scheduled work: fetch ``url`` with a redirect budget."""

    url: str
    remaining_redirects: int


@dataclass(slots=True)
class FetchRequest:
    """What the transport is asked to send for one attempt."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    proxy: ProxySettings | None = None


@dataclass(slots=True)
class FetchResult:
    """Response for one request; owned by a single fetch and then closed."""

    status_code: int
    headers: Mapping[str, str]
    final_url: str
    body: Iterable[bytes] = ()
    closer: Callable[[], None] | None = field(default=None, repr=False)

    _consumed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.headers = CaseInsensitiveDict(self.headers or {})

    @property
    def content_type(self) -> str | None:
        return self.headers.get("Content-Type")

    @property
    def location(self) -> str | None:
        return self.headers.get("Location")

    def read(self) -> bytes:
        """Buffer the whole body stream. The stream can be read only once."""

        if self._consumed:
            raise RuntimeError(f"Body of {self.final_url} was already consumed")
        self._consumed = True
        if isinstance(self.body, (bytes, bytearray)):
            return bytes(self.body)
        return b"".join(chunk for chunk in self.body if chunk)

    def close(self) -> None:
        if self.closer is not None:
            closer, self.closer = self.closer, None
            closer()


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    enqueued: int = 0
    skipped_seen: int = 0
    skipped_closed: int = 0
    skipped_filtered: int = 0

    requests_ok: int = 0
    request_errors: int = 0
    abandoned: int = 0

    redirects_followed: int = 0
    redirect_limit_reached: int = 0

    pages_parsed: int = 0
    links_found: int = 0

    hook_errors: int = 0
    task_errors: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "enqueued": self.enqueued,
            "skipped_seen": self.skipped_seen,
            "skipped_closed": self.skipped_closed,
            "skipped_filtered": self.skipped_filtered,
            "requests_ok": self.requests_ok,
            "request_errors": self.request_errors,
            "abandoned": self.abandoned,
            "redirects_followed": self.redirects_followed,
            "redirect_limit_reached": self.redirect_limit_reached,
            "pages_parsed": self.pages_parsed,
            "links_found": self.links_found,
            "hook_errors": self.hook_errors,
            "task_errors": self.task_errors,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "CrawlError",
    "CrawlStats",
    "FetchRequest",
    "FetchResult",
    "FetchTask",
    "HookError",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "ObserverKind",
    "ProxySettings",
    "RequestHookKind",
    "TransportError",
    "utc_now_iso",
]
