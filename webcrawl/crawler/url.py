"""Host filtering, link joining, and content-type helpers."""

from __future__ import annotations

import re
from typing import Iterable, Pattern
from urllib.parse import urlsplit, urlunsplit

from .constants import ALLOWED_SCHEMES, DEFAULT_CHARSET, REDIRECT_STATUS_CODES


IP_LITERAL_RE = re.compile(r"\A[0-9.]+\Z")
SCHEME_RE = re.compile(r"\A[A-Za-z][A-Za-z0-9+.\-]*:")


def host_of(url: str) -> str:
    """Return the lower-cased ``host[:port]`` of a URL (userinfo dropped)."""

    netloc = urlsplit(url).netloc
    return netloc.rpartition("@")[2].strip().lower()


def _strip_port(host: str) -> str:
    if host.startswith("["):
        return host.partition("]")[0] + "]"
    return host.partition(":")[0]


def is_ip_literal(host: str) -> bool:
    """True when the host (port ignored) is entirely digits and dots."""

    return bool(IP_LITERAL_RE.match(_strip_port(host or "")))


def lenient_host(host: str) -> str:
    """Reduce a host to its last two labels (``www.example.com`` -> ``example.com``)."""

    return ".".join(host.lower().split(".")[-2:])


def canonical_url(url: str) -> str:
    """Seen-set key for ``url``.

    Scheme and host are lower-cased (userinfo keeps its case) and an empty
    path becomes ``/``, so ``http://A.test`` and ``http://a.test/`` dedupe.
    Path, query and fragment are left as they are.
    """

    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not (parts.scheme and parts.netloc):
        return url

    userinfo, at, host = parts.netloc.rpartition("@")
    netloc = f"{userinfo}{at}{host.lower()}"
    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, parts.fragment))


def url_join(base: str, link: str) -> str:
    """Join ``link`` onto ``base`` using the crawler's rooted-join rule.

    Absolute links (anything starting with a scheme) are returned untouched.
    Otherwise a single leading ``/`` is dropped and the link is appended to the
    base with exactly one separating slash. This is not RFC 3986 resolution:
    ``/abs.html`` against ``http://example.com/dir/`` gives
    ``http://example.com/dir/abs.html``.
    """

    if SCHEME_RE.match(link):
        return link
    if link.startswith("/"):
        link = link[1:]
    if not base.endswith("/"):
        base = base + "/"
    return base + link


def is_redirect(status_code: int | None) -> bool:
    return status_code in REDIRECT_STATUS_CODES


def parse_content_type(value: str | None) -> tuple[str | None, str]:
    """Split a Content-Type header into ``(media_type, charset)``.

    Missing or empty headers give ``(None, "utf-8")``.
    """

    if not value or not value.strip():
        return None, DEFAULT_CHARSET

    media_type, *params = value.split(";")
    charset = DEFAULT_CHARSET
    for param in params:
        key, sep, raw = param.strip().partition("=")
        if sep and key.strip().lower() == "charset":
            candidate = raw.strip().strip("\"'").strip()
            if candidate:
                charset = candidate.lower()
            break

    return media_type.strip().lower() or None, charset


class HostFilter:
    """Decide whether URLs belong to the crawl's allowed host set.

    The root domain set is derived once from the roots and never changes:
    IP literal hosts are kept verbatim, other hosts are lower-cased and, in
    lenient mode, reduced to their two-label suffix.
    """

    def __init__(
        self,
        roots: Iterable[str],
        *,
        strict: bool = True,
        exclude: str | Pattern[str] | None = None,
    ) -> None:
        self.strict = strict
        if isinstance(exclude, str):
            exclude = re.compile(exclude)
        self.exclude: Pattern[str] | None = exclude

        domains: set[str] = set()
        for root in roots:
            host = host_of(root)
            if not host:
                continue
            if is_ip_literal(host):
                domains.add(host)
            elif strict:
                domains.add(host)
            else:
                domains.add(lenient_host(host))
        self.root_domains: frozenset[str] = frozenset(domains)

    def host_okay(self, host: str | None) -> bool:
        if not host:
            return False

        host = host.lower()
        if host in self.root_domains:
            return True
        if is_ip_literal(host):
            return False

        if self.strict:
            toggled = host[4:] if host.startswith("www.") else "www." + host
            return toggled in self.root_domains
        return lenient_host(host) in self.root_domains

    def url_allowed(self, url: str) -> bool:
        if self.exclude is not None and self.exclude.search(url):
            return False

        try:
            parsed = urlsplit(url)
        except ValueError:
            return False
        if parsed.scheme.lower() not in ALLOWED_SCHEMES:
            return False
        return self.host_okay(parsed.netloc.rpartition("@")[2].strip())


__all__ = [
    "HostFilter",
    "canonical_url",
    "host_of",
    "is_ip_literal",
    "is_redirect",
    "lenient_host",
    "parse_content_type",
    "url_join",
]
