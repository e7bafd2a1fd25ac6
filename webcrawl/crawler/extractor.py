"""Link extraction from HTML/XML response bodies."""

from __future__ import annotations

import codecs
import re
from typing import Callable

from bs4.dammit import UnicodeDammit

from .constants import DEFAULT_CHARSET, EXTRACTABLE_CONTENT_TYPES
from .types import FetchResult
from .url import canonical_url, parse_content_type, url_join


HREF_RE = re.compile(r"""href=["']([^\s"'<>]+)""")


def decode_body(body: bytes, charset: str = DEFAULT_CHARSET) -> str:
    """Decode body bytes, trying the declared charset before sniffing."""

    if not body:
        return ""

    encodings = []
    try:
        encodings.append(codecs.lookup(charset).name)
    except LookupError:
        pass

    dammit = UnicodeDammit(body, known_definite_encodings=encodings, is_html=True)
    if dammit.unicode_markup is not None:
        return dammit.unicode_markup
    return body.decode(DEFAULT_CHARSET, errors="replace")


class LinkExtractor:
    """Find ``href`` targets in a fetched page and keep the allowed ones."""

    def __init__(self, url_allowed: Callable[[str], bool]) -> None:
        self.url_allowed = url_allowed

    @staticmethod
    def is_extractable(result: FetchResult) -> bool:
        """Only 200 responses typed text/html or application/xml are scanned."""

        if result.status_code != 200:
            return False
        media_type, _ = parse_content_type(result.content_type)
        return media_type in EXTRACTABLE_CONTENT_TYPES

    @staticmethod
    def read_text(result: FetchResult) -> str:
        _, charset = parse_content_type(result.content_type)
        return decode_body(result.read(), charset)

    def extract(self, text: str, base_url: str) -> list[str]:
        """Resolve every ``href`` against ``base_url``; allowed, deduplicated."""

        links: list[str] = []
        seen: set[str] = set()
        for match in HREF_RE.finditer(text):
            link = canonical_url(url_join(base_url, match.group(1)))
            if link in seen:
                continue
            seen.add(link)
            if self.url_allowed(link):
                links.append(link)
        return links

    def parse_links(self, result: FetchResult) -> list[str]:
        if not self.is_extractable(result):
            return []
        return self.extract(self.read_text(result), result.final_url)


__all__ = ["HREF_RE", "LinkExtractor", "decode_body"]
