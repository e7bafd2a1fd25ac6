"""Tests for link extraction."""

import pytest

from webcrawl.crawler import FetchResult, HostFilter, LinkExtractor, decode_body


@pytest.fixture
def extractor():
    return LinkExtractor(HostFilter(["http://example.com"]).url_allowed)


def make_result(body: bytes, *, status=200, content_type="text/html", url="http://example.com/dir/"):
    headers = {} if content_type is None else {"Content-Type": content_type}
    return FetchResult(status_code=status, headers=headers, final_url=url, body=[body])


class TestIsExtractable:
    @pytest.mark.parametrize(
        "content_type",
        ["text/html", "text/html; charset=utf-8", "application/xml", "TEXT/HTML"],
    )
    def test_extractable_types(self, content_type):
        assert LinkExtractor.is_extractable(make_result(b"", content_type=content_type))

    @pytest.mark.parametrize("content_type", ["text/plain", "application/json", "", None, ";;"])
    def test_other_types(self, content_type):
        assert not LinkExtractor.is_extractable(make_result(b"", content_type=content_type))

    def test_non_200(self):
        assert not LinkExtractor.is_extractable(make_result(b"", status=404))
        assert not LinkExtractor.is_extractable(make_result(b"", status=203))


class TestParseLinks:
    def test_relative_and_rooted_links(self, extractor):
        body = b'<a href="foo.html">x</a><a href=\'/abs.html\'>y</a>'
        links = extractor.parse_links(make_result(body))
        assert links == [
            "http://example.com/dir/foo.html",
            "http://example.com/dir/abs.html",
        ]

    def test_filters_and_dedupes(self, extractor):
        body = (
            b'<a href="http://example.com/a">1</a>'
            b'<a href="http://evil.com/b">2</a>'
            b'<a href="http://example.com/a">3</a>'
            b'<a href="mailto:me@example.com">4</a>'
            b'<link href="http://www.example.com/style">'
        )
        links = extractor.parse_links(make_result(body))
        assert links == ["http://example.com/a", "http://www.example.com/style"]

    def test_whitespace_and_brackets_end_match(self, extractor):
        body = b'<a href="page.html?x=1 "><a href="other<b>">'
        links = extractor.parse_links(make_result(body, url="http://example.com/"))
        assert links == ["http://example.com/page.html?x=1", "http://example.com/other"]

    def test_unquoted_href_ignored(self, extractor):
        assert extractor.parse_links(make_result(b"<a href=page.html>")) == []

    def test_non_extractable_returns_empty_without_reading(self, extractor):
        def exploding():
            raise AssertionError("body should not be read")
            yield b""

        result = FetchResult(
            status_code=200,
            headers={"Content-Type": "image/png"},
            final_url="http://example.com/",
            body=exploding(),
        )
        assert extractor.parse_links(result) == []

    def test_missing_content_type(self, extractor):
        assert extractor.parse_links(make_result(b'<a href="a">', content_type=None)) == []

    def test_links_resolved_against_final_url(self, extractor):
        result = make_result(b'<a href="next">', url="http://example.com/moved/")
        assert extractor.parse_links(result) == ["http://example.com/moved/next"]


class TestDecodeBody:
    def test_declared_charset(self):
        body = "<a href='café'>".encode("latin-1")
        assert decode_body(body, "iso-8859-1") == "<a href='café'>"

    def test_unknown_charset_falls_back(self):
        assert decode_body(b"<a href='x'>", "no-such-charset") == "<a href='x'>"

    def test_empty(self):
        assert decode_body(b"") == ""

    def test_read_text_uses_header_charset(self):
        body = "été".encode("latin-1")
        result = make_result(body, content_type="text/html; charset=ISO-8859-1")
        assert LinkExtractor.read_text(result) == "été"
