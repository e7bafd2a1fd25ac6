"""Tests for host filtering and URL helpers."""

import pytest

from webcrawl.crawler.url import (
    HostFilter,
    canonical_url,
    host_of,
    is_ip_literal,
    is_redirect,
    lenient_host,
    parse_content_type,
    url_join,
)


class TestHostFilterStrict:
    @pytest.fixture
    def host_filter(self):
        return HostFilter(["http://example.com"], strict=True)

    def test_root_host_allowed(self, host_filter):
        assert host_filter.url_allowed("http://example.com/a")

    def test_foreign_host_rejected(self, host_filter):
        assert not host_filter.url_allowed("http://evil.com/a")

    def test_www_toggle_allowed(self, host_filter):
        assert host_filter.url_allowed("http://www.example.com/a")

    def test_www_root_allows_bare_host(self):
        host_filter = HostFilter(["https://www.example.com/start"])
        assert host_filter.url_allowed("https://example.com/")

    def test_subdomain_rejected(self, host_filter):
        assert not host_filter.url_allowed("http://docs.example.com/")

    def test_host_case_insensitive(self, host_filter):
        assert host_filter.host_okay("EXAMPLE.com")

    def test_empty_host(self, host_filter):
        assert not host_filter.host_okay("")
        assert not host_filter.host_okay(None)

    def test_non_http_schemes_rejected(self, host_filter):
        assert not host_filter.url_allowed("ftp://example.com/file")
        assert not host_filter.url_allowed("mailto:someone@example.com")
        assert host_filter.url_allowed("https://example.com/secure")

    def test_malformed_url_rejected(self, host_filter):
        assert not host_filter.url_allowed("http://[::1")

    def test_root_domains_derived_once(self, host_filter):
        assert host_filter.root_domains == frozenset({"example.com"})


class TestHostFilterLenient:
    def test_suffix_matching(self):
        host_filter = HostFilter(["http://www.example.com/"], strict=False)
        assert host_filter.root_domains == frozenset({"example.com"})
        assert host_filter.url_allowed("http://docs.example.com/a")
        assert host_filter.url_allowed("http://example.com/")
        assert not host_filter.url_allowed("http://example.org/")


class TestHostFilterIP:
    def test_ip_exact_match_only(self):
        host_filter = HostFilter(["http://10.0.0.1/"], strict=False)
        assert host_filter.url_allowed("http://10.0.0.1/page")
        assert not host_filter.url_allowed("http://20.0.0.1/page")
        assert not host_filter.url_allowed("http://www.10.0.0.1/page")

    def test_ip_literal_detection_is_anchored(self):
        assert is_ip_literal("127.0.0.1")
        assert is_ip_literal("127.0.0.1:8080")
        assert not is_ip_literal("1.2.3.example")
        assert not is_ip_literal("example.1")
        assert not is_ip_literal("")


class TestExclude:
    def test_exclude_pattern(self):
        host_filter = HostFilter(["http://example.com"], exclude=r"\.pdf$")
        assert not host_filter.url_allowed("http://example.com/doc.pdf")
        assert host_filter.url_allowed("http://example.com/doc.html")


class TestUrlJoin:
    def test_relative_link(self):
        assert url_join("http://example.com/dir/", "foo.html") == "http://example.com/dir/foo.html"

    def test_rooted_link_joins_onto_base(self):
        assert url_join("http://example.com/dir/", "/abs.html") == "http://example.com/dir/abs.html"

    def test_absolute_link_untouched(self):
        assert url_join("http://example.com/dir/", "https://other.com/x") == "https://other.com/x"

    def test_other_scheme_untouched(self):
        assert url_join("http://example.com/", "mailto:a@b.c") == "mailto:a@b.c"

    def test_base_without_trailing_slash(self):
        assert url_join("http://a.test", "b") == "http://a.test/b"
        assert url_join("http://a.test", "/") == "http://a.test/"


class TestHelpers:
    def test_canonical_url_adds_root_path(self):
        assert canonical_url("http://a.test") == "http://a.test/"
        assert canonical_url("http://a.test?q=1") == "http://a.test/?q=1"
        assert canonical_url("http://a.test/b") == "http://a.test/b"

    def test_canonical_url_lowercases_scheme_and_host(self):
        assert canonical_url("HTTP://A.TEST/Path") == "http://a.test/Path"
        assert canonical_url("http://User:Pw@A.Test:8080") == "http://User:Pw@a.test:8080/"
        assert canonical_url("http://A.TEST/x") == canonical_url("http://a.test/x")

    def test_host_of(self):
        assert host_of("http://user:pw@Example.com:8080/x") == "example.com:8080"

    def test_lenient_host(self):
        assert lenient_host("a.b.Example.com") == "example.com"
        assert lenient_host("localhost") == "localhost"

    @pytest.mark.parametrize("status", [300, 301, 302, 303, 307])
    def test_redirect_codes(self, status):
        assert is_redirect(status)

    @pytest.mark.parametrize("status", [200, 304, 308, 404, None])
    def test_non_redirect_codes(self, status):
        assert not is_redirect(status)


class TestParseContentType:
    def test_plain(self):
        assert parse_content_type("text/html") == ("text/html", "utf-8")

    def test_charset(self):
        assert parse_content_type("text/html; charset=ISO-8859-1") == ("text/html", "iso-8859-1")

    def test_quoted_charset_and_extra_params(self):
        assert parse_content_type('Text/HTML; boundary=x; charset="utf-16"') == ("text/html", "utf-16")

    def test_missing(self):
        assert parse_content_type(None) == (None, "utf-8")
        assert parse_content_type("  ") == (None, "utf-8")

    def test_malformed(self):
        assert parse_content_type(";charset=") == (None, "utf-8")
