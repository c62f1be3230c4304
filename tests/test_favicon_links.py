"""Tests for external link classification and the shared annotation routine."""

import logging

import pytest

from favicon_links import (
    External,
    LinkAdapter,
    NotExternal,
    Unparsable,
    annotate_links,
    classify_href,
    favicon_url,
    icon_attributes,
)


class TestClassifyHref:
    def test_external_https_link(self):
        result = classify_href("https://example.com/path?x=1")
        assert result == External(
            "example.com", "https://www.google.com/s2/favicons?domain=example.com&sz=16"
        )

    def test_external_http_link(self):
        result = classify_href("http://blog.example.org:8080/post")
        assert isinstance(result, External)
        assert result.domain == "blog.example.org"

    @pytest.mark.parametrize("href", [None, "", "   "])
    def test_missing_href_is_not_external(self, href):
        assert isinstance(classify_href(href), NotExternal)

    @pytest.mark.parametrize(
        "href",
        ["/blog/post-1", "#section", "../other/", "?page=2", "page.html", "//"],
    )
    def test_relative_links_are_not_external(self, href):
        assert isinstance(classify_href(href), NotExternal)

    @pytest.mark.parametrize(
        "href",
        [
            "mailto:someone@example.com",
            "tel:+81-3-1234-5678",
            "javascript:void(0)",
            "ftp://files.example.com/readme.txt",
            "data:text/plain,hello",
        ],
    )
    def test_non_web_schemes_are_not_external(self, href):
        assert isinstance(classify_href(href), NotExternal)

    @pytest.mark.parametrize(
        "href",
        [
            "ht!tp://bad url",
            "http://",
            "https://exa mple.com/",
            "https://example.com:99999/",
            "http://[::1/",
            "https://bad<host>.com/",
        ],
    )
    def test_malformed_links_are_unparsable(self, href):
        result = classify_href(href)
        assert isinstance(result, Unparsable)
        assert result.raw_href == href

    def test_scheme_and_host_are_case_insensitive(self):
        result = classify_href("HTTPS://Example.COM/About")
        assert result == External("example.com", favicon_url("example.com"))

    def test_userinfo_is_not_part_of_domain(self):
        assert classify_href("https://user:pw@example.com/").domain == "example.com"

    def test_ipv6_host_keeps_brackets(self):
        assert classify_href("http://[::1]:8000/").domain == "[::1]"

    def test_international_domain_is_punycoded(self):
        assert classify_href("https://例え.jp/").domain == "xn--r8jz45g.jp"

    @pytest.mark.parametrize(
        "href, domain",
        [
            ("https://example.com/a b", "example.com"),
            ("https://www.google.com/search?q=hello world", "www.google.com"),
            ("https://example.com/#section two", "example.com"),
            ("https://exa\tmple.com/\npath", "example.com"),
            ("http:example.com/no-slashes", "example.com"),
            ("https://ex%61mple.com/", "example.com"),
            ("https://a..b.com/", "a..b.com"),
            ("https://example.com:/", "example.com"),
        ],
    )
    def test_only_the_host_must_be_well_formed(self, href, domain):
        assert classify_href(href) == External(domain, favicon_url(domain))

    def test_escaped_space_in_host_is_unparsable(self):
        assert isinstance(classify_href("https://exa%20mple.com/"), Unparsable)

    def test_relative_path_with_space_is_not_external(self):
        assert isinstance(classify_href("my notes.html"), NotExternal)

    def test_surrounding_whitespace_is_ignored(self):
        assert classify_href("  https://example.com/\n").domain == "example.com"

    @pytest.mark.parametrize(
        "href", ["https://example.com/path?x=1", "/blog/post-1", "ht!tp://bad url", "mailto:a@b.c"]
    )
    def test_classification_is_deterministic(self, href):
        assert classify_href(href) == classify_href(href)
        assert type(classify_href(href)) is type(classify_href(href))


def test_icon_attributes():
    assert icon_attributes("example.com") == {
        "src": "https://www.google.com/s2/favicons?domain=example.com&sz=16",
        "alt": "",
        "class": "inline-favicon",
        "width": "16",
        "height": "16",
        "loading": "lazy",
        "style": "display: inline; margin: 0 0.25rem 0 0; vertical-align: middle;",
    }


class ListAdapter(LinkAdapter):
    """Links are dicts: {'href': ..., 'children': [...]}."""

    def __init__(self, links, skip_annotated=False):
        self._links = links
        self.skip_annotated = skip_annotated

    def links(self):
        return list(self._links)

    def get_href(self, link):
        return link.get("href")

    def is_annotated(self, link):
        children = link["children"]
        return bool(children) and isinstance(children[0], dict) and children[0].get("class") == "inline-favicon"

    def insert_icon(self, link, attributes):
        link["children"].insert(0, dict(attributes))


class TestAnnotateLinks:
    def test_only_external_links_get_icons(self):
        external = {"href": "https://example.com/", "children": ["Example"]}
        internal = {"href": "/blog/", "children": ["Blog"]}
        mail = {"href": "mailto:a@example.com", "children": ["Mail"]}

        inserted = annotate_links(ListAdapter([external, internal, mail]))

        assert inserted == 1
        assert external["children"][0]["src"] == favicon_url("example.com")
        assert external["children"][1] == "Example"
        assert internal["children"] == ["Blog"]
        assert mail["children"] == ["Mail"]

    def test_unparsable_link_is_logged_and_skipped(self, caplog):
        bad = {"href": "ht!tp://bad url", "children": ["bad"]}
        good = {"href": "https://example.com/", "children": ["good"]}

        with caplog.at_level(logging.WARNING, logger="favicon_links"):
            inserted = annotate_links(ListAdapter([bad, good]))

        assert inserted == 1
        assert bad["children"] == ["bad"]
        assert "Failed to parse URL for favicon: ht!tp://bad url" in caplog.text

    def test_skip_annotated_prevents_duplicates(self):
        link = {"href": "https://example.com/", "children": ["Example"]}
        adapter = ListAdapter([link], skip_annotated=True)

        annotate_links(adapter)
        annotate_links(adapter)

        icons = [c for c in link["children"] if isinstance(c, dict)]
        assert len(icons) == 1

    def test_links_without_href_are_ignored(self):
        link = {"children": ["anchor"]}
        assert annotate_links(ListAdapter([link])) == 0
        assert link["children"] == ["anchor"]
