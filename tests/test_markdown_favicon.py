"""Tests for the build-time favicon tree processor."""

import logging
import xml.etree.ElementTree as etree

import markdown
from bs4 import BeautifulSoup

from favicon_links import annotate_links, favicon_url
from markdown_favicon import FaviconLinkExtension, TreeAdapter


def render(text):
    html = markdown.markdown(text, extensions=[FaviconLinkExtension()])
    return BeautifulSoup(html, "html.parser")


class TestFaviconLinkExtension:
    def test_external_link_gets_icon_as_first_child(self):
        soup = render("[Example](https://example.com/path?x=1)")
        link = soup.find("a")

        icon = link.contents[0]
        assert icon.name == "img"
        assert icon["src"] == "https://www.google.com/s2/favicons?domain=example.com&sz=16"
        assert icon["class"] == ["inline-favicon"]
        assert icon["alt"] == ""
        assert icon["width"] == "16"
        assert icon["height"] == "16"
        assert icon["loading"] == "lazy"
        assert link.get_text() == "Example"

    def test_existing_children_keep_their_order(self):
        soup = render("[Read *the* docs](https://docs.example.com/)")
        link = soup.find("a")

        assert [getattr(c, "name", None) or str(c) for c in link.contents] == [
            "img", "Read ", "em", " docs",
        ]

    def test_autolinks_are_annotated(self):
        soup = render("<https://vuejs.org/guide/>")
        icon = soup.find("a").contents[0]
        assert icon["src"] == favicon_url("vuejs.org")

    def test_internal_link_is_untouched(self):
        soup = render("[Post](/blog/post-1)")
        link = soup.find("a")
        assert link.find("img") is None
        assert link.contents == ["Post"]

    def test_mailto_link_is_untouched(self):
        soup = render("[Mail](mailto:someone@example.com)")
        assert soup.find("a").find("img") is None

    def test_mail_autolink_is_untouched_and_not_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            soup = render("<someone@example.com>")
        assert soup.find("a").find("img") is None
        assert "Failed to parse URL" not in caplog.text

    def test_every_external_link_is_annotated_once(self):
        soup = render(
            "[A](https://a.example.com/) and [B](https://b.example.com/) "
            "and again [A](https://a.example.com/x)"
        )
        for link in soup.find_all("a"):
            icons = link.find_all("img", class_="inline-favicon")
            assert len(icons) == 1

    def test_documents_do_not_share_state(self):
        md = markdown.Markdown(extensions=[FaviconLinkExtension()])
        first = BeautifulSoup(md.convert("[A](https://example.com/)"), "html.parser")
        md.reset()
        second = BeautifulSoup(md.convert("[A](https://example.com/)"), "html.parser")
        assert len(first.find_all("img")) == 1
        assert len(second.find_all("img")) == 1

    def test_loadable_by_module_name(self):
        html = markdown.markdown("[E](https://example.com/)", extensions=["markdown_favicon"])
        assert "inline-favicon" in html


class TestTreeAdapter:
    def test_malformed_href_is_left_alone_and_logged(self, caplog):
        root = etree.Element("div")
        bad = etree.SubElement(root, "a", href="ht!tp://bad url")
        bad.text = "bad"
        good = etree.SubElement(root, "a", href="https://example.com/")
        good.text = "good"

        with caplog.at_level(logging.WARNING):
            inserted = annotate_links(TreeAdapter(root))

        assert inserted == 1
        assert len(bad) == 0 and bad.text == "bad"
        assert good[0].tag == "img" and good[0].tail == "good"
        assert "ht!tp://bad url" in caplog.text

    def test_links_without_href_are_skipped(self):
        root = etree.Element("div")
        etree.SubElement(root, "a", name="anchor")
        etree.SubElement(root, "a", href="")
        assert TreeAdapter(root).links() == []

    def test_icon_is_inserted_before_existing_child_elements(self):
        root = etree.Element("p")
        link = etree.SubElement(root, "a", href="https://example.com/")
        etree.SubElement(link, "code").text = "example"

        annotate_links(TreeAdapter(root))

        assert [child.tag for child in link] == ["img", "code"]
        assert link.text is None
        assert link[0].tail is None

    def test_is_annotated_checks_first_child_marker(self):
        root = etree.Element("p")
        link = etree.SubElement(root, "a", href="https://example.com/")
        link.text = "example"
        adapter = TreeAdapter(root)

        assert adapter.is_annotated(link) is False
        annotate_links(adapter)
        assert adapter.is_annotated(link) is True

    def test_plain_image_is_not_a_marker(self):
        root = etree.Element("p")
        link = etree.SubElement(root, "a", href="https://example.com/")
        etree.SubElement(link, "img", {"src": "logo.png", "class": "logo"})

        assert TreeAdapter(root).is_annotated(link) is False

    def test_space_in_path_is_annotated_without_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            soup = render("[x](<https://example.com/a b>)")
        link = soup.find("a")
        assert link["href"] == "https://example.com/a b"
        assert link.contents[0]["src"] == favicon_url("example.com")
        assert "Failed to parse URL" not in caplog.text
