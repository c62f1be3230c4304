"""Tests for front-matter parsing, collection schemas and HTML post-processing."""

from datetime import date

import pytest
from bs4 import BeautifulSoup

from parser import (
    ContentError,
    load_entry,
    load_page,
    post_process_html,
    reading_time_minutes,
    slug_from_path,
    split_front_matter,
    standardize_date,
    tag_to_slug,
    validate_entry,
)

POST = """---
title: Hello
description: First post
date: 2024-05-01
tags: [Vue, Front End]
---

See [Vue](https://vuejs.org/) and [my talks](/talks/).

```python
print("hi")
```
"""


class TestFrontMatter:
    def test_splits_yaml_and_body(self):
        metadata, body = split_front_matter(POST)
        assert metadata["title"] == "Hello"
        assert body.lstrip().startswith("See [Vue]")

    def test_no_front_matter(self):
        assert split_front_matter("# Title\n") == ({}, "# Title\n")

    def test_invalid_yaml_raises_content_error(self):
        with pytest.raises(ContentError) as excinfo:
            split_front_matter("---\ntitle: [oops\n---\nbody\n", "bad.md")
        assert excinfo.value.path == "bad.md"

    def test_front_matter_must_be_mapping(self):
        with pytest.raises(ContentError):
            split_front_matter("---\n- a\n- b\n---\nbody\n")


class TestValidateEntry:
    def test_blog_entry_is_normalized(self):
        data = validate_entry("blog", {"title": "T", "description": "D", "date": "2024-01-05"}, "x.md")
        assert data["date"] == date(2024, 1, 5)
        assert data["tags"] == []

    def test_missing_required_fields_are_reported_together(self):
        with pytest.raises(ContentError) as excinfo:
            validate_entry("blog", {"title": "T"}, "x.md")
        problems = excinfo.value.problems
        assert "'description' is required" in problems
        assert "'date' is required" in problems

    def test_bad_date(self):
        with pytest.raises(ContentError, match="not a valid date"):
            validate_entry("blog", {"title": "T", "description": "D", "date": "yesterday"}, "x.md")

    def test_comma_separated_tags(self):
        data = validate_entry(
            "blog", {"title": "T", "description": "D", "date": "2024-01-05", "tags": "a, b,"}, "x.md"
        )
        assert data["tags"] == ["a", "b"]

    def test_talk_urls_must_be_absolute(self):
        with pytest.raises(ContentError, match="slidesUrl"):
            validate_entry(
                "talks",
                {"title": "T", "description": "D", "date": "2024-01-05", "slidesUrl": "/slides"},
                "talk.md",
            )

    def test_talk_optional_fields(self):
        data = validate_entry(
            "talks",
            {
                "title": "T",
                "description": "D",
                "date": date(2024, 3, 20),
                "event": "Vue Fes",
                "videoUrl": "https://www.youtube.com/watch?v=x",
            },
            "talk.md",
        )
        assert data["event"] == "Vue Fes"
        assert "slidesUrl" not in data

    def test_unknown_collection(self):
        with pytest.raises(ContentError):
            validate_entry("podcasts", {}, "x.md")


def test_standardize_date_variants():
    assert standardize_date("2024-05-01T10:00:00Z") == date(2024, 5, 1)
    assert standardize_date(date(2024, 5, 1)) == date(2024, 5, 1)
    assert standardize_date(12345) is None


def test_slug_from_path_strips_date_prefix():
    assert slug_from_path("markdown/blog/2024-05-01-Hello-World.md") == "hello-world"
    assert slug_from_path("markdown/blog/notes.md") == "notes"


def test_tag_to_slug():
    assert tag_to_slug("Front End") == "front-end"
    assert tag_to_slug("日本語 テスト") == "日本語-テスト"


def test_reading_time():
    assert reading_time_minutes("") == 1
    assert reading_time_minutes("word " * 1000) == 5
    assert reading_time_minutes("あ" * 1500) == 3
    assert reading_time_minutes("<p>" + "word " * 400 + "</p>") == 2


class TestPostProcessHtml:
    def test_images_are_lazy(self):
        soup = BeautifulSoup(post_process_html('<p><img src="a.png"></p>'), "html.parser")
        assert soup.img["loading"] == "lazy"

    def test_tables_are_wrapped_once(self):
        html = post_process_html("<table><tr><td>1</td></tr></table>")
        html = post_process_html(html)
        soup = BeautifulSoup(html, "html.parser")
        assert len(soup.find_all("div", class_="table-wrapper")) == 1

    def test_code_blocks_get_language_and_copy_button(self):
        html = '<div class="highlight python"><pre><code>print(1)</code></pre></div>'
        soup = BeautifulSoup(post_process_html(html), "html.parser")
        pre = soup.pre
        assert pre["data-lang"] == "PYTHON"
        button = pre.find("button", class_="code-copy-button")
        assert button["aria-label"] == "Copy code"
        assert button.span.string == "Copy"
        assert button.svg is not None

    def test_copy_button_is_added_once(self):
        html = post_process_html(post_process_html("<pre><code>x</code></pre>"))
        soup = BeautifulSoup(html, "html.parser")
        assert len(soup.find_all("div", class_="code-copy-button-container")) == 1

    def test_empty_input(self):
        assert post_process_html("") == ""


class TestLoadEntry:
    def test_loads_and_renders_blog_post(self, tmp_path):
        path = tmp_path / "2024-05-01-hello.md"
        path.write_text(POST, encoding="utf-8")

        entry = load_entry(str(path), "blog")

        assert entry["slug"] == "hello"
        assert entry["collection"] == "blog"
        assert entry["draft"] is False
        assert entry["tags"] == [
            {"name": "Vue", "slug": "vue"},
            {"name": "Front End", "slug": "front-end"},
        ]
        soup = BeautifulSoup(entry["content_html"], "html.parser")
        vue = soup.find("a", href="https://vuejs.org/")
        assert vue.contents[0].name == "img"
        assert "inline-favicon" in vue.contents[0]["class"]
        assert soup.find("a", href="/talks/").find("img") is None
        assert soup.find("pre")["data-lang"] == "PYTHON"
        assert entry["reading_time"] == 1

    def test_front_matter_slug_wins(self, tmp_path):
        path = tmp_path / "file-name.md"
        path.write_text(POST.replace("title: Hello", "title: Hello\nslug: Custom"), encoding="utf-8")
        assert load_entry(str(path), "blog")["slug"] == "custom"

    def test_invalid_entry_raises(self, tmp_path):
        path = tmp_path / "bad.md"
        path.write_text("---\ntitle: Only title\n---\nbody\n", encoding="utf-8")
        with pytest.raises(ContentError):
            load_entry(str(path), "blog")

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ContentError, match="cannot read file"):
            load_entry(str(tmp_path / "missing.md"), "blog")

    def test_standalone_page(self, tmp_path):
        path = tmp_path / "about.md"
        path.write_text("Hello [GitHub](https://github.com/nao)\n", encoding="utf-8")
        page = load_page(str(path))
        assert page["slug"] == "about"
        assert page["title"] == "About"
        assert "inline-favicon" in page["content_html"]
