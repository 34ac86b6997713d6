"""Test page snapshots and the fetcher"""

import json

import pytest

from src.page import PageFetcher, PageSnapshot
from src.templating import render_template


class TestPageVariables:
    """Test the built-in page variables"""

    def test_variables(self, snapshot) -> None:
        variables = snapshot.variables()
        assert variables["title"] == "Hello World"
        assert variables["author"] == "Jane Doe"
        assert variables["site"] == "Example Blog"
        assert variables["published"] == "2024-11-28"
        assert variables["description"] == "A first post about templates."
        assert variables["image"] == "https://www.example.com/images/hero.png"
        assert variables["favicon"] == "https://www.example.com/static/favicon.png"
        assert variables["domain"] == "example.com"
        assert variables["url"] == "https://www.example.com/posts/hello-world"
        assert variables["date"] == "2024-12-01T09:30:00+09:00"
        assert variables["time"] == variables["date"]
        assert variables["fullHtml"].startswith("<!DOCTYPE html>")

    def test_fallbacks_on_bare_page(self) -> None:
        page = PageSnapshot(
            "https://blog.example.org/a",
            "<html><head><title> Plain </title></head><body></body></html>",
        )
        assert page.title() == "Plain"
        assert page.author() == ""
        assert page.favicon() == "https://blog.example.org/favicon.ico"
        assert page.domain == "blog.example.org"

    def test_favicon_needs_http_url(self, tmp_path) -> None:
        path = tmp_path / "saved.html"
        path.write_text("<html></html>", encoding="utf-8")
        page = PageSnapshot.from_file(path)
        assert page.url.startswith("file://")
        assert page.favicon() == ""

    def test_from_file_with_url(self, tmp_path, article_html) -> None:
        path = tmp_path / "article.html"
        path.write_text(article_html, encoding="utf-8")
        page = PageSnapshot.from_file(path, "https://example.com/x")
        assert page.url == "https://example.com/x"
        assert page.title() == "Hello World"


class TestMetaTags:
    """Test meta tag collection"""

    def test_meta_tags(self, snapshot) -> None:
        tags = snapshot.meta_tags()
        assert tags[("name", "description")] == "A first post about templates."
        assert tags[("property", "og:site_name")] == "Example Blog"
        assert ("name", "og:site_name") not in tags

    def test_meta_is_case_insensitive(self, snapshot) -> None:
        assert snapshot.meta("property", "OG:TITLE") == "Hello World"
        assert snapshot.meta("name", "missing") == ""


class TestSchemaData:
    """Test schema.org JSON-LD handling"""

    def test_graph_is_flattened(self, snapshot) -> None:
        types = [item["@type"] for item in snapshot.schema_data]
        assert types == ["BlogPosting", "Organization"]

    def test_schema_property(self, snapshot) -> None:
        assert snapshot.schema_property("headline") == "Hello World"
        assert snapshot.schema_property("author.name") == "Jane Doe"
        assert snapshot.schema_property("author") == "Jane Doe"
        assert snapshot.schema_property("nothing.here") == ""

    def test_schema_variables(self, snapshot) -> None:
        variables = snapshot.schema_variables()
        assert variables["schema:@BlogPosting:headline"] == "Hello World"
        assert variables["schema:@BlogPosting:author.name"] == "Jane Doe"
        assert variables["schema:@Organization:name"] == "Example Blog"
        assert json.loads(variables["schema:@BlogPosting:keywords"]) == [
            "templates",
            "clipping",
        ]
        assert json.loads(variables["schema:@BlogPosting"])["headline"] == "Hello World"

    def test_invalid_json_ld_is_skipped(self) -> None:
        page = PageSnapshot(
            "https://example.com",
            '<script type="application/ld+json">{not json</script>'
            '<script type="application/ld+json">{"@type":"Thing","name":"ok"}</script>',
        )
        assert page.schema_variables()["schema:@Thing:name"] == "ok"


@pytest.mark.asyncio
class TestSelectors:
    """Test CSS selector queries"""

    async def test_single_match_is_text(self, snapshot) -> None:
        assert await snapshot.select(".byline") == "By Jane Doe"

    async def test_attribute(self, snapshot) -> None:
        assert await snapshot.select("img.hero", attribute="src") == "/images/hero.png"

    async def test_several_matches_are_a_list(self, snapshot) -> None:
        assert await snapshot.select("ul.tags li") == ["templates", "clipping"]

    async def test_inner_html(self, snapshot) -> None:
        result = await snapshot.select("ul.tags", html=True)
        assert result == "<li>templates</li><li>clipping</li>"

    async def test_no_match_is_empty(self, snapshot) -> None:
        assert await snapshot.select(".missing") == ""


class TestRenderContext:
    """Test templates rendered against a snapshot"""

    @pytest.mark.asyncio
    async def test_render_page_template(self, snapshot) -> None:
        ctx = snapshot.render_context()
        source = (
            "# {{title}}\n"
            "{{meta:property:og:site_name}} / {{schema:@BlogPosting:author.name}}\n"
            "{{selector:ul.tags li|join:\", \"}}\n"
            "{{selector:img.hero?src}}"
        )
        assert await render_template(source, ctx) == (
            "# Hello World\n"
            "Example Blog / Jane Doe\n"
            "templates, clipping\n"
            "/images/hero.png"
        )

    @pytest.mark.asyncio
    async def test_extra_values_override(self, snapshot) -> None:
        ctx = snapshot.render_context({"title": "Custom", "highlights": ["x"]})
        assert await render_template("{{title}} {{highlights|first}}", ctx) == "Custom x"

    def test_selector_timeout_is_passed(self, snapshot) -> None:
        assert snapshot.render_context(selector_timeout=2.5).selector_timeout == 2.5


class TestPageFetcher:
    """Test the HTTP fetcher without network access"""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://example.com/a", True),
            ("http://example.com", True),
            ("ftp://example.com", False),
            ("file:///tmp/a.html", False),
            ("not a url", False),
            ("https://", False),
        ],
    )
    def test_is_valid_url(self, url, expected) -> None:
        assert PageFetcher.is_valid_url(url) is expected

    @pytest.mark.asyncio
    async def test_non_http_url_is_refused(self) -> None:
        assert await PageFetcher().fetch("file:///etc/hosts") is None

    def test_settings_are_applied(self) -> None:
        from src.config import override_settings

        with override_settings(http_timeout_seconds=3.0, http_user_agent="test-agent"):
            fetcher = PageFetcher()
        assert fetcher.timeout.total == 3.0
        assert fetcher.headers["User-Agent"] == "test-agent"
