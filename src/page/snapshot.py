"""
Parsed page snapshot.

Collects what a clip template can reference from one fetched page: the
built-in page variables, every ``<meta>`` tag, schema.org JSON-LD data, and
CSS selector queries against the document.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from src.templating.filters.dates import format_date
from src.templating.filters.values import stringify
from src.templating.resolver import MetaKey, RenderContext
from src.utils.error_handler import safe_with_default
from src.utils.mixins import LoggerMixin

TIMESTAMP_FORMAT = "YYYY-MM-DDTHH:mm:ssZ"


class PageSnapshot(LoggerMixin):
    """HTML of one page, parsed once and queried many times."""

    def __init__(self, url: str, html: str, *, captured_at: datetime | None = None):
        self.url = url
        self.html = html
        self.captured_at = captured_at or datetime.now().astimezone()
        self.soup = BeautifulSoup(html, "html.parser")
        self._schema_data: list[Any] | None = None

    @classmethod
    def from_file(cls, path: Path, url: str = "") -> "PageSnapshot":
        """Loads a saved HTML file; ``url`` defaults to its file URI."""
        return cls(url or path.resolve().as_uri(), path.read_text(encoding="utf-8"))

    # ============================================================
    # Meta tags
    # ============================================================

    def meta_tags(self) -> dict[MetaKey, str]:
        """Every ``<meta name|property=... content=...>``; later tags win."""
        tags: dict[MetaKey, str] = {}
        for meta in self.soup.find_all("meta"):
            content = meta.get("content")
            if content is None:
                continue
            for attr in ("name", "property"):
                key = meta.get(attr)
                if key:
                    tags[(attr, key)] = content
        return tags

    def meta(self, attr: str, name: str) -> str:
        """First ``content`` for a meta tag, matching the key case-insensitively."""
        wanted = name.lower()
        for meta in self.soup.find_all("meta", attrs={attr: True}):
            if meta.get(attr, "").lower() == wanted:
                return (meta.get("content") or "").strip()
        return ""

    # ============================================================
    # schema.org
    # ============================================================

    @property
    def schema_data(self) -> list[Any]:
        """JSON-LD items of the page, with ``@graph`` containers flattened."""
        if self._schema_data is None:
            self._schema_data = self._load_schema_data()
        return self._schema_data

    def _load_schema_data(self) -> list[Any]:
        items: list[Any] = []
        for script in self.soup.find_all("script", attrs={"type": "application/ld+json"}):
            text = script.string or script.get_text()
            try:
                data = json.loads(text)
            except ValueError as e:
                self.logger.debug("Skipping invalid JSON-LD block", error=str(e))
                continue
            for item in data if isinstance(data, list) else [data]:
                if isinstance(item, dict) and isinstance(item.get("@graph"), list):
                    items.extend(item["@graph"])
                else:
                    items.append(item)
        return items

    def schema_property(self, path: str) -> str:
        """Looks up ``author.name`` style paths; several matches are joined with ", "."""
        return _search_schema(self.schema_data, path.split("."))

    def schema_variables(self) -> dict[str, str]:
        """``schema:@Type:key`` variables for every JSON-LD item."""
        variables: dict[str, str] = {}
        _add_schema_variables(self.schema_data, variables, "")
        return variables

    # ============================================================
    # Page variables
    # ============================================================

    @property
    def domain(self) -> str:
        hostname = urlparse(self.url).hostname or ""
        return hostname.removeprefix("www.")

    def title(self) -> str:
        title_tag = self.soup.find("title")
        return (
            self.meta("property", "og:title")
            or self.meta("name", "twitter:title")
            or self.schema_property("headline")
            or self.meta("name", "title")
            or (title_tag.get_text().strip() if title_tag else "")
        )

    def description(self) -> str:
        return (
            self.meta("name", "description")
            or self.meta("property", "description")
            or self.meta("property", "og:description")
            or self.schema_property("description")
            or self.meta("name", "twitter:description")
        )

    def author(self) -> str:
        return (
            self.meta("name", "sailthru.author")
            or self.schema_property("author.name")
            or self.meta("property", "author")
            or self.meta("name", "byl")
            or self.meta("name", "author")
            or self.meta("name", "copyright")
            or self.schema_property("copyrightHolder.name")
            or self.meta("property", "og:site_name")
            or self.schema_property("publisher.name")
            or self.meta("name", "twitter:creator")
        )

    def site(self) -> str:
        return (
            self.schema_property("publisher.name")
            or self.meta("property", "og:site_name")
            or self.schema_property("sourceOrganization.name")
            or self.meta("name", "copyright")
            or self.schema_property("isPartOf.name")
            or self.meta("name", "application-name")
        )

    def image(self) -> str:
        return (
            self.meta("property", "og:image")
            or self.meta("name", "twitter:image")
            or self.schema_property("image.url")
        )

    def published(self) -> str:
        time_tag = self.soup.find("time")
        time_text = ""
        if isinstance(time_tag, Tag):
            time_text = (time_tag.get("datetime") or time_tag.get_text()).strip()
        return (
            self.schema_property("datePublished")
            or self.meta("property", "article:published_time")
            or time_text
        )

    @safe_with_default("resolve favicon", "")
    def favicon(self) -> str:
        icon = self.meta("property", "og:image:favicon")
        if icon:
            return icon
        link = self.soup.select_one('link[rel~="icon"][href]')
        if link is not None:
            return urljoin(self.url, link["href"])
        if urlparse(self.url).scheme in ("http", "https"):
            return urljoin(self.url, "/favicon.ico")
        return ""

    def variables(self) -> dict[str, Any]:
        """The built-in page variables plus ``schema:`` variables."""
        timestamp = format_date(self.captured_at, TIMESTAMP_FORMAT)
        variables: dict[str, Any] = {
            "author": self.author(),
            "date": timestamp,
            "description": self.description(),
            "domain": self.domain,
            "favicon": self.favicon(),
            "fullHtml": self.html.strip(),
            "image": self.image(),
            "published": self.published(),
            "site": self.site(),
            "time": timestamp,
            "title": self.title(),
            "url": self.url,
        }
        variables.update(self.schema_variables())
        return variables

    # ============================================================
    # Selectors
    # ============================================================

    async def select(
        self, selector: str, *, attribute: str | None = None, html: bool = False
    ) -> str | list[str]:
        """Text (or an attribute, or inner HTML) of the matching elements.

        One match gives a string, several give a list, none gives ``""``.
        """
        values = [
            self._element_value(element, attribute, html)
            for element in self.soup.select(selector)
        ]
        if not values:
            return ""
        return values[0] if len(values) == 1 else values

    @staticmethod
    def _element_value(element: Tag, attribute: str | None, html: bool) -> str:
        if attribute:
            value = element.get(attribute, "")
            return " ".join(value) if isinstance(value, list) else value
        if html:
            return element.decode_contents().strip()
        return element.get_text().strip()

    def render_context(
        self,
        extra: dict[str, Any] | None = None,
        *,
        selector_timeout: float | None = None,
    ) -> RenderContext:
        """A fresh render context over this page."""
        values = self.variables()
        if extra:
            values.update(extra)
        return RenderContext(
            values=values,
            meta=self.meta_tags(),
            resolve_selector=self.select,
            selector_timeout=selector_timeout,
        )


def _search_schema(data: Any, props: list[str]) -> str:
    if isinstance(data, str):
        return data if not props else ""
    if isinstance(data, list):
        found = (_search_schema(item, props) for item in data)
        return ", ".join(value for value in found if value)
    if not isinstance(data, dict):
        return stringify(data) if not props and data is not None else ""
    if not props:
        name = data.get("name")
        return name if isinstance(name, str) else ""
    return _search_schema(data.get(props[0]), props[1:])


def _add_schema_variables(data: Any, variables: dict[str, str], prefix: str) -> None:
    if isinstance(data, list):
        for index, item in enumerate(data):
            item_type = item.get("@type") if isinstance(item, dict) else None
            if item_type:
                for type_name in item_type if isinstance(item_type, list) else [item_type]:
                    _add_schema_variables(item, variables, f"{prefix}@{type_name}:")
            else:
                _add_schema_variables(item, variables, f"{prefix}[{index}]:")
        return
    if not isinstance(data, dict):
        return

    variables[f"schema:{prefix.rstrip('.:')}"] = stringify(data)
    for key, value in data.items():
        if key == "@type":
            continue
        name = f"schema:{prefix}{key}"
        if isinstance(value, list):
            variables[name] = stringify(value)
            for index, item in enumerate(value):
                _add_schema_variables(item, variables, f"{prefix}{key}[{index}].")
        elif isinstance(value, dict):
            _add_schema_variables(value, variables, f"{prefix}{key}.")
        elif value is not None:
            variables[name] = stringify(value)
