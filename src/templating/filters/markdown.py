"""Filters that produce or strip Obsidian-flavoured Markdown."""

import re
from typing import Any
from urllib.parse import quote

from src.utils.logger import get_logger

from .registry import FilterDefinition, ParamShape
from .values import parse_collection, stringify, to_json, try_parse_json

logger = get_logger(__name__)

_NOT_JSON = object()
_FRAGMENT_PARAM = re.compile(r"^(.*?):?((?:https?|file)://.*)$", re.DOTALL)

LIST_PREFIXES = {
    "bullet": "- ",
    "numbered": "{n}. ",
    "task": "- [ ] ",
    "numbered-task": "{n}. [ ] ",
}

_STRIP_MD_RULES: tuple[tuple[re.Pattern, Any], ...] = (
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), ""),  # images
    (re.compile(r"!\[\[([^\]]+)\]\]"), ""),  # embeds
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),  # links
    (re.compile(r"https?://\S+"), ""),
    (re.compile(r"(\*\*|__)(.*?)\1"), r"\2"),  # bold
    (re.compile(r"(\*|_)(.*?)\1"), r"\2"),  # italic
    (re.compile(r"==(.*?)=="), r"\1"),  # highlights
    (re.compile(r"^#+\s+", re.M), ""),  # headers
    (re.compile(r"`([^`]+)`"), r"\1"),  # inline code
    (re.compile(r"```[\s\S]*?```"), ""),  # code blocks
    (re.compile(r"~~(.*?)~~"), r"\1"),  # strikethrough
    (re.compile(r"^[-*+] (\[[x ]\] )?", re.M), ""),  # list items and tasks
    (re.compile(r"^([-*_]){3,}\s*$", re.M), ""),  # horizontal rules
    (re.compile(r"^>\s+", re.M), ""),  # blockquotes
    (re.compile(r"\|.*\|"), ""),  # tables
    (re.compile(r"([~^])(\w+)\1"), r"\2"),  # sub/superscript
    (re.compile(r":[a-z_]+:"), ""),  # emoji shortcodes
    (re.compile(r"<[^>]+>"), ""),  # html tags
    (re.compile(r"\[\s*\]"), ""),
    (re.compile(r"\[\^[^\]]+\]"), ""),  # footnote references
    (re.compile(r"^\*\[[^\]]+\]:.+$", re.M), ""),  # abbreviations
    (re.compile(r"\[\[([^\]|]+)\|?([^\]]*)\]\]"), lambda m: m.group(2) or m.group(1)),
    (re.compile(r"\n{3,}"), "\n\n"),
)


def escape_markdown(text: str) -> str:
    return re.sub(r"([\[\]])", r"\\\1", text)


def _encode_url(url: str) -> str:
    return url.replace(" ", "%20")


def _flatten_entries(value: list | dict, render) -> list[str]:
    """Renders each (key, leaf) pair of a nested object, depth first."""
    entries = value.items() if isinstance(value, dict) else enumerate(value)
    rendered: list[str] = []
    for key, item in entries:
        if isinstance(item, (dict, list)):
            rendered.extend(_flatten_entries(item, render))
        else:
            rendered.append(render(str(key), stringify(item)))
    return rendered


def wikilink(value: str, param: str | None) -> str:
    """``[[value]]``; arrays map item by item, objects become ``[[key|value]]``."""
    if not value.strip():
        return value
    alias = param or ""

    def wrap(target: Any) -> str:
        if not target:
            return ""
        text = stringify(target)
        return f"[[{text}|{alias}]]" if alias else f"[[{text}]]"

    collection = parse_collection(value)
    if isinstance(collection, list):
        result: list[str] = []
        for item in collection:
            if isinstance(item, (dict, list)):
                result.extend(_flatten_entries(item, lambda k, v: f"[[{k}|{v}]]"))
            else:
                result.append(wrap(item))
        return to_json(result)
    if isinstance(collection, dict):
        return to_json(_flatten_entries(collection, lambda k, v: f"[[{k}|{v}]]"))
    return wrap(value)


def link(value: str, param: str | None) -> str:
    """Markdown link to a URL; ``link:"text"`` sets the link text."""
    if not value.strip():
        return value
    text = param or "link"

    def render_object(key: str, item: str) -> str:
        return f"[{escape_markdown(item)}]({_encode_url(escape_markdown(key))})"

    collection = parse_collection(value)
    if isinstance(collection, list):
        lines: list[str] = []
        for item in collection:
            if isinstance(item, (dict, list)):
                lines.extend(_flatten_entries(item, render_object))
            else:
                lines.append(
                    f"[{text}]({_encode_url(escape_markdown(stringify(item)))})"
                    if item
                    else ""
                )
        return "\n".join(lines)
    if isinstance(collection, dict):
        return "\n".join(_flatten_entries(collection, render_object))
    return f"[{text}]({_encode_url(escape_markdown(value))})"


def image(value: str, param: str | None) -> str:
    """Markdown image embed; ``image:"alt text"`` sets the alt text."""
    if not value.strip():
        return value
    alt_text = param or ""

    def render_object(key: str, item: str) -> str:
        return f"![{escape_markdown(item)}]({escape_markdown(key)})"

    collection = parse_collection(value)
    if isinstance(collection, list):
        lines: list[str] = []
        for item in collection:
            if isinstance(item, (dict, list)):
                lines.extend(_flatten_entries(item, render_object))
            else:
                lines.append(
                    f"![{alt_text}]({escape_markdown(stringify(item))})" if item else ""
                )
        return "\n".join(lines)
    if isinstance(collection, dict):
        return "\n".join(_flatten_entries(collection, render_object))
    return f"![{alt_text}]({escape_markdown(value)})"


def blockquote(value: str, _param: None = None) -> str:
    return "\n".join(f"> {line}" for line in value.split("\n"))


def callout(value: str, params: list[str]) -> str:
    """``callout:("type", "title", fold)``; fold ``true`` collapses it."""
    callout_type = params[0] if params and params[0] else "info"
    heading = params[1] if len(params) > 1 else ""
    fold = ""
    if len(params) > 2:
        fold = {"true": "-", "false": "+"}.get(params[2].lower(), "")

    header = f"> [!{callout_type}]{fold}"
    if heading:
        header += f" {heading}"
    return f"{header}\n{blockquote(value)}"


def list_(value: str, param: str | None) -> str:
    """Markdown list of an array: ``bullet``, ``numbered``, ``task`` or ``numbered-task``."""
    style = param if param in LIST_PREFIXES else "bullet"
    parsed = try_parse_json(value, _NOT_JSON)
    if parsed is _NOT_JSON:
        return _list_lines([value], style, 0)
    if not isinstance(parsed, list):
        parsed = [parsed]
    return _list_lines(parsed, style, 0)


def _list_lines(items: list, style: str, depth: int) -> str:
    lines = []
    for number, item in enumerate(items, start=1):
        if isinstance(item, list):
            lines.append(_list_lines(item, style, depth + 1))
            continue
        prefix = LIST_PREFIXES[style].format(n=number)
        lines.append("\t" * depth + prefix + stringify(item))
    return "\n".join(lines)


def _table_cell(value: Any) -> str:
    return stringify(value).replace("|", "\\|")


def _table_header(headers: list[str]) -> str:
    return f"| {' | '.join(headers)} |\n| {' | '.join('-' for _ in headers)} |\n"


def table(value: str, headers: list[str]) -> str:
    """Markdown table from an object, an array of objects or rows, or a flat array."""
    if value in ("", "undefined", "null"):
        return value
    data = try_parse_json(value, _NOT_JSON)
    if data is _NOT_JSON:
        logger.warning("table filter input is not JSON", value=value)
        return value

    if isinstance(data, dict):
        if not data:
            return value
        (first_key, first_value), *rest = data.items()
        rows = f"| {_table_cell(first_key)} | {_table_cell(first_value)} |\n| - | - |\n"
        for key, item in rest:
            rows += f"| {_table_cell(key)} | {_table_cell(item)} |\n"
        return rows.strip()

    if not isinstance(data, list):
        return value

    if data and isinstance(data[0], dict):
        columns = headers or list(data[0])
        rows = _table_header(columns)
        for row in data:
            cells = [
                _table_cell(row.get(column) or "") if isinstance(row, dict) else ""
                for column in columns
            ]
            rows += f"| {' | '.join(cells)} |\n"
        return rows.strip()

    if data and isinstance(data[0], list):
        width = max(len(row) if isinstance(row, list) else 1 for row in data)
        rows = _table_header(headers or [""] * width)
        for row in data:
            row = row if isinstance(row, list) else [row]
            cells = [_table_cell(cell) for cell in row] + [""] * (width - len(row))
            rows += f"| {' | '.join(cells)} |\n"
        return rows.strip()

    if headers:
        width = len(headers)
        rows = _table_header(headers)
        for start in range(0, len(data), width):
            chunk = data[start : start + width]
            cells = [_table_cell(cell) for cell in chunk] + [""] * (width - len(chunk))
            rows += f"| {' | '.join(cells)} |\n"
        return rows.strip()

    rows = "| Value |\n| - |\n"
    for item in data:
        rows += f"| {_table_cell(item)} |\n"
    return rows.strip()


def footnote(value: str, _param: None = None) -> str:
    collection = parse_collection(value)
    if isinstance(collection, list):
        return "\n\n".join(
            f"[^{index}]: {stringify(item)}"
            for index, item in enumerate(collection, start=1)
        )
    if isinstance(collection, dict):
        notes = []
        for key, item in collection.items():
            note_id = re.sub(r"([a-z])([A-Z])", r"\1-\2", key)
            note_id = re.sub(r"[\s_]+", "-", note_id).lower()
            notes.append(f"[^{note_id}]: {stringify(item)}")
        return "\n\n".join(notes)
    return value


def strip_md(value: str, _param: None = None) -> str:
    """Reduces Markdown to plain text."""
    for pattern, replacement in _STRIP_MD_RULES:
        value = pattern.sub(replacement, value)
    return value.strip()


def fragment_link(value: str, param: str | None) -> str:
    """Appends a text-fragment link back to the page to each highlight.

    ``fragment_link:"Source":https://example.com/post`` uses "Source" as the
    link text ("link" when omitted). Highlight objects keep their other
    fields. Always returns a JSON array.
    """
    if not param or not value.strip():
        return to_json([value])

    match = _FRAGMENT_PARAM.match(param)
    if match:
        label = re.sub(r"[\"']", "", match.group(1)).strip().rstrip(":") or "link"
        page_url = match.group(2).rstrip("\"'")
    else:
        label, page_url = "link", param.strip().strip("\"'")

    def with_link(text: str) -> str:
        return f"{text} [{label}]({page_url}{text_fragment(text)})"

    data = try_parse_json(value, _NOT_JSON)
    if data is _NOT_JSON:
        data = value
    if isinstance(data, list):
        linked: list[Any] = []
        for item in data:
            if isinstance(item, dict) and "text" in item:
                linked.append({**item, "text": with_link(stringify(item["text"]))})
            else:
                linked.append(with_link(stringify(item)))
        return to_json(linked)
    if isinstance(data, dict):
        return to_json([with_link(stringify(item)) for item in data.values()])
    return to_json([with_link(stringify(data))])


def text_fragment(text: str) -> str:
    """``#:~:text=start,end``: long passages are cut to five words each side."""
    words = strip_md(text).split()
    if len(words) > 10:
        start, end = " ".join(words[:5]), " ".join(words[-5:])
        return f"#:~:text={_encode_component(start)},{_encode_component(end)}"
    return f"#:~:text={_encode_component(' '.join(words))}"


def _encode_component(text: str) -> str:
    return quote(text, safe="-_.!~*'()")



FILTERS = (
    FilterDefinition("wikilink", wikilink, ParamShape.TEXT),
    FilterDefinition("link", link, ParamShape.TEXT),
    FilterDefinition("image", image, ParamShape.TEXT),
    FilterDefinition("blockquote", blockquote),
    FilterDefinition("callout", callout, ParamShape.LIST),
    FilterDefinition("list", list_, ParamShape.TEXT),
    FilterDefinition("table", table, ParamShape.LIST),
    FilterDefinition("footnote", footnote),
    FilterDefinition("strip_md", strip_md),
    FilterDefinition("fragment_link", fragment_link, ParamShape.TEXT),
)
