"""
HTML filters, mostly for ``selectorHtml:`` and ``contentHtml`` values.

Clean-up filters rewrite the markup; ``html_to_json`` and ``markdown``
convert it to another format.
"""

import html as html_entities
import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from ..params import split_arguments, split_top_level, strip_quotes
from .registry import FilterDefinition, ParamShape
from .values import to_json

_ANY_TAG = re.compile(r"</?[^>]+(>|$)")
_OPEN_TAG_WITH_ATTRS = re.compile(r"<(\w+)\s+(?:[^>]*?)>")
_ESCAPED_QUOTE = re.compile(r"""\\(['"])""")
_ESCAPED_CHAR = re.compile(r"\\(.)", re.DOTALL)
_SPACES = re.compile(r"\s+")
_HEADINGS = {f"h{level}": level for level in range(1, 7)}
_BLOCKS = frozenset(
    {"p", "div", "section", "article", "main", "header", "footer", "figure", "aside"}
)
_DROPPED = ("script", "style", "noscript", "template")


def _names(param: str | None) -> list[str]:
    if not param:
        return []
    return [name for name in split_arguments(_ESCAPED_QUOTE.sub(r"\1", param)) if name]


def _alternation(names: list[str]) -> str:
    return "|".join(re.escape(name) for name in names)


def strip_tags(value: str, param: str | None) -> str:
    """Removes tags (except ``strip_tags:("p,b")``) and decodes entities."""
    keep = _names(param)
    if keep:
        pattern = re.compile(rf"<(?!/?(?:{_alternation(keep)})\b)[^>]+>", re.IGNORECASE)
        result = pattern.sub("", value)
    else:
        result = _ANY_TAG.sub("", value)
    result = html_entities.unescape(result).replace("\xa0", " ")
    return re.sub(r"\n{3,}", "\n\n", result).strip()


def remove_tags(value: str, param: str | None) -> str:
    """Removes only the named tags, keeping their content."""
    names = _names(param)
    if not names:
        return value
    pattern = re.compile(rf"</?(?:{_alternation(names)})\b[^>]*>", re.IGNORECASE)
    return pattern.sub("", value)


def strip_attr(value: str, param: str | None) -> str:
    """Drops attributes from every tag, except ``strip_attr:("href,src")``."""
    keep = _names(param)

    def rewrite(match: re.Match) -> str:
        tag = match.group(1)
        kept = []
        for attribute in keep:
            found = re.search(
                rf"""\s{re.escape(attribute)}\s*=\s*("[^"]*"|'[^']*')""",
                match.group(0),
                re.IGNORECASE,
            )
            if found:
                kept.append(found.group(0).strip())
        return f"<{tag} {' '.join(kept)}>" if kept else f"<{tag}>"

    return _OPEN_TAG_WITH_ATTRS.sub(rewrite, value)


def remove_html(value: str, param: str | None) -> str:
    """Deletes whole elements: ``remove_html:(".ad, #comments, aside")``.

    ``.name`` matches any element whose class attribute contains ``name``,
    ``#name`` matches by id and anything else by tag name.
    """
    targets = _names(param)
    if not targets:
        return value

    soup = BeautifulSoup(value, "html.parser")
    for target in targets:
        if target.startswith("."):
            doomed = soup.select(f'[class*="{target[1:]}"]')
        elif target.startswith("#"):
            doomed = soup.select(f'[id="{target[1:]}"]')
        else:
            doomed = soup.find_all(target)
        for element in doomed:
            if not element.decomposed:
                element.decompose()
    return str(soup)


def remove_attr(value: str, param: str | None) -> str:
    """Drops only the named attributes: ``remove_attr:("class,style")``."""
    doomed = {name.lower() for name in _names(param)}
    if not doomed:
        return value

    soup = BeautifulSoup(value, "html.parser")
    for element in soup.find_all(True):
        for attribute in list(element.attrs):
            if attribute.lower() in doomed:
                del element[attribute]
    return str(soup)


def replace_tags(value: str, param: str | None) -> str:
    """Renames tags: ``replace_tags:("h1":"h2","b":"strong")``.

    An empty target removes the tag and keeps its content.
    """
    if not param:
        return value

    renames = []
    for pair in split_top_level(param, ","):
        parts = split_top_level(pair, ":")
        source = _clean_part(parts[0])
        target = _clean_part(parts[1]) if len(parts) > 1 else ""
        if source:
            renames.append((source, target))
    if not renames:
        return value

    soup = BeautifulSoup(value, "html.parser")
    for source, target in renames:
        for element in soup.find_all(source):
            if target:
                element.name = target
            else:
                element.unwrap()
    return str(soup)


def _clean_part(part: str) -> str:
    return _ESCAPED_CHAR.sub(r"\1", strip_quotes(part.strip())).lower()


def html_to_json(value: str, _param: None = None) -> str:
    """Describes the HTML tree as JSON elements and text nodes.

    A single top-level node is returned as an object, several as an array.
    """
    soup = BeautifulSoup(value, "html.parser")
    nodes = [node for node in map(_node_to_json, soup.contents) if node is not None]
    return to_json(nodes[0] if len(nodes) == 1 else nodes)


def _node_to_json(node) -> dict | None:
    if isinstance(node, PreformattedString):
        return None
    if isinstance(node, NavigableString):
        text = str(node).strip()
        return {"type": "text", "content": text} if text else None
    if not isinstance(node, Tag):
        return None

    result: dict = {"type": "element", "tag": node.name.lower()}
    if node.attrs:
        result["attributes"] = {
            name: " ".join(attr) if isinstance(attr, list) else attr
            for name, attr in node.attrs.items()
        }
    children = [
        child for child in map(_node_to_json, node.children) if child is not None
    ]
    if children:
        result["children"] = children
    return result


# ============================================================
# HTML → Markdown
# ============================================================


def markdown(value: str, param: str | None) -> str:
    """Converts HTML to Markdown.

    ``markdown:"https://example.com/"`` resolves relative links and images.
    """
    return html_to_markdown(value, param or None)


def html_to_markdown(value: str, base_url: str | None = None) -> str:
    soup = BeautifulSoup(value, "html.parser")
    for element in soup.find_all(_DROPPED):
        element.decompose()

    text = "".join(_to_markdown(child, base_url) for child in soup.contents)

    lines = []
    in_fence = False
    for line in text.split("\n"):
        if line.startswith("```"):
            in_fence = not in_fence
        lines.append(line if in_fence else line.strip(" ").rstrip())
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def _to_markdown(node, base_url: str | None) -> str:
    if isinstance(node, PreformattedString):
        return ""
    if isinstance(node, NavigableString):
        return _SPACES.sub(" ", str(node))
    if not isinstance(node, Tag):
        return ""

    name = node.name.lower()

    def inner() -> str:
        return "".join(_to_markdown(child, base_url) for child in node.children)

    if name in _HEADINGS:
        return f"\n\n{'#' * _HEADINGS[name]} {inner().strip()}\n\n"
    if name in _BLOCKS:
        return f"\n\n{inner().strip()}\n\n"
    if name == "br":
        return "\n"
    if name == "hr":
        return "\n\n---\n\n"
    if name in ("strong", "b"):
        return _wrap(inner(), "**")
    if name in ("em", "i"):
        return _wrap(inner(), "*")
    if name in ("del", "s", "strike"):
        return _wrap(inner(), "~~")
    if name == "mark":
        return _wrap(inner(), "==")
    if name == "code":
        return f"`{node.get_text()}`"
    if name == "pre":
        return _code_block(node)
    if name == "a":
        text = inner().strip()
        href = _absolute(node.get("href"), base_url)
        return f"[{text}]({href})" if href else text
    if name == "img":
        src = _absolute(node.get("src"), base_url)
        return f"![{node.get('alt', '')}]({src})" if src else ""
    if name in ("ul", "ol"):
        return f"\n\n{_list(node, base_url, 0)}\n\n"
    if name == "blockquote":
        body = re.sub(r"\n{3,}", "\n\n", inner().strip())
        quoted = "\n".join(
            f"> {line}" if line.strip() else ">" for line in body.split("\n")
        )
        return f"\n\n{quoted}\n\n"
    if name == "table":
        return f"\n\n{_table(node, base_url)}\n\n"
    return inner()


def _wrap(text: str, marker: str) -> str:
    stripped = text.strip()
    return f"{marker}{stripped}{marker}" if stripped else ""


def _absolute(url, base_url: str | None) -> str:
    if not url:
        return ""
    return urljoin(base_url, url) if base_url else url


def _code_block(node: Tag) -> str:
    code = node.find("code")
    language = ""
    if isinstance(code, Tag):
        for cls in code.get("class") or []:
            if cls.startswith("language-"):
                language = cls[len("language-") :]
                break
    return f"\n\n```{language}\n{node.get_text().rstrip()}\n```\n\n"


def _list(node: Tag, base_url: str | None, depth: int) -> str:
    lines = []
    indent = "\t" * depth
    for index, item in enumerate(node.find_all("li", recursive=False), start=1):
        marker = f"{index}." if node.name == "ol" else "-"
        parts = []
        nested = []
        for child in item.children:
            if isinstance(child, Tag) and child.name in ("ul", "ol"):
                nested.append(_list(child, base_url, depth + 1))
            else:
                parts.append(_to_markdown(child, base_url))
        text = _SPACES.sub(" ", "".join(parts)).strip()
        lines.append(f"{indent}{marker} {text}")
        lines.extend(nested)
    return "\n".join(lines)


def _table(node: Tag, base_url: str | None) -> str:
    rows = []
    for row in node.find_all("tr"):
        cells = [
            _SPACES.sub(" ", _to_markdown(cell, base_url)).strip().replace("|", "\\|")
            for cell in row.find_all(["th", "td"])
        ]
        if cells:
            rows.append(cells)
    if not rows:
        return ""

    width = max(len(row) for row in rows)
    rows = [row + [""] * (width - len(row)) for row in rows]
    lines = [_table_row(rows[0]), _table_row(["---"] * width)]
    lines += [_table_row(row) for row in rows[1:]]
    return "\n".join(lines)


def _table_row(cells: list[str]) -> str:
    return "| " + " | ".join(cells) + " |"


FILTERS = (
    FilterDefinition("strip_tags", strip_tags, ParamShape.TEXT),
    FilterDefinition("remove_tags", remove_tags, ParamShape.TEXT),
    FilterDefinition("strip_attr", strip_attr, ParamShape.TEXT),
    FilterDefinition("remove_html", remove_html, ParamShape.TEXT),
    FilterDefinition("remove_attr", remove_attr, ParamShape.TEXT),
    FilterDefinition("replace_tags", replace_tags, ParamShape.TEXT),
    FilterDefinition("html_to_json", html_to_json),
    FilterDefinition("markdown", markdown, ParamShape.TEXT),
)
