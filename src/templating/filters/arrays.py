"""
Filters that build, reshape and consume JSON arrays and objects.

``split`` produces an array, most of the others take one. Inputs that are not
valid JSON are treated as a plain string where that makes sense (``length``,
``reverse``, ``slice``) and returned unchanged otherwise.
"""

import json
import re
from typing import Any

from src.utils.logger import get_logger

from ..params import (
    is_single_quoted,
    split_top_level,
    strip_parens,
    strip_quotes,
    unescape_string,
)
from .registry import FilterDefinition, ParamShape
from .values import (
    lookup_path,
    parse_collection,
    parse_int,
    stringify,
    to_json,
    try_parse_json,
)

logger = get_logger(__name__)

_NOT_JSON = object()
_EMPTY_INPUTS = ("", "undefined", "null")
_TEMPLATE_FIELD = re.compile(r"\$\{([\w.\[\]]+)\}")
_ARROW = re.compile(r"^\s*(\w+)\s*=>\s*(.+)$", re.DOTALL)
_PLACEHOLDER = re.compile(r"\$\{\s*(\w+)((?:\.[\w-]+|\[\d+\])*)\s*\}")


def _entries(value: list | dict) -> list[tuple[str, Any]]:
    if isinstance(value, dict):
        return list(value.items())
    return [(str(index), item) for index, item in enumerate(value)]


def split(value: str, param: str | None) -> str:
    """Splits on a literal character, or on a regular expression."""
    if not param:
        logger.warning("split filter requires a separator parameter")
        return to_json([value])
    if len(param) == 1:
        return to_json(value.split(param))
    try:
        return to_json(re.split(param, value))
    except re.error:
        return to_json(value.split(param))


def join(value: str, param: str | None) -> str:
    items = try_parse_json(value, _NOT_JSON)
    if items is _NOT_JSON:
        logger.warning("join filter input is not JSON", value=value)
        return value
    if not isinstance(items, list):
        return value

    separator = ","
    if param:
        try:
            separator = json.loads(f'"{param}"')
        except ValueError:
            separator = param
    return separator.join(stringify(item) for item in items)


def first(value: str, _param: None = None) -> str:
    items = parse_collection(value)
    if isinstance(items, list) and items:
        return stringify(items[0])
    return value


def last(value: str, _param: None = None) -> str:
    items = parse_collection(value)
    if isinstance(items, list) and items:
        return stringify(items[-1])
    return value


def length(value: str, _param: None = None) -> str:
    collection = parse_collection(value)
    if collection is not None:
        return str(len(collection))
    return str(len(value))


def reverse(value: str, _param: None = None) -> str:
    if value in _EMPTY_INPUTS:
        return ""
    parsed = try_parse_json(value, _NOT_JSON)
    if parsed is _NOT_JSON:
        return value[::-1]
    if isinstance(parsed, list):
        return to_json(parsed[::-1])
    if isinstance(parsed, dict):
        return to_json(dict(reversed(list(parsed.items()))))
    return value


def unique(value: str, _param: None = None) -> str:
    """Drops duplicates; objects keep the last key holding each value."""
    collection = parse_collection(value)
    if isinstance(collection, list):
        seen: set[str] = set()
        kept = []
        for item in collection:
            key = to_json(item)
            if key not in seen:
                seen.add(key)
                kept.append(item)
        return to_json(kept)
    if isinstance(collection, dict):
        seen = set()
        kept_entries = []
        for key, item in reversed(list(collection.items())):
            marker = to_json(item)
            if marker not in seen:
                seen.add(marker)
                kept_entries.append((key, item))
        return to_json(dict(reversed(kept_entries)))
    return value


def _slice_bounds(param: str) -> tuple[int | None, int | None]:
    bounds = [parse_int(part) if part.strip() else None for part in param.split(",")]
    bounds += [None, None]
    return bounds[0], bounds[1]


def validate_slice_params(param: str | None) -> str | None:
    if not param:
        return "requires at least a start index (e.g., slice:0,5)"
    parts = [part.strip() for part in param.split(",")]
    if len(parts) > 2:
        return "accepts at most 2 parameters: start and end"
    for part in parts:
        if part and parse_int(part) is None:
            return f'"{part}" is not a valid number'
    return None


def slice_(value: str, param: str | None) -> str:
    """``slice:start,end`` on an array or a string; negative indexes count back."""
    if not param:
        logger.warning("slice filter requires parameters")
        return value
    if value == "":
        return value

    start, end = _slice_bounds(param)
    items = try_parse_json(value, _NOT_JSON)
    if items is _NOT_JSON and value[:1] in ("[", "{"):
        logger.warning("slice filter input looks like broken JSON", value=value)

    if isinstance(items, list):
        sliced = items[start:end]
        if len(sliced) == 1:
            return stringify(sliced[0])
        return to_json(sliced)
    return value[start:end]


def merge(value: str, params: list[str]) -> str:
    """Appends the parameter items to an array (or to a one-item array)."""
    if value in _EMPTY_INPUTS:
        return "[]"
    items = try_parse_json(value, _NOT_JSON)
    if items is _NOT_JSON:
        logger.warning("merge filter input is not JSON", value=value)
        return value
    if not isinstance(items, list):
        items = [value]
    return to_json(items + params)


def nth(value: str, param: str | None) -> str:
    """Keeps items by CSS-style position: ``5``, ``3n``, ``n+7`` or ``1,2:5``."""
    if value in _EMPTY_INPUTS:
        return value
    items = parse_collection(value)
    if not isinstance(items, list):
        return value
    if not param:
        return to_json(items)

    if ":" in param:
        positions_text, _, basis_text = param.partition(":")
        positions = {
            number
            for number in (parse_int(part) for part in positions_text.split(","))
            if number is not None and number > 0
        }
        basis = parse_int(basis_text)
        if not basis:
            return value
        return to_json(
            [item for index, item in enumerate(items) if index % basis + 1 in positions]
        )

    expression = param.strip()
    if re.fullmatch(r"\d+", expression):
        position = int(expression)
        return to_json([item for index, item in enumerate(items) if index + 1 == position])

    multiple = re.fullmatch(r"(\d+)n", expression)
    if multiple:
        step = int(multiple.group(1))
        if step == 0:
            return to_json([])
        return to_json([item for index, item in enumerate(items) if (index + 1) % step == 0])

    offset = re.fullmatch(r"n\+(\d+)", expression)
    if offset:
        start = int(offset.group(1))
        return to_json([item for index, item in enumerate(items) if index + 1 >= start])

    logger.warning("Invalid nth filter syntax", param=param)
    return value


def object_(value: str, param: str | None) -> str:
    """``object:array``, ``object:keys`` or ``object:values``."""
    collection = parse_collection(value)
    if collection is None:
        return value
    entries = _entries(collection)
    if param == "array":
        return to_json([list(entry) for entry in entries])
    if param == "keys":
        return to_json([key for key, _ in entries])
    if param == "values":
        return to_json([item for _, item in entries])
    return value


def template(value: str, param: str | None) -> str:
    """Fills ``${field}`` placeholders from an object, once per array item."""
    if not param:
        return value
    data = try_parse_json(value, _NOT_JSON)
    if data is _NOT_JSON:
        data = {"value": value}
    if isinstance(data, list):
        return "\n\n".join(_fill_template(param, item) for item in data)
    return _fill_template(param, data)


def _fill_template(pattern: str, data: Any) -> str:
    if not isinstance(data, (dict, list)):
        data = {"value": data}
    return _TEMPLATE_FIELD.sub(lambda m: stringify(lookup_path(data, m.group(1))), pattern)


def map_(value: str, param: str | None) -> str:
    """Transforms every item with an arrow expression.

    ``map:item => item.name`` picks a field, ``map:x => "[[${x}]]"`` fills a
    string and ``map:item => ({title: item.name, url: item.link})`` builds an
    object. Non-array input is mapped as a single item.
    """
    if not param:
        return value
    arrow = _ARROW.match(param)
    if arrow is None:
        logger.warning("Invalid map expression", expression=param)
        return value

    name, body = arrow.group(1), strip_parens(arrow.group(2).strip()).strip()
    data = try_parse_json(value, _NOT_JSON)
    items = data if isinstance(data, list) else [value if data is _NOT_JSON else data]
    return to_json([_map_item(name, body, item) for item in items])


def _map_item(name: str, body: str, item: Any) -> Any:
    if body.startswith("{") and body.endswith("}"):
        mapped = {}
        for entry in split_top_level(body[1:-1], ","):
            key, separator, expression = entry.partition(":")
            if separator and key.strip():
                mapped[strip_quotes(key.strip())] = _map_value(
                    name, expression.strip(), item
                )
        return mapped
    return _map_value(name, body, item)


def _map_value(name: str, expression: str, item: Any) -> Any:
    if is_single_quoted(expression):
        text = unescape_string(expression[1:-1])
        return _PLACEHOLDER.sub(lambda m: _fill_placeholder(m, name, item), text)
    if expression == name:
        return item
    if expression.startswith((f"{name}.", f"{name}[")):
        return lookup_path(item, expression[len(name) :])
    return expression


def _fill_placeholder(match: re.Match, name: str, item: Any) -> str:
    if match.group(1) != name:
        return match.group(0)
    path = match.group(2)
    return stringify(lookup_path(item, path) if path else item)



FILTERS = (
    FilterDefinition("split", split, ParamShape.TEXT),
    FilterDefinition("join", join, ParamShape.TEXT),
    FilterDefinition("first", first),
    FilterDefinition("last", last),
    FilterDefinition("length", length),
    FilterDefinition("reverse", reverse),
    FilterDefinition("unique", unique),
    FilterDefinition("slice", slice_, ParamShape.TEXT, validate_slice_params),
    FilterDefinition("merge", merge, ParamShape.LIST),
    FilterDefinition("nth", nth, ParamShape.TEXT),
    FilterDefinition("object", object_, ParamShape.TEXT),
    FilterDefinition("template", template, ParamShape.TEXT),
    FilterDefinition("map", map_, ParamShape.TEXT),
)
