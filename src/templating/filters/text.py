"""Case, whitespace and escaping filters."""

import re
from typing import Any
from urllib.parse import unquote

from ..params import split_top_level, strip_quotes
from .registry import FilterDefinition, ParamShape
from .values import to_json, try_parse_json

_NOT_JSON = object()

_CAMEL_BOUNDARY = re.compile(r"(?:^\w|[A-Z]|\b\w)", re.ASCII)
_TITLE_WORD = re.compile(r"[^\W\d_]\S*")
_ESCAPED_CHAR = re.compile(r"\\(.)", re.DOTALL)
_BAD_PERCENT = re.compile(r"%(?![0-9A-Fa-f]{2})")

_OBSIDIAN_RESERVED = re.compile(r"[#|\^\[\]]")
_WINDOWS_RESERVED_NAME = re.compile(
    r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE | re.DOTALL
)
MAX_FILENAME_LENGTH = 245


def lower(value: str, _param: None = None) -> str:
    return value.lower()


def upper(value: str, _param: None = None) -> str:
    return value.upper()


def trim(value: str, _param: None = None) -> str:
    return value.strip()


def capitalize(value: str, _param: None = None) -> str:
    """Capitalizes a string, or every string and key inside a JSON value."""
    parsed = try_parse_json(value, _NOT_JSON)
    if parsed is _NOT_JSON:
        return _capitalize_word(value)
    return to_json(_capitalize_value(parsed))


def _capitalize_word(text: str) -> str:
    return text[:1].upper() + text[1:].lower()


def _capitalize_value(value: Any) -> Any:
    if isinstance(value, str):
        return _capitalize_word(value)
    if isinstance(value, list):
        return [_capitalize_value(item) for item in value]
    if isinstance(value, dict):
        return {
            _capitalize_word(key): _capitalize_value(item)
            for key, item in value.items()
        }
    return value


def title(value: str, _param: None = None) -> str:
    return _TITLE_WORD.sub(lambda m: _capitalize_word(m.group(0)), value)


def camel(value: str, _param: None = None) -> str:
    converted = _CAMEL_BOUNDARY.sub(
        lambda m: m.group(0).lower() if m.start() == 0 else m.group(0).upper(),
        value,
    )
    return re.sub(r"[\s_-]+", "", converted)


def pascal(value: str, _param: None = None) -> str:
    converted = re.sub(r"[\s_-]+(.)", lambda m: m.group(1).upper(), value)
    return converted[:1].upper() + converted[1:]


def kebab(value: str, _param: None = None) -> str:
    converted = re.sub(r"([a-z])([A-Z])", r"\1-\2", value)
    return re.sub(r"[\s_]+", "-", converted).lower()


def snake(value: str, _param: None = None) -> str:
    converted = re.sub(r"([a-z])([A-Z])", r"\1_\2", value)
    return re.sub(r"[\s-]+", "_", converted).lower()


def uncamel(value: str, _param: None = None) -> str:
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", value)
    return re.sub(r"([A-Z])([A-Z][a-z])", r"\1 \2", spaced).lower()


def replace(value: str, param: str | None) -> str:
    """``replace:"old":"new"`` or ``replace:("a":"b","c":"d")``.

    A missing replacement deletes the search text.
    """
    if not param:
        return value
    for pair in split_top_level(param, ","):
        parts = split_top_level(pair, ":")
        search = _clean_replace_part(parts[0])
        replacement = _clean_replace_part(parts[1]) if len(parts) > 1 else ""
        if search:
            value = value.replace(search, replacement)
    return value


def _clean_replace_part(part: str) -> str:
    return _ESCAPED_CHAR.sub(r"\1", strip_quotes(part.strip()))


def safe_name(value: str, param: str | None) -> str:
    """Sanitizes a note file name for ``windows``, ``mac``, ``linux`` or all."""
    target_os = param.strip().lower() if param else "default"
    sanitized = _OBSIDIAN_RESERVED.sub("", value)

    if target_os == "windows":
        sanitized = re.sub(r'[<>:"/\\|?*\x00-\x1F]', "", sanitized)
        sanitized = _WINDOWS_RESERVED_NAME.sub(r"_\1\2", sanitized)
        sanitized = re.sub(r"[\s.]+$", "", sanitized)
    elif target_os == "mac":
        sanitized = re.sub(r"[/:\x00-\x1F]", "", sanitized)
        sanitized = re.sub(r"^\.", "_", sanitized)
    elif target_os == "linux":
        sanitized = re.sub(r"[/\x00-\x1F]", "", sanitized)
        sanitized = re.sub(r"^\.", "_", sanitized)
    else:
        sanitized = re.sub(r'[<>:"/\\|?*\x00-\x1F]', "", sanitized)
        sanitized = _WINDOWS_RESERVED_NAME.sub(r"_\1\2", sanitized)
        sanitized = re.sub(r"[\s.]+$", "", sanitized)
        sanitized = re.sub(r"^\.", "_", sanitized)

    # leave room for a " 1.md" suffix
    sanitized = sanitized.lstrip(".")[:MAX_FILENAME_LENGTH]
    return sanitized or "Untitled"


def unescape(value: str, _param: None = None) -> str:
    return value.replace('\\"', '"').replace("\\n", "\n")


def decode_uri(value: str, _param: None = None) -> str:
    """Percent-decodes ``value``; malformed sequences leave it unchanged."""
    if _BAD_PERCENT.search(value):
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


FILTERS = (
    FilterDefinition("lower", lower),
    FilterDefinition("upper", upper),
    FilterDefinition("trim", trim),
    FilterDefinition("capitalize", capitalize),
    FilterDefinition("title", title),
    FilterDefinition("camel", camel),
    FilterDefinition("pascal", pascal),
    FilterDefinition("kebab", kebab),
    FilterDefinition("snake", snake),
    FilterDefinition("uncamel", uncamel),
    FilterDefinition("replace", replace, ParamShape.TEXT),
    FilterDefinition("safe_name", safe_name, ParamShape.TEXT),
    FilterDefinition("unescape", unescape),
    FilterDefinition("decode_uri", decode_uri),
)
