"""YAML フロントマター生成器"""

import json
import re
from collections.abc import Iterable

from src.templating.filters.values import format_number, parse_number

from .models import PropertyType

# カンマで分割するが、 wikilink 内のカンマは無視する
_MULTITEXT_SEPARATOR = re.compile(r",(?![^\[]*\]\])")
_NON_NUMERIC = re.compile(r"[^\d.-]")


def escape_double_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def generate_frontmatter(properties: Iterable[tuple[str, str, PropertyType]]) -> str:
    """
    レンダリング済みプロパティから YAML フロントマターを生成

    Args:
        properties: ``(name, rendered_value, type)`` の並び

    Returns:
        ``---`` で囲まれたフロントマター（プロパティが無い場合は空文字列）
    """
    lines = [
        _format_yaml_field(name, value, prop_type)
        for name, value, prop_type in properties
    ]
    if not lines:
        return ""
    return "---\n" + "".join(lines) + "---\n"


def _format_yaml_field(name: str, value: str, prop_type: PropertyType) -> str:
    """1 フィールドを YAML 形式にフォーマット"""
    if prop_type is PropertyType.MULTITEXT:
        items = split_multitext(value)
        return f"{name}:\n" + "".join(
            f'  - "{escape_double_quotes(item)}"\n' for item in items
        )
    formatted = _format_yaml_value(value, prop_type)
    return f"{name}: {formatted}\n" if formatted else f"{name}:\n"


def _format_yaml_value(value: str, prop_type: PropertyType) -> str:
    """スカラー値を YAML 形式にフォーマット"""
    if prop_type is PropertyType.NUMBER:
        numeric = _NON_NUMERIC.sub("", value)
        if not numeric:
            return ""
        number = parse_number(numeric)
        return format_number(number) if number is not None else "NaN"

    if prop_type is PropertyType.CHECKBOX:
        return "true" if value == "true" else "false"

    if prop_type in (PropertyType.DATE, PropertyType.DATETIME):
        return value if value.strip() else ""

    # text
    return f'"{escape_double_quotes(value)}"' if value.strip() else ""


def split_multitext(value: str) -> list[str]:
    """リスト値を要素に分割（JSON 配列またはカンマ区切り）"""
    stripped = value.strip()
    items: list[str] | None = None
    if stripped.startswith('["') and stripped.endswith('"]'):
        try:
            parsed = json.loads(stripped)
        except ValueError:
            items = [item.strip() for item in value.split(",")]
        else:
            if isinstance(parsed, list):
                items = [str(item) for item in parsed]
    if items is None:
        items = [item.strip() for item in _MULTITEXT_SEPARATOR.split(value)]
    return [item for item in items if item != ""]
