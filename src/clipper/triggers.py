"""
Template trigger matching.

A template lists triggers; the first template with a trigger matching the
page is used. Three kinds of trigger exist:

- ``schema:@Recipe`` or ``schema:@Recipe.name=Pie`` matches JSON-LD data,
- ``/regex/`` is searched against the URL,
- anything else is a URL prefix.
"""

import re
from collections.abc import Iterable, Sequence
from typing import Any

from src.templating.filters.values import lookup_path, stringify
from src.utils.logger import get_logger

from .models import ClipTemplate

logger = get_logger(__name__)

SCHEMA_PREFIX = "schema:"


def matches_trigger(pattern: str, url: str, schema_data: Sequence[Any] = ()) -> bool:
    """Whether one trigger matches the page."""
    if pattern.startswith(SCHEMA_PREFIX):
        return _matches_schema(pattern[len(SCHEMA_PREFIX) :], schema_data)

    if len(pattern) > 1 and pattern.startswith("/") and pattern.endswith("/"):
        try:
            return re.search(pattern[1:-1], url) is not None
        except re.error as e:
            logger.warning("Invalid trigger regex", pattern=pattern, error=str(e))
            return False

    return url.startswith(pattern)


def find_matching_template(
    url: str, templates: Iterable[ClipTemplate], schema_data: Sequence[Any] = ()
) -> ClipTemplate | None:
    """The first template with any trigger matching the page."""
    for template in templates:
        if any(matches_trigger(trigger, url, schema_data) for trigger in template.triggers):
            logger.debug("Template matched", template=template.name, url=url)
            return template
    return None


def _matches_schema(condition: str, schema_data: Sequence[Any]) -> bool:
    key, has_value, expected = condition.partition("=")
    schema_type = ""
    if key.startswith("@"):
        schema_type, _, key = key[1:].partition(".")

    for item in schema_data:
        if not isinstance(item, dict):
            continue
        if schema_type and schema_type not in _types_of(item):
            continue
        actual = lookup_path(item, key) if key else item
        if not actual:
            continue
        if not has_value:
            return True
        if isinstance(actual, list):
            if expected in (stringify(value) for value in actual):
                return True
        elif stringify(actual) == expected:
            return True
    return False


def _types_of(item: dict[str, Any]) -> list[str]:
    item_type = item.get("@type")
    if isinstance(item_type, list):
        return [str(value) for value in item_type]
    return [str(item_type)] if item_type else []
