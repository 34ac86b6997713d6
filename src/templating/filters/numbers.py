"""Arithmetic and number formatting filters."""

import math
import re
from typing import Any

from src.utils.logger import get_logger

from .registry import FilterDefinition, ParamShape
from .values import format_number, parse_int, parse_number, to_json, try_parse_json

logger = get_logger(__name__)

_NUMERIC = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$")
_ESCAPED_CHAR = re.compile(r"\\(.)", re.DOTALL)
_THOUSANDS = re.compile(r"\B(?=(\d{3})+(?!\d))")


def _to_number(text: str) -> float | None:
    """Strict numeric conversion; blank text counts as zero."""
    if not text.strip():
        return 0.0
    if not _NUMERIC.match(text):
        return None
    return float(text)


def _js_round(number: float) -> float:
    """Rounds half up, towards positive infinity."""
    return float(math.floor(number + 0.5))


def _normalize(number: float) -> int | float:
    if math.isfinite(number) and number.is_integer():
        return int(number)
    return number


def calc(value: str, param: str | None) -> str:
    """``calc:"+10"``, ``calc:"*2"``, ``calc:"**2"`` (``^`` works too)."""
    if not param:
        return value
    number = _to_number(value)
    if number is None:
        logger.warning("calc filter input is not a number", value=value)
        return value

    operation = param.strip()
    operator = "**" if operation.startswith("**") else operation[:1]
    operand = _to_number(operation[len(operator) :])
    if operand is None:
        logger.warning("Invalid calculation value", operation=operation)
        return value

    if operator == "+":
        result = number + operand
    elif operator == "-":
        result = number - operand
    elif operator == "*":
        result = number * operand
    elif operator == "/":
        if operand == 0:
            result = math.nan if number == 0 else math.copysign(math.inf, number)
        else:
            result = number / operand
    elif operator in ("**", "^"):
        result = math.pow(number, operand)
    else:
        logger.warning("Invalid calc operator", operator=operator)
        return value

    if math.isfinite(result):
        result = round(result, 10)
    return format_number(result)


def validate_round_params(param: str | None) -> str | None:
    if not param:
        return None
    places = parse_int(param)
    if places is None:
        return "decimal places must be a number (e.g., round:2)"
    if places < 0:
        return "decimal places must be non-negative (e.g., round:2)"
    return None


def round_(value: str, param: str | None) -> str:
    """Rounds a number, or every number inside a JSON value; ``round:2`` keeps decimals."""
    places = None
    if param is not None:
        if _to_number(param) is None:
            return value
        places = parse_int(param)

    def round_number(number: float) -> int | float:
        if places is None:
            return _normalize(_js_round(number))
        factor = 10**places
        return _normalize(_js_round(number * factor) / factor)

    def process(item: Any) -> Any:
        if isinstance(item, bool):
            return item
        if isinstance(item, (int, float)):
            return round_number(item)
        if isinstance(item, str):
            number = parse_number(item)
            return item if number is None else format_number(round_number(number))
        if isinstance(item, list):
            return [process(entry) for entry in item]
        if isinstance(item, dict):
            return {key: process(entry) for key, entry in item.items()}
        return item

    result = process(try_parse_json(value))
    return result if isinstance(result, str) else to_json(result)


def number_format(value: str, params: list[str]) -> str:
    """``number_format:(decimals, "dec_point", "thousands_sep")``."""
    decimals = parse_int(params[0]) if params else 0
    if decimals is None:
        decimals = 0
    decimal_point = _ESCAPED_CHAR.sub(r"\1", params[1]) if len(params) > 1 else "."
    thousands = _ESCAPED_CHAR.sub(r"\1", params[2]) if len(params) > 2 else ","

    def format_value(number: float) -> str:
        whole, _, fraction = f"{number:.{decimals}f}".partition(".")
        whole = _THOUSANDS.sub(lambda _: thousands, whole)
        return decimal_point.join(part for part in (whole, fraction) if part)

    def process(item: Any) -> Any:
        if isinstance(item, bool):
            return item
        if isinstance(item, (int, float)):
            return format_value(item)
        if isinstance(item, str):
            number = parse_number(item)
            return item if number is None else format_value(number)
        if isinstance(item, list):
            return [process(entry) for entry in item]
        if isinstance(item, dict):
            return {key: process(entry) for key, entry in item.items()}
        return item

    result = process(try_parse_json(value))
    return result if isinstance(result, str) else to_json(result)


FILTERS = (
    FilterDefinition("calc", calc, ParamShape.TEXT),
    FilterDefinition("round", round_, ParamShape.TEXT, validate_round_params),
    FilterDefinition("number_format", number_format, ParamShape.LIST),
)
