"""
Date and duration filters.

Format strings use the day.js token set the clipper templates are written
in (``YYYY-MM-DD``, ``MMM D, YYYY``, ``dddd [at] h:mm A``), not strftime.
Text inside ``[brackets]`` is copied literally. Dates without an explicit
input format are auto-detected with ``dateutil``.
"""

import re
from datetime import datetime, timedelta, timezone

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from src.utils.logger import get_logger

from .registry import FilterDefinition, ParamShape
from .values import parse_int

logger = get_logger(__name__)

DEFAULT_DATE_FORMAT = "YYYY-MM-DD"

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
WEEKDAY_NAMES = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)

_FORMAT_TOKEN = re.compile(
    r"\[([^\]]*)]|YYYY|YY|MMMM|MMM|MM|M|Do|DD|D|dddd|ddd|dd|d"
    r"|HH|H|hh|h|mm|m|ss|s|SSS|A|a|ZZ|Z|X|x"
)

DATE_MODIFY_PATTERN = re.compile(r"^([+-])\s*(\d+)\s*(\w+)s?$", re.ASCII)
DATE_MODIFY_UNITS = ("year", "month", "week", "day", "hour", "minute", "second")

ISO_DURATION_PATTERN = re.compile(
    r"^P(?:(\d+)Y)?(?:(\d+)M)?(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$"
)
_DURATION_TOKEN = re.compile(r"HH|H|mm|m|ss|s")


# ============================================================
# day.js formatting
# ============================================================


def format_date(value: datetime, fmt: str) -> str:
    """Formats ``value`` with day.js tokens."""
    return _FORMAT_TOKEN.sub(lambda m: _format_token(value, m), fmt)


def _format_token(value: datetime, match: re.Match) -> str:
    if match.group(1) is not None:
        return match.group(1)
    token = match.group(0)
    weekday = (value.weekday() + 1) % 7  # Sunday == 0
    hour12 = value.hour % 12 or 12

    if token == "YYYY":
        return f"{value.year:04d}"
    if token == "YY":
        return f"{value.year % 100:02d}"
    if token == "MMMM":
        return MONTH_NAMES[value.month - 1]
    if token == "MMM":
        return MONTH_NAMES[value.month - 1][:3]
    if token == "MM":
        return f"{value.month:02d}"
    if token == "M":
        return str(value.month)
    if token == "Do":
        return ordinal(value.day)
    if token == "DD":
        return f"{value.day:02d}"
    if token == "D":
        return str(value.day)
    if token == "dddd":
        return WEEKDAY_NAMES[weekday]
    if token == "ddd":
        return WEEKDAY_NAMES[weekday][:3]
    if token == "dd":
        return WEEKDAY_NAMES[weekday][:2]
    if token == "d":
        return str(weekday)
    if token == "HH":
        return f"{value.hour:02d}"
    if token == "H":
        return str(value.hour)
    if token == "hh":
        return f"{hour12:02d}"
    if token == "h":
        return str(hour12)
    if token == "mm":
        return f"{value.minute:02d}"
    if token == "m":
        return str(value.minute)
    if token == "ss":
        return f"{value.second:02d}"
    if token == "s":
        return str(value.second)
    if token == "SSS":
        return f"{value.microsecond // 1000:03d}"
    if token == "A":
        return "AM" if value.hour < 12 else "PM"
    if token == "a":
        return "am" if value.hour < 12 else "pm"
    if token in ("Z", "ZZ"):
        return _format_offset(value, ":" if token == "Z" else "")
    if token == "X":
        return str(int(_as_aware(value).timestamp()))
    return str(int(_as_aware(value).timestamp() * 1000))


def ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.astimezone()


def _format_offset(value: datetime, separator: str) -> str:
    offset = _as_aware(value).utcoffset() or timedelta(0)
    minutes = int(offset.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}{separator}{minutes:02d}"


# ============================================================
# day.js strict parsing
# ============================================================

_PARSE_PATTERNS = {
    "YYYY": r"(?P<year>\d{4})",
    "YY": r"(?P<year2>\d{2})",
    "MMMM": r"(?P<month_name>[A-Za-z]+)",
    "MMM": r"(?P<month_abbr>[A-Za-z]{3})",
    "MM": r"(?P<month>\d{2})",
    "M": r"(?P<month>\d{1,2})",
    "Do": r"(?P<day>\d{1,2})(?:st|nd|rd|th)",
    "DD": r"(?P<day>\d{2})",
    "D": r"(?P<day>\d{1,2})",
    "dddd": r"[A-Za-z]+",
    "ddd": r"[A-Za-z]{3}",
    "dd": r"[A-Za-z]{2}",
    "d": r"[0-6]",
    "HH": r"(?P<hour>\d{2})",
    "H": r"(?P<hour>\d{1,2})",
    "hh": r"(?P<hour12>\d{2})",
    "h": r"(?P<hour12>\d{1,2})",
    "mm": r"(?P<minute>\d{2})",
    "m": r"(?P<minute>\d{1,2})",
    "ss": r"(?P<second>\d{2})",
    "s": r"(?P<second>\d{1,2})",
    "SSS": r"(?P<millisecond>\d{3})",
    "A": r"(?P<meridiem>AM|PM|am|pm)",
    "a": r"(?P<meridiem>AM|PM|am|pm)",
    "Z": r"(?P<offset>Z|[+-]\d{2}:?\d{2})",
    "ZZ": r"(?P<offset>Z|[+-]\d{2}:?\d{2})",
    "X": r"(?P<unix>-?\d+(?:\.\d+)?)",
    "x": r"(?P<unix_ms>-?\d+)",
}


def _compile_input_format(fmt: str) -> re.Pattern:
    parts: list[str] = []
    seen: set[str] = set()
    position = 0
    for match in _FORMAT_TOKEN.finditer(fmt):
        parts.append(re.escape(fmt[position : match.start()]))
        position = match.end()
        if match.group(1) is not None:
            parts.append(re.escape(match.group(1)))
            continue
        pattern = _PARSE_PATTERNS[match.group(0)]
        group = re.match(r"\(\?P<(\w+)>", pattern)
        if group and group.group(1) in seen:
            # a field may only be captured once per format
            pattern = re.sub(r"\(\?P<\w+>", "(?:", pattern, count=1)
        elif group:
            seen.add(group.group(1))
        parts.append(pattern)
    parts.append(re.escape(fmt[position:]))
    return re.compile("".join(parts))


def parse_date(value: str, fmt: str) -> datetime:
    """Parses ``value`` strictly against a day.js input format.

    Raises ``ValueError`` when the text does not match or names an
    impossible date.
    """
    match = _compile_input_format(fmt).fullmatch(value.strip())
    if match is None:
        raise ValueError(f'"{value}" does not match format "{fmt}"')
    fields = {key: item for key, item in match.groupdict().items() if item is not None}

    if "unix" in fields:
        return datetime.fromtimestamp(float(fields["unix"]), tz=timezone.utc)
    if "unix_ms" in fields:
        return datetime.fromtimestamp(int(fields["unix_ms"]) / 1000, tz=timezone.utc)

    now = datetime.now()
    has_date = any(
        key in fields
        for key in ("year", "year2", "month", "month_name", "month_abbr", "day")
    )
    if has_date:
        year = int(fields.get("year", now.year))
        if "year2" in fields:
            short = int(fields["year2"])
            year = short + (1900 if short > 68 else 2000)
        month = _parse_month(fields)
        day = int(fields.get("day", 1))
    else:
        year, month, day = now.year, now.month, now.day

    hour = int(fields.get("hour", 0))
    if "hour12" in fields:
        hour = int(fields["hour12"]) % 12
        if fields.get("meridiem", "").lower() == "pm":
            hour += 12
    elif fields.get("meridiem", "").lower() == "pm" and hour < 12:
        hour += 12

    parsed = datetime(
        year,
        month,
        day,
        hour,
        int(fields.get("minute", 0)),
        int(fields.get("second", 0)),
        int(fields.get("millisecond", 0)) * 1000,
    )
    if "offset" in fields:
        parsed = parsed.replace(tzinfo=_parse_offset(fields["offset"]))
    return parsed


def _parse_month(fields: dict[str, str]) -> int:
    if "month" in fields:
        return int(fields["month"])
    name = fields.get("month_name") or fields.get("month_abbr")
    if name is None:
        return 1
    for index, month_name in enumerate(MONTH_NAMES, start=1):
        if name.lower() in (month_name.lower(), month_name[:3].lower()):
            return index
    raise ValueError(f'Unknown month name "{name}"')


def _parse_offset(text: str) -> timezone:
    if text == "Z":
        return timezone.utc
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return timezone(sign * delta)


def detect_date(value: str) -> datetime:
    """Auto-detects a date written in any common notation."""
    if not value.strip():
        raise ValueError("empty date")
    return date_parser.parse(value)


# ============================================================
# Filters
# ============================================================


def date(value: str, params: list[str]) -> str:
    """``date:"<output>"`` or ``date:("<output>", "<input>")``."""
    output_format = params[0].strip() if params else ""
    input_format = params[1].strip() if len(params) > 1 else ""

    try:
        if input_format:
            parsed = parse_date(value, input_format)
        else:
            parsed = detect_date(value)
    except (ValueError, OverflowError) as exc:
        logger.warning("Invalid date for date filter", value=value, error=str(exc))
        return value

    return format_date(parsed, output_format or DEFAULT_DATE_FORMAT)


def _clean_modifier(param: str) -> str:
    param = re.sub(r"^\((.*)\)$", r"\1", param, flags=re.DOTALL)
    return re.sub(r"""^(['"])(.*)\1$""", r"\2", param, flags=re.DOTALL).strip()


def _normalize_unit(unit: str) -> str:
    unit = unit.lower()
    return unit[:-1] if unit.endswith("s") else unit


def validate_date_modify_params(param: str | None) -> str | None:
    """Returns an error message for a bad ``date_modify`` parameter, or None."""
    if not param:
        return 'requires a modifier (e.g., date_modify:"+1 day", "-2 weeks")'

    match = DATE_MODIFY_PATTERN.match(_clean_modifier(param))
    if not match:
        return 'invalid format. Use "+1 day", "-2 weeks", etc.'

    unit = match.group(3)
    if _normalize_unit(unit) not in DATE_MODIFY_UNITS:
        return (
            f'invalid unit "{unit}". '
            "Use year, month, week, day, hour, minute, or second"
        )
    return None


def date_modify(value: str, param: str | None) -> str:
    """Shifts a date: ``date_modify:"+1 year"``, ``date_modify:"-2 weeks"``."""
    error = validate_date_modify_params(param)
    if error is not None:
        logger.warning("Invalid date_modify parameter", param=param, error=error)
        return value

    try:
        parsed = detect_date(value)
    except (ValueError, OverflowError) as exc:
        logger.warning(
            "Invalid date for date_modify filter", value=value, error=str(exc)
        )
        return value

    sign, amount, unit = DATE_MODIFY_PATTERN.match(_clean_modifier(param)).groups()
    count = int(amount) if sign == "+" else -int(amount)
    shifted = parsed + relativedelta(**{_normalize_unit(unit) + "s": count})
    return format_date(shifted, DEFAULT_DATE_FORMAT)


def duration(value: str, param: str | None) -> str:
    """Formats an ISO 8601 duration or a number of seconds.

    Tokens: ``HH`` ``H`` ``mm`` ``m`` ``ss`` ``s``. Without a format the
    output is ``HH:mm:ss`` for an hour or more and ``mm:ss`` otherwise.
    """
    if not value:
        return value

    text = re.sub(r"""^["'](.*)["']$""", r"\1", value, flags=re.DOTALL)
    match = ISO_DURATION_PATTERN.match(text)
    if match:
        years, months, days, hours, minutes, seconds = (
            int(group) if group else 0 for group in match.groups()
        )
        total = (
            years * 365 * 86400
            + months * 30 * 86400
            + days * 86400
            + hours * 3600
            + minutes * 60
            + seconds
        )
    else:
        total = parse_int(text)
        if total is None:
            return value

    return format_duration(total, param)


def format_duration(total_seconds: int, fmt: str | None = None) -> str:
    if not fmt:
        fmt = "HH:mm:ss" if total_seconds >= 3600 else "mm:ss"
    fmt = re.sub(r"""^["'(](.*)["')]$""", r"\1", fmt, flags=re.DOTALL)

    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = {
        "HH": f"{hours:02d}",
        "H": str(hours),
        "mm": f"{minutes:02d}",
        "m": str(minutes),
        "ss": f"{seconds:02d}",
        "s": str(seconds),
    }
    return _DURATION_TOKEN.sub(lambda m: parts[m.group(0)], fmt)


FILTERS = (
    FilterDefinition("date", date, ParamShape.LIST),
    FilterDefinition(
        "date_modify",
        date_modify,
        ParamShape.TEXT,
        validate_date_modify_params,
    ),
    FilterDefinition("duration", duration, ParamShape.TEXT),
)
