"""
Quote- and parenthesis-aware scanning helpers.

Used by the parser to split filter chains on ``|`` and to unwrap filter
parameters, and by filters to split their own comma-separated parameters.
Separators inside quoted strings or parentheses never split.
"""

import re

QUOTES = ("\"", "'")

_STRING_ESCAPE = re.compile(r"\\(.)", re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


def split_top_level(text: str, separator: str, skip_doubled: bool = False) -> list[str]:
    """Splits ``text`` on ``separator`` outside quotes and parentheses.

    A quote that is never closed, or a ``(`` that is never balanced, is
    treated as an ordinary character, so a stray apostrophe (``don't``) or
    parenthesis cannot swallow the rest of a chain. With ``skip_doubled`` a
    doubled one-character separator (``||``) is left alone.
    """
    literal: set[int] = set()
    while True:
        parts, unbalanced_at = _scan(text, separator, literal, skip_doubled)
        if unbalanced_at is None:
            return parts
        literal.add(unbalanced_at)


def _scan(
    text: str, separator: str, literal: set[int], skip_doubled: bool
) -> tuple[list[str], int | None]:
    parts: list[str] = []
    current_start = 0
    quote: str | None = None
    quote_at = -1
    open_parens: list[int] = []
    i = 0

    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in QUOTES and i not in literal:
            quote = ch
            quote_at = i
        elif ch == "(" and i not in literal:
            open_parens.append(i)
        elif ch == ")" and open_parens:
            open_parens.pop()
        elif not open_parens and text.startswith(separator, i):
            if skip_doubled and text.startswith(separator * 2, i):
                i += 2
                continue
            parts.append(text[current_start:i])
            i += len(separator)
            current_start = i
            continue
        i += 1

    if quote is not None:
        return [], quote_at
    if open_parens:
        return [], open_parens[0]

    parts.append(text[current_start:])
    return parts, None


def is_single_quoted(text: str) -> bool:
    """True when ``text`` is exactly one quoted string, e.g. ``", "``."""
    if len(text) < 2 or text[0] not in QUOTES or text[-1] != text[0]:
        return False
    quote = text[0]
    i = 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i == len(text) - 1
        i += 1
    return False


def strip_quotes(text: str) -> str:
    """Removes one layer of matching quotes, if present."""
    if is_single_quoted(text):
        return text[1:-1]
    return text


def strip_parens(text: str) -> str:
    """Removes one layer of parentheses that enclose the whole text."""
    if len(text) >= 2 and text[0] == "(" and text[-1] == ")":
        if closing_paren(text, 0) == len(text) - 1:
            return text[1:-1]
    return text


def closing_paren(text: str, open_at: int) -> int:
    """Index of the ``)`` matching the ``(`` at ``open_at``, or -1."""
    depth = 0
    quote: str | None = None
    i = open_at
    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def unwrap_param(raw: str) -> tuple[str, bool]:
    """Strips parentheses then quotes; returns the text and whether it was quoted."""
    text = strip_parens(raw.strip()).strip()
    if is_single_quoted(text):
        return text[1:-1], True
    return text, False


def split_arguments(text: str | None, separator: str = ",") -> list[str]:
    """Splits a ``"a", "b"`` style parameter into unquoted, trimmed items."""
    if text is None or not text.strip():
        return []
    return [
        strip_quotes(part.strip()) for part in split_top_level(text, separator)
    ]


def unescape_string(text: str) -> str:
    """Resolves ``\\n``, ``\\t``, ``\\r`` and backslash-quoted characters."""
    return _STRING_ESCAPE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text)
