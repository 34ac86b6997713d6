"""Tokens produced by the template lexer."""

from dataclasses import dataclass
from enum import Enum

OPEN_DELIMITER = "{{"
CLOSE_DELIMITER = "}}"
TAG_OPEN = "{%"
TAG_CLOSE = "%}"
TRIM_MARKER = "-"


class TokenType(Enum):
    """Token types produced by the lexer."""

    LITERAL = "LITERAL"
    EXPRESSION = "EXPRESSION"
    TAG = "TAG"


@dataclass(frozen=True)
class Token:
    """A literal span, the inside of a ``{{ ... }}`` span, or of a ``{% ... %}`` tag.

    ``text`` is the literal text, or for expressions and tags the raw text
    between the delimiters, without ``-`` trim markers. ``line`` and
    ``column`` are 1-based and point at the first character of the span (the
    opening delimiter for expressions and tags). ``trim_left`` / ``trim_right``
    record ``{{-`` / ``-}}`` style markers.
    """

    type: TokenType
    text: str
    line: int
    column: int = 1
    trim_left: bool = False
    trim_right: bool = False

    @property
    def is_expression(self) -> bool:
        return self.type is TokenType.EXPRESSION

    @property
    def is_tag(self) -> bool:
        return self.type is TokenType.TAG

    @property
    def source_text(self) -> str:
        """The span exactly as it appeared in the template."""
        if self.type is TokenType.LITERAL:
            return self.text
        opener, closer = (
            (TAG_OPEN, TAG_CLOSE) if self.is_tag else (OPEN_DELIMITER, CLOSE_DELIMITER)
        )
        left = TRIM_MARKER if self.trim_left else ""
        right = TRIM_MARKER if self.trim_right else ""
        return f"{opener}{left}{self.text}{right}{closer}"
