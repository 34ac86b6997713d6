"""
Lexer for clip templates.

Splits template text into literal spans, ``{{ ... }}`` expression spans and
``{% ... %}`` tag spans. Spans cannot nest. Lexical problems never abort the
scan: an unterminated opener turns the rest of the input into literal text,
and an opener found inside an open span of the same kind demotes the outer
opener to literal text so scanning can resume at the inner one.

A ``-`` right inside a delimiter (``{{-``, ``-}}``, ``{%-``, ``-%}``) is a
trim marker and is recorded on the token instead of in its text.
"""

from .errors import ParseError
from .tokens import (
    CLOSE_DELIMITER,
    OPEN_DELIMITER,
    TAG_CLOSE,
    TAG_OPEN,
    TRIM_MARKER,
    Token,
    TokenType,
)

_SPANS = {
    OPEN_DELIMITER: (
        CLOSE_DELIMITER,
        TokenType.EXPRESSION,
        "expression",
        "an expression",
    ),
    TAG_OPEN: (TAG_CLOSE, TokenType.TAG, "tag", "a tag"),
}


class Lexer:
    """Single-use scanner over one template source."""

    def __init__(self, source: str):
        self._source = source
        self._pos = 0
        self._line = 1
        self._column = 1
        self.tokens: list[Token] = []
        self.errors: list[ParseError] = []

    def tokenize(self) -> list[Token]:
        source = self._source
        literal_start = 0
        literal_line, literal_column = 1, 1
        search_from = 0

        while True:
            open_at, opener = self._next_opener(search_from)
            if open_at == -1:
                break

            closer, token_type, kind, noun = _SPANS[opener]
            self._advance_to(open_at)
            open_line, open_column = self._line, self._column

            close_at = source.find(closer, open_at + len(opener))
            nested_at = source.find(opener, open_at + len(opener))

            if close_at == -1:
                self.errors.append(
                    ParseError(
                        f"Unterminated {kind}: missing closing '{closer}'",
                        open_line,
                        open_column,
                        _excerpt(source[open_at:]),
                    )
                )
                break

            if nested_at != -1 and nested_at < close_at:
                self.errors.append(
                    ParseError(
                        f"Nested '{opener}' inside {noun} is not allowed",
                        open_line,
                        open_column,
                        _excerpt(source[open_at:nested_at]),
                    )
                )
                search_from = nested_at
                continue

            if open_at > literal_start:
                self._emit(
                    TokenType.LITERAL,
                    source[literal_start:open_at],
                    literal_line,
                    literal_column,
                )

            inner = source[open_at + len(opener) : close_at]
            trim_left = inner.startswith(TRIM_MARKER)
            if trim_left:
                inner = inner[1:]
            trim_right = inner.endswith(TRIM_MARKER)
            if trim_right:
                inner = inner[:-1]

            self._emit(
                token_type,
                inner,
                open_line,
                open_column,
                trim_left=trim_left,
                trim_right=trim_right,
            )

            search_from = close_at + len(closer)
            self._advance_to(search_from)
            literal_start = search_from
            literal_line, literal_column = self._line, self._column

        if literal_start < len(source):
            self._emit(
                TokenType.LITERAL, source[literal_start:], literal_line, literal_column
            )

        return self.tokens

    def _next_opener(self, start: int) -> tuple[int, str]:
        """Earliest ``{{`` or ``{%`` at or after ``start``."""
        best_at, best = -1, OPEN_DELIMITER
        for opener in _SPANS:
            found = self._source.find(opener, start)
            if found != -1 and (best_at == -1 or found < best_at):
                best_at, best = found, opener
        return best_at, best

    def _emit(
        self,
        token_type: TokenType,
        text: str,
        line: int,
        column: int,
        trim_left: bool = False,
        trim_right: bool = False,
    ) -> None:
        self.tokens.append(
            Token(token_type, text, line, column, trim_left, trim_right)
        )

    def _advance_to(self, index: int) -> None:
        """Moves the line/column cursor forward to ``index``."""
        chunk = self._source[self._pos : index]
        newlines = chunk.count("\n")
        if newlines:
            self._line += newlines
            self._column = len(chunk) - chunk.rfind("\n")
        else:
            self._column += len(chunk)
        self._pos = index


def tokenize(source: str) -> list[Token]:
    """Tokenizes a template, discarding lexical errors.

    Use ``Lexer`` directly (or ``parse``) when the errors are needed.
    """
    return Lexer(source).tokenize()


def _excerpt(text: str, limit: int = 40) -> str:
    first_line = text.split("\n", 1)[0]
    if len(first_line) > limit:
        return first_line[:limit] + "..."
    return first_line
