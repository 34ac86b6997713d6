"""
Error types for the template engine.

Parse errors are collected and returned, not raised, by ``parse``; they are
exceptions so the parser's helpers can raise them internally and recover at
expression granularity.
"""


class TemplateError(Exception):
    """Base error class for all template-related errors."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        source: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.source = source

    def format_with_context(self) -> str:
        """Returns the message prefixed with its position, plus the offending text."""
        if self.line is None:
            return self.message

        location = f"line {self.line}"
        if self.column is not None:
            location += f", column {self.column}"
        formatted = f"Error at {location}: {self.message}"
        if self.source:
            formatted += f"\n  {self.source}"
        return formatted

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.message!r}, "
            f"line={self.line!r}, column={self.column!r})"
        )


class ParseError(TemplateError):
    """Unterminated or nested expression, or malformed expression syntax."""


class FilterRegistrationError(TemplateError):
    """A filter was registered twice, or after the registry was frozen."""
