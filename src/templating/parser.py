"""
Parser for clip templates.

Turns lexer tokens into an AST of literal, expression and tag nodes.

Expression grammar (inside ``{{ }}``)::

    expression := chain ( "??" chain )*
    chain      := variable ( "|" filter )*
    variable   := "selector:" css [ "?" attribute ]
                | "selectorHtml:" css [ "?" attribute ]
                | "meta:" ( "name" | "property" ) ":" key
                | string
                | name
    filter     := ident [ ":" param ] | ident "(" params ")"

``|`` only separates filters outside quotes and parentheses. Filter
parameters are opaque to the parser beyond one layer of parentheses and one
layer of matching quotes; each filter interprets its own parameter.

Tags (inside ``{% %}``)::

    {% if cond %} ... {% elseif cond %} ... {% else %} ... {% endif %}
    {% for item in cond %} ... {% endfor %}
    {% set name = cond %}

    cond       := piped ( "??" piped )*
    piped      := or ( "|" filter )*
    or         := and ( ( "or" | "||" ) and )*
    and        := not ( ( "and" | "&&" ) not )*
    not        := ( "not" | "!" ) not | comparison
    comparison := primary [ ( "==" | "!=" | ">" | "<" | ">=" | "<="
                            | "contains" ) primary ]
    primary    := string | number | "true" | "false" | "null"
                | variable | "(" cond ")"

Every tag eats the line break that follows it. A ``-`` inside a delimiter
(``{{-``, ``{%-``, ``-}}``, ``-%}``) also trims the neighbouring whitespace
on that side, up to and including one line break.

A malformed expression or tag becomes a literal node holding its original
text, and the error is collected so one bad span never hides the others.
Blocks left open at the end of the template are closed there, with an error.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import ParseError
from .lexer import Lexer
from .nodes import (
    BinaryOp,
    Constant,
    Expr,
    ExpressionNode,
    FilterCall,
    ForNode,
    IfNode,
    LiteralNode,
    MetaAttribute,
    Name,
    Namespace,
    Node,
    Not,
    Piped,
    SetNode,
    VariableRef,
)
from .params import (
    closing_paren,
    is_single_quoted,
    split_top_level,
    strip_parens,
    unescape_string,
    unwrap_param,
)
from .tokens import Token, TokenType

SELECTOR_PREFIX = "selector:"
SELECTOR_HTML_PREFIX = "selectorHtml:"
META_PREFIX = "meta:"
NULLISH = "??"

FILTER_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")
_CALL_FORM = re.compile(r"^([^\s:(]+)\s*(\(.*\))$", re.DOTALL)

_TAG_HEAD = re.compile(r"^\s*(\w+)\s*(.*?)\s*$", re.DOTALL)
_FOR_HEAD = re.compile(r"^([A-Za-z_]\w*)\s+in\s+(.+)$", re.DOTALL)
_SET_HEAD = re.compile(r"^([A-Za-z_]\w*)\s*=(?!=)\s*(.+)$", re.DOTALL)

_TRIM_BEFORE = re.compile(r"[ \t]*(?:\r?\n)?[ \t]*\Z")
_TRIM_AFTER = re.compile(r"\A[ \t]*(?:\r?\n)?")
_TAG_LINE_END = re.compile(r"\A[ \t]*\r?\n")

_COND_TOKEN = re.compile(
    r"""
    (?P<string>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')
    | (?P<number>-?\d+(?:\.\d+)?(?![\w@]))
    | (?P<op>==|!=|>=|<=|&&|\|\||[<>!(])
    | (?P<word>selector(?:Html)?:[^\s()]+|[A-Za-z_@][\w@\-.:\[\]]*)
    """,
    re.VERBOSE | re.DOTALL,
)
_COMPARISONS = frozenset({"==", "!=", ">", "<", ">=", "<=", "contains"})
_KEYWORD_CONSTANTS = {"true": True, "false": False, "null": None}


@dataclass
class ParseResult:
    """Compiled template plus the non-fatal errors found while compiling it."""

    ast: list[Node] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class _OpenBlock:
    """An ``if`` or ``for`` whose end tag has not been seen yet."""

    keyword: str
    token: Token
    bodies: list[list[Node]] = field(default_factory=lambda: [[]])
    conditions: list[Expr] = field(default_factory=list)
    has_else: bool = False
    iterator: str = ""
    iterable: Expr | None = None

    def close(self) -> Node:
        if self.keyword == "for":
            assert self.iterable is not None
            return ForNode(
                self.iterator,
                self.iterable,
                tuple(self.bodies[0]),
                self.token.line,
                self.token.column,
            )
        branches = tuple(
            (condition, tuple(body))
            for condition, body in zip(self.conditions, self.bodies)
        )
        else_body = tuple(self.bodies[-1]) if self.has_else else None
        return IfNode(branches, else_body, self.token.line, self.token.column)


class Parser:
    """Parser for template sources."""

    def __init__(self, source: str):
        self._source = source
        self._root: list[Node] = []
        self._stack: list[_OpenBlock] = []

    def parse(self) -> ParseResult:
        lexer = Lexer(self._source)
        tokens = apply_trim_markers(lexer.tokenize())
        result = ParseResult(errors=list(lexer.errors))
        self._root, self._stack = [], []

        for token in tokens:
            if token.type is TokenType.LITERAL:
                self._add(LiteralNode(token.text, token.line))
                continue
            try:
                if token.is_tag:
                    self._parse_tag(token)
                else:
                    self._add(self._parse_expression(token))
            except ParseError as exc:
                result.errors.append(exc)
                self._add(LiteralNode(token.source_text, token.line))

        while self._stack:
            block = self._stack[-1]
            result.errors.append(
                ParseError(
                    f"Missing {{% end{block.keyword} %}} to close "
                    f"{{% {block.keyword} %}}",
                    block.token.line,
                    block.token.column,
                    block.token.source_text,
                )
            )
            self._close_top()

        result.ast = self._root
        result.errors.sort(key=lambda e: (e.line or 0, e.column or 0))
        return result

    def _add(self, node: Node) -> None:
        if self._stack:
            self._stack[-1].bodies[-1].append(node)
        else:
            self._root.append(node)

    def _close_top(self) -> None:
        block = self._stack.pop()
        self._add(block.close())

    # ============================================================
    # Expressions
    # ============================================================

    def _parse_expression(self, token: Token) -> ExpressionNode:
        parts = split_top_level(token.text, NULLISH)
        node: ExpressionNode | None = None
        for index in range(len(parts) - 1, -1, -1):
            if not parts[index].strip() and len(parts) > 1:
                raise ParseError(
                    "Missing value next to ??",
                    token.line,
                    token.column,
                    token.source_text,
                )
            node = self._parse_chain(parts[index], token, node)
        assert node is not None
        return node

    def _parse_chain(
        self, text: str, token: Token, fallback: ExpressionNode | None
    ) -> ExpressionNode:
        segments = split_top_level(text, "|")
        variable = parse_variable_ref(
            segments[0].strip(), token.line, token.column, token.source_text
        )
        filters = tuple(
            parse_filter_call(segment, token.line, token.column, token.source_text)
            for segment in segments[1:]
        )
        return ExpressionNode(
            variable=variable,
            filters=filters,
            line=token.line,
            column=token.column,
            source=token.source_text,
            fallback=fallback,
        )

    # ============================================================
    # Tags
    # ============================================================

    def _parse_tag(self, token: Token) -> None:
        head = _TAG_HEAD.match(token.text)
        if head is None:
            raise self._tag_error("Empty tag", token)
        keyword, rest = head.group(1), head.group(2)
        top = self._stack[-1] if self._stack else None

        if keyword == "if":
            if not rest:
                raise self._tag_error("{% if %} requires a condition", token)
            block = _OpenBlock("if", token)
            block.conditions.append(self._condition(rest, token))
            self._stack.append(block)
        elif keyword == "elseif":
            if top is None or top.keyword != "if" or top.has_else:
                raise self._unexpected(keyword, token)
            if not rest:
                raise self._tag_error("{% elseif %} requires a condition", token)
            top.conditions.append(self._condition(rest, token))
            top.bodies.append([])
        elif keyword == "else":
            if top is None or top.keyword != "if" or top.has_else:
                raise self._unexpected(keyword, token)
            if rest:
                raise self._tag_error(
                    f'Unexpected "{rest}" after {{% else %}}', token
                )
            top.has_else = True
            top.bodies.append([])
        elif keyword == "for":
            match = _FOR_HEAD.match(rest)
            if match is None:
                raise self._tag_error(
                    "{% for %} requires a variable name and a list, "
                    "e.g. {% for item in items %}",
                    token,
                )
            block = _OpenBlock("for", token, iterator=match.group(1))
            block.iterable = self._condition(match.group(2), token)
            self._stack.append(block)
        elif keyword == "set":
            match = _SET_HEAD.match(rest)
            if match is None:
                raise self._tag_error(
                    "{% set %} requires a name and a value, "
                    "e.g. {% set name = value %}",
                    token,
                )
            value = self._condition(match.group(2), token)
            self._add(SetNode(match.group(1), value, token.line, token.column))
        elif keyword in ("endif", "endfor"):
            if top is None or top.keyword != keyword[3:]:
                raise self._unexpected(keyword, token)
            if rest:
                raise self._tag_error(
                    f'Unexpected "{rest}" after {{% {keyword} %}}', token
                )
            self._close_top()
        else:
            raise self._tag_error(f"Unknown tag: {{% {keyword} %}}", token)

    def _condition(self, text: str, token: Token) -> Expr:
        return parse_condition(text, token.line, token.column, token.source_text)

    @staticmethod
    def _tag_error(message: str, token: Token) -> ParseError:
        return ParseError(message, token.line, token.column, token.source_text)

    def _unexpected(self, keyword: str, token: Token) -> ParseError:
        return self._tag_error(
            f"Unexpected {{% {keyword} %}} - no matching opening tag", token
        )


def apply_trim_markers(tokens: list[Token]) -> list[Token]:
    """Trims the literal text next to tags and ``-`` markers."""
    trimmed = list(tokens)
    for index, token in enumerate(trimmed):
        if token.type is TokenType.LITERAL:
            continue
        before = trimmed[index - 1] if index > 0 else None
        after = trimmed[index + 1] if index + 1 < len(trimmed) else None

        if token.trim_left and before is not None and before.type is TokenType.LITERAL:
            trimmed[index - 1] = replace(
                before, text=_TRIM_BEFORE.sub("", before.text, count=1)
            )

        if after is None or after.type is not TokenType.LITERAL:
            continue
        if token.trim_right:
            trimmed[index + 1] = replace(
                after, text=_TRIM_AFTER.sub("", after.text, count=1)
            )
        elif token.is_tag:
            trimmed[index + 1] = replace(
                after, text=_TAG_LINE_END.sub("", after.text, count=1)
            )

    return [
        token
        for token in trimmed
        if token.type is not TokenType.LITERAL or token.text
    ]


def parse_variable_ref(
    text: str, line: int = 1, column: int = 1, source: str | None = None
) -> VariableRef:
    """Parses the head of an expression into a variable reference."""
    if not text:
        raise ParseError("Empty expression", line, column, source)

    if is_single_quoted(text):
        return VariableRef(Namespace.LITERAL, unescape_string(text[1:-1]))

    for prefix, html in ((SELECTOR_HTML_PREFIX, True), (SELECTOR_PREFIX, False)):
        if text.startswith(prefix):
            rest = text[len(prefix) :].strip()
            selector, _, attribute = rest.partition("?")
            selector = selector.strip().replace('\\"', '"')
            if not selector:
                raise ParseError(
                    f'Missing CSS selector in "{text}"', line, column, source
                )
            return VariableRef(
                Namespace.SELECTOR,
                selector,
                attribute=attribute.strip() or None,
                html=html,
            )

    if text.startswith(META_PREFIX):
        kind, _, key = text[len(META_PREFIX) :].partition(":")
        try:
            meta_attr = MetaAttribute(kind.strip())
        except ValueError:
            meta_attr = None
        if meta_attr is None or not key.strip():
            raise ParseError(
                f'Invalid meta reference "{text}": '
                "expected meta:name:<key> or meta:property:<key>",
                line,
                column,
                source,
            )
        return VariableRef(Namespace.META, key.strip(), meta_attr=meta_attr)

    return VariableRef(Namespace.PLAIN, text)


def parse_filter_call(
    segment: str, line: int = 1, column: int = 1, source: str | None = None
) -> FilterCall:
    """Parses one ``name``, ``name:param`` or ``name(params)`` segment."""
    text = segment.strip()
    if not text:
        raise ParseError("Empty filter in chain", line, column, source)

    param: str | None
    call = _CALL_FORM.match(text)
    if call and strip_parens(call.group(2)) != call.group(2):
        name = call.group(1)
        param = call.group(2)
    elif ":" in text:
        name, _, param = text.partition(":")
        name = name.strip()
    else:
        name, param = text, None

    if not name:
        raise ParseError("Empty filter name", line, column, source)
    if not FILTER_NAME_PATTERN.match(name):
        raise ParseError(f'Invalid filter name "{name}"', line, column, source)

    raw_param: str | None = None
    quoted = False
    if param is not None:
        raw_param, quoted = unwrap_param(param)
        if not raw_param and not quoted:
            raw_param = None

    return FilterCall(name, raw_param, line, column, quoted)


# ============================================================
# Tag conditions
# ============================================================


def parse_condition(
    text: str, line: int = 1, column: int = 1, source: str | None = None
) -> Expr:
    """Parses the expression of an ``if``, ``elseif``, ``for`` or ``set`` tag."""
    parts = split_top_level(text, NULLISH)
    exprs = []
    for part in parts:
        if not part.strip():
            message = (
                "Missing value next to ??" if len(parts) > 1 else "Empty condition"
            )
            raise ParseError(message, line, column, source)
        exprs.append(_parse_piped(part, line, column, source))

    result = exprs[0]
    for fallback in exprs[1:]:
        result = BinaryOp(NULLISH, result, fallback)
    return result


def _parse_piped(text: str, line: int, column: int, source: str | None) -> Expr:
    segments = split_top_level(text, "|", skip_doubled=True)
    value = _ConditionParser(segments[0], line, column, source).parse()
    if len(segments) == 1:
        return value
    filters = tuple(
        parse_filter_call(segment, line, column, source) for segment in segments[1:]
    )
    return Piped(value, filters)


class _ConditionParser:
    """Recursive descent over one filter-free condition."""

    def __init__(self, text: str, line: int, column: int, source: str | None):
        self._text = text
        self._pos = 0
        self._line = line
        self._column = column
        self._source = source
        self._next = 0

    def parse(self) -> Expr:
        expr = self._or()
        kind, value, _ = self._peek()
        if kind != "end":
            raise self._error(f'Unexpected "{value}" in condition')
        return expr

    def _or(self) -> Expr:
        left = self._and()
        while self._accept("or", "||"):
            left = BinaryOp("or", left, self._require(self._and, "or"))
        return left

    def _and(self) -> Expr:
        left = self._not()
        while self._accept("and", "&&"):
            left = BinaryOp("and", left, self._require(self._not, "and"))
        return left

    def _not(self) -> Expr:
        if self._accept("not", "!"):
            return Not(self._require(self._not, "not"))
        return self._comparison()

    def _comparison(self) -> Expr:
        left = self._primary()
        kind, value, _ = self._peek()
        if kind in ("op", "word") and value in _COMPARISONS:
            self._advance()
            return BinaryOp(value, left, self._require(self._primary, value))
        return left

    def _primary(self) -> Expr:
        kind, value, start = self._peek()
        if kind == "end":
            raise self._error("Missing value in condition")
        if kind == "string":
            self._advance()
            return Constant(unescape_string(value[1:-1]))
        if kind == "number":
            self._advance()
            number: Any = float(value) if "." in value else int(value)
            return Constant(number)
        if kind == "op" and value == "(":
            close = closing_paren(self._text, start)
            if close == -1:
                raise self._error("Missing closing )")
            inner = self._text[start + 1 : close]
            if not inner.strip():
                raise self._error("Empty parentheses")
            self._pos = close + 1
            return parse_condition(inner, self._line, self._column, self._source)
        if kind == "word":
            if value in _KEYWORD_CONSTANTS:
                self._advance()
                return Constant(_KEYWORD_CONSTANTS[value])
            if value in ("and", "or", "not", "contains"):
                raise self._error(f'Missing value before "{value}"')
            self._advance()
            return Name(
                parse_variable_ref(value, self._line, self._column, self._source)
            )
        raise self._error(f'Unexpected "{value}" in condition')

    def _require(self, rule, after: str) -> Expr:
        if self._peek()[0] == "end":
            raise self._error(f'Missing value after "{after}"')
        return rule()

    def _accept(self, *values: str) -> bool:
        kind, value, _ = self._peek()
        if kind in ("op", "word") and value in values:
            self._advance()
            return True
        return False

    def _peek(self) -> tuple[str, str, int]:
        """Returns ``(kind, text, start)`` of the next token without consuming it."""
        while self._pos < len(self._text) and self._text[self._pos].isspace():
            self._pos += 1
        if self._pos >= len(self._text):
            return "end", "", self._pos
        match = _COND_TOKEN.match(self._text, self._pos)
        if match is None:
            raise self._error(f'Unexpected "{self._text[self._pos]}" in condition')
        kind = match.lastgroup or "op"
        self._next = match.end()
        return kind, match.group(0), match.start()

    def _advance(self) -> None:
        self._pos = self._next

    def _error(self, message: str) -> ParseError:
        return ParseError(message, self._line, self._column, self._source)


def parse(source: str) -> ParseResult:
    """Compiles template text into an AST, collecting non-fatal errors."""
    return Parser(source).parse()


__all__ = [
    "ParseResult",
    "Parser",
    "apply_trim_markers",
    "parse",
    "parse_condition",
    "parse_filter_call",
    "parse_variable_ref",
]
