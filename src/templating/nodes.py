"""AST node definitions for compiled clip templates."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class Namespace(Enum):
    """How a variable reference is resolved."""

    PLAIN = "plain"
    SELECTOR = "selector"
    META = "meta"
    LITERAL = "literal"


class MetaAttribute(Enum):
    """The attribute a ``<meta>`` tag is keyed by."""

    NAME = "name"
    PROPERTY = "property"


@dataclass(frozen=True)
class VariableRef:
    """Reference to the value an expression starts from.

    ``attribute`` and ``html`` only apply to selector references:
    ``selector:img.hero?src`` reads the ``src`` attribute and
    ``selectorHtml:article`` returns inner HTML instead of text.
    A ``LITERAL`` reference carries its already unescaped text in ``key``.
    """

    namespace: Namespace
    key: str
    meta_attr: MetaAttribute | None = None
    attribute: str | None = None
    html: bool = False

    def __str__(self) -> str:
        if self.namespace is Namespace.META and self.meta_attr is not None:
            return f"meta:{self.meta_attr.value}:{self.key}"
        if self.namespace is Namespace.SELECTOR:
            prefix = "selectorHtml" if self.html else "selector"
            suffix = f"?{self.attribute}" if self.attribute else ""
            return f"{prefix}:{self.key}{suffix}"
        if self.namespace is Namespace.LITERAL:
            escaped = self.key.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        return self.key


@dataclass(frozen=True)
class FilterCall:
    """One ``|name:param`` segment of a filter chain.

    ``raw_param`` has had one layer of parentheses and one layer of matching
    quotes removed; ``quoted`` records whether those quotes were present.
    """

    name: str
    raw_param: str | None = None
    line: int = 1
    column: int = 1
    quoted: bool = False


@dataclass(frozen=True)
class LiteralNode:
    """Text copied to the output unchanged."""

    text: str
    line: int = 1


@dataclass(frozen=True)
class ExpressionNode:
    """A variable reference followed by its filter chain, in written order.

    ``fallback`` is the right-hand side of ``??``: it is rendered when this
    expression comes out empty.
    """

    variable: VariableRef
    filters: tuple[FilterCall, ...] = field(default_factory=tuple)
    line: int = 1
    column: int = 1
    source: str = ""
    fallback: "ExpressionNode | None" = None


# ============================================================
# Tag expressions ({% if %}, {% for %}, {% set %})
# ============================================================


@dataclass(frozen=True)
class Constant:
    """A string, number, boolean or null literal."""

    value: Any


@dataclass(frozen=True)
class Name:
    """A variable lookup; may be a selector or meta reference."""

    ref: VariableRef


@dataclass(frozen=True)
class Not:
    operand: "Expr"


@dataclass(frozen=True)
class BinaryOp:
    """``left <op> right`` where op is a comparison, ``contains``,
    ``and``, ``or`` or ``??``."""

    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Piped:
    """A value passed through a filter chain."""

    value: "Expr"
    filters: tuple[FilterCall, ...]


Expr = Union[Constant, Name, Not, BinaryOp, Piped]


@dataclass(frozen=True)
class IfNode:
    """``{% if %}`` with its ``elseif`` branches, in order, and ``else`` body."""

    branches: tuple[tuple[Expr, tuple["Node", ...]], ...]
    else_body: tuple["Node", ...] | None = None
    line: int = 1
    column: int = 1


@dataclass(frozen=True)
class ForNode:
    """``{% for <iterator> in <iterable> %}...{% endfor %}``."""

    iterator: str
    iterable: Expr
    body: tuple["Node", ...] = ()
    line: int = 1
    column: int = 1


@dataclass(frozen=True)
class SetNode:
    """``{% set <name> = <value> %}``; renders nothing."""

    name: str
    value: Expr
    line: int = 1
    column: int = 1


Node = Union[LiteralNode, ExpressionNode, IfNode, ForNode, SetNode]


def walk(ast: "list[Node] | tuple[Node, ...]") -> Iterator[Node]:
    """Yields every node depth-first, descending into tag bodies."""
    for node in ast:
        yield node
        if isinstance(node, IfNode):
            for _, body in node.branches:
                yield from walk(body)
            if node.else_body is not None:
                yield from walk(node.else_body)
        elif isinstance(node, ForNode):
            yield from walk(node.body)


def tag_expressions(node: Node) -> list[Expr]:
    """The expressions a tag node evaluates itself, excluding its bodies."""
    if isinstance(node, IfNode):
        return [condition for condition, _ in node.branches]
    if isinstance(node, ForNode):
        return [node.iterable]
    if isinstance(node, SetNode):
        return [node.value]
    return []


def iter_names(expr: Expr) -> Iterator[VariableRef]:
    """Variable references used by a tag expression, left to right."""
    if isinstance(expr, Name):
        yield expr.ref
    elif isinstance(expr, Not):
        yield from iter_names(expr.operand)
    elif isinstance(expr, BinaryOp):
        yield from iter_names(expr.left)
        yield from iter_names(expr.right)
    elif isinstance(expr, Piped):
        yield from iter_names(expr.value)


def iter_filter_calls(ast: "list[Node] | tuple[Node, ...]") -> list[FilterCall]:
    """Every filter call in the template, ``{{ }}`` and tag expressions alike."""
    calls: list[FilterCall] = []
    for node in walk(ast):
        if isinstance(node, ExpressionNode):
            current: ExpressionNode | None = node
            while current is not None:
                calls.extend(current.filters)
                current = current.fallback
        for expr in tag_expressions(node):
            calls.extend(_expr_filter_calls(expr))
    return calls


def _expr_filter_calls(expr: Expr) -> Iterator[FilterCall]:
    if isinstance(expr, Piped):
        yield from _expr_filter_calls(expr.value)
        yield from expr.filters
    elif isinstance(expr, Not):
        yield from _expr_filter_calls(expr.operand)
    elif isinstance(expr, BinaryOp):
        yield from _expr_filter_calls(expr.left)
        yield from _expr_filter_calls(expr.right)
