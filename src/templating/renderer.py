"""
Template rendering.

Literal nodes are emitted verbatim. Each expression resolves its variable
and folds its filter chain strictly left to right; an expression that comes
out empty renders its ``??`` fallback instead. Nodes are evaluated one at a
time in source order, so selector queries never overlap.

Tags:

- ``if`` renders the first branch whose condition is truthy (``None``,
  ``""``, ``0``, ``false`` and ``[]`` are falsy), else the ``else`` body;
- ``for`` renders its body once per list item with ``<item>``,
  ``<item>_index`` and ``loop`` (``index``, ``index0``, ``first``, ``last``,
  ``length``) in scope, trims each item's output and joins them with
  newlines. A value that is not a list renders nothing;
- ``set`` stores a value for the rest of the render and outputs nothing.
  Values set inside a ``for`` body stay inside that iteration.

Unknown filters pass the value through unchanged; nothing here raises for
template content.
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any

from src.utils.logger import preview_text
from src.utils.mixins import LoggerMixin

from .filters import DEFAULT_REGISTRY, FilterRegistry
from .filters.values import parse_collection, stringify
from .nodes import (
    BinaryOp,
    Constant,
    Expr,
    ExpressionNode,
    FilterCall,
    ForNode,
    IfNode,
    LiteralNode,
    Name,
    Node,
    Not,
    Piped,
    SetNode,
)
from .parser import parse
from .resolver import RenderContext, VariableResolver


def is_truthy(value: Any) -> bool:
    """``None``, ``""``, ``0``, ``False`` and empty lists are false."""
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (int, float)) and value == 0:
        return False
    if isinstance(value, (list, tuple)) and not value:
        return False
    return True


def as_list(value: Any) -> list | None:
    """The items a ``for`` loop walks, or None when ``value`` is not a list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        parsed = parse_collection(value)
        if isinstance(parsed, list):
            return parsed
    return None


def contains(container: Any, item: Any) -> bool:
    """Case-insensitive membership for lists and substring test for text."""
    if container is None or item is None:
        return False
    items = as_list(container)
    if items is not None:
        needle = stringify(item).lower()
        return any(stringify(candidate).lower() == needle for candidate in items)
    if isinstance(container, str):
        return stringify(item).lower() in container.lower()
    return False


def compare(op: str, left: Any, right: Any) -> bool:
    """Compares numerically when both sides are numbers, else as text."""
    if op in ("==", "!="):
        if left is None or right is None:
            equal = left is right
        else:
            equal = _comparable(left, right) == _comparable(right, left)
        return equal if op == "==" else not equal

    if left is None or right is None:
        return False
    a, b = _comparable(left, right), _comparable(right, left)
    if op == ">":
        return a > b
    if op == "<":
        return a < b
    if op == ">=":
        return a >= b
    return a <= b


def _comparable(value: Any, other: Any) -> Any:
    number, other_number = _as_number(value), _as_number(other)
    if number is not None and other_number is not None:
        return number
    return stringify(value)


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


class TemplateRenderer(LoggerMixin):
    """Renders compiled templates with one filter registry."""

    def __init__(
        self,
        registry: FilterRegistry | None = None,
        resolver: VariableResolver | None = None,
    ):
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.resolver = resolver or VariableResolver()

    async def render(self, ast: Sequence[Node], ctx: RenderContext) -> str:
        return "".join([piece async for piece in self.render_stream(ast, ctx)])

    async def render_stream(
        self, ast: Sequence[Node], ctx: RenderContext
    ) -> AsyncIterator[str]:
        """Yields the output node by node.

        ``{% set %}`` writes to a copy of ``ctx``; the caller's context is
        never changed.
        """
        async for piece in self._stream(ast, ctx.with_values()):
            yield piece

    async def _stream(
        self, nodes: Sequence[Node], scope: RenderContext
    ) -> AsyncIterator[str]:
        for node in nodes:
            if isinstance(node, LiteralNode):
                yield node.text
            elif isinstance(node, ExpressionNode):
                yield await self.evaluate(node, scope)
            elif isinstance(node, IfNode):
                body = await self._choose_branch(node, scope)
                if body is not None:
                    async for piece in self._stream(body, scope):
                        yield piece
            elif isinstance(node, ForNode):
                yield await self._render_for(node, scope)
            elif isinstance(node, SetNode):
                value = await self.evaluate_condition(node.value, scope)
                scope.values = {**scope.values, node.name: value}

    async def evaluate(self, node: ExpressionNode, ctx: RenderContext) -> str:
        value = await self.resolver.resolve(node.variable, ctx)
        value = self.apply_filters(value, node.filters)
        if not value and node.fallback is not None:
            return await self.evaluate(node.fallback, ctx)
        return value

    def apply_filters(self, value: str, filters: Sequence[FilterCall]) -> str:
        for call in filters:
            definition = self.registry.lookup(call.name)
            if definition is None:
                self.logger.debug(
                    "Unknown filter, passing value through",
                    filter=call.name,
                    line=call.line,
                )
                continue
            value = definition(value, call.raw_param, call.quoted)
        return value

    # ============================================================
    # Tags
    # ============================================================

    async def _choose_branch(
        self, node: IfNode, scope: RenderContext
    ) -> Sequence[Node] | None:
        for condition, body in node.branches:
            if is_truthy(await self.evaluate_condition(condition, scope)):
                return body
        return node.else_body

    async def _render_for(self, node: ForNode, scope: RenderContext) -> str:
        value = await self.evaluate_condition(node.iterable, scope)
        items = as_list(value)
        if items is None:
            self.logger.warning(
                "For loop value is not a list",
                iterator=node.iterator,
                line=node.line,
                value_type=type(value).__name__,
            )
            return ""

        results = []
        for index, item in enumerate(items):
            loop = {
                "index": index + 1,
                "index0": index,
                "first": index == 0,
                "last": index == len(items) - 1,
                "length": len(items),
            }
            item_scope = scope.with_values(
                **{
                    node.iterator: item,
                    f"{node.iterator}_index": index,
                    "loop": loop,
                }
            )
            pieces = [piece async for piece in self._stream(node.body, item_scope)]
            results.append("".join(pieces).strip())
        return "\n".join(results)

    async def evaluate_condition(self, expr: Expr, ctx: RenderContext) -> Any:
        """Evaluates a tag expression to a plain value."""
        if isinstance(expr, Constant):
            return expr.value
        if isinstance(expr, Name):
            return await self.resolver.lookup(expr.ref, ctx)
        if isinstance(expr, Not):
            return not is_truthy(await self.evaluate_condition(expr.operand, ctx))
        if isinstance(expr, Piped):
            value = stringify(await self.evaluate_condition(expr.value, ctx))
            return self.apply_filters(value, expr.filters)
        if isinstance(expr, BinaryOp):
            return await self._evaluate_binary(expr, ctx)
        return None

    async def _evaluate_binary(self, expr: BinaryOp, ctx: RenderContext) -> Any:
        left = await self.evaluate_condition(expr.left, ctx)
        if expr.op == "and":
            return is_truthy(left) and is_truthy(
                await self.evaluate_condition(expr.right, ctx)
            )
        if expr.op == "or":
            return is_truthy(left) or is_truthy(
                await self.evaluate_condition(expr.right, ctx)
            )
        if expr.op == "??":
            if left is None or left == "":
                return await self.evaluate_condition(expr.right, ctx)
            return left

        right = await self.evaluate_condition(expr.right, ctx)
        if expr.op == "contains":
            return contains(left, right)
        return compare(expr.op, left, right)

    async def render_template(self, source: str, ctx: RenderContext) -> str:
        """Parses and renders ``source``; parse errors degrade to literal text."""
        result = parse(source)
        if result.errors:
            self.logger.warning(
                "Template has parse errors",
                error_count=len(result.errors),
                first_error=result.errors[0].format_with_context(),
                template=preview_text(source),
            )
        return await self.render(result.ast, ctx)


_default_renderer = TemplateRenderer()


async def render(ast: Sequence[Node], ctx: RenderContext) -> str:
    return await _default_renderer.render(ast, ctx)


def render_stream(ast: Sequence[Node], ctx: RenderContext) -> AsyncIterator[str]:
    return _default_renderer.render_stream(ast, ctx)


async def render_template(source: str, ctx: RenderContext) -> str:
    return await _default_renderer.render_template(source, ctx)
