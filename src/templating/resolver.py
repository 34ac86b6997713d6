"""
Variable resolution.

Maps a ``VariableRef`` to the string that starts its filter chain:

- plain names read ``RenderContext.values`` (``author.name`` and
  ``items[0]`` walk into structured values when the flat key is absent);
- quoted string literals resolve to their own text;
- ``meta:name:<key>`` / ``meta:property:<key>`` read the collected meta tags;
- ``selector:<css>`` awaits the context's selector resolver, bounded by a
  timeout. Failures and timeouts are logged and resolve to ``""``.

Missing values are never an error.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from src.config import get_settings
from src.utils.error_handler import ErrorHandler
from src.utils.mixins import LoggerMixin

from .filters.values import lookup_path, stringify
from .nodes import Namespace, VariableRef

MetaKey = tuple[str, str]


class SelectorResolver(Protocol):
    """Async CSS selector query against the page being clipped.

    Returns the matched text (or attribute, or inner HTML); several matches
    may come back as a list, which is carried on as a JSON array.
    """

    async def __call__(
        self, selector: str, *, attribute: str | None = None, html: bool = False
    ) -> Any: ...


@dataclass
class RenderContext:
    """Everything one render may read. Built fresh for every render."""

    values: Mapping[str, Any] = field(default_factory=dict)
    meta: Mapping[MetaKey, str] = field(default_factory=dict)
    resolve_selector: SelectorResolver | None = None
    selector_timeout: float | None = None

    def with_values(self, **values: Any) -> "RenderContext":
        """Returns a copy with extra or replaced plain values."""
        return RenderContext(
            values={**self.values, **values},
            meta=self.meta,
            resolve_selector=self.resolve_selector,
            selector_timeout=self.selector_timeout,
        )


class VariableResolver(LoggerMixin):
    """Resolves variable references against a render context."""

    async def resolve(self, ref: VariableRef, ctx: RenderContext) -> str:
        return stringify(await self.lookup(ref, ctx))

    async def lookup(self, ref: VariableRef, ctx: RenderContext) -> Any:
        """Like ``resolve`` but keeps plain values in their original shape.

        Tag conditions use this so ``{% for %}`` can walk a list and
        comparisons can see numbers. Missing plain values are ``None``.
        """
        if ref.namespace is Namespace.SELECTOR:
            return await self._resolve_selector(ref, ctx)
        if ref.namespace is Namespace.META:
            return self._resolve_meta(ref, ctx)
        if ref.namespace is Namespace.LITERAL:
            return ref.key
        return self._lookup_plain(ref.key, ctx)

    def _lookup_plain(self, key: str, ctx: RenderContext) -> Any:
        if key in ctx.values:
            return ctx.values[key]
        if "." in key or "[" in key:
            return lookup_path(ctx.values, key)
        return None

    def _resolve_meta(self, ref: VariableRef, ctx: RenderContext) -> str:
        attr = ref.meta_attr.value if ref.meta_attr else "name"
        return stringify(ctx.meta.get((attr, ref.key)))

    async def _resolve_selector(self, ref: VariableRef, ctx: RenderContext) -> str:
        if ctx.resolve_selector is None:
            self.logger.warning("No selector resolver for render", selector=ref.key)
            return ""

        options: dict[str, Any] = {}
        if ref.attribute:
            options["attribute"] = ref.attribute
        if ref.html:
            options["html"] = True

        timeout = ctx.selector_timeout
        if timeout is None:
            timeout = get_settings().selector_timeout_seconds

        try:
            result = await asyncio.wait_for(
                ctx.resolve_selector(ref.key, **options), timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                "Selector timed out", selector=str(ref), timeout_seconds=timeout
            )
            return ""
        except Exception as e:
            return ErrorHandler.log_and_return_default(
                "resolve selector", e, "", level="warning", selector=str(ref)
            )
        return stringify(result)


_default_resolver = VariableResolver()


async def resolve(ref: VariableRef, ctx: RenderContext) -> str:
    """Resolves ``ref`` against ``ctx`` with the shared resolver."""
    return await _default_resolver.resolve(ref, ctx)
