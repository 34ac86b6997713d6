"""Built-in filter library and the shared default registry.

``DEFAULT_REGISTRY`` is what the renderer and the validator use unless they
are handed another registry. Extension filters are added to it with
``register`` at start-up; an application freezes it once start-up is done.
"""

from . import arrays, dates, html, markdown, numbers, text
from .registry import (
    FilterDefinition,
    FilterParam,
    FilterRegistry,
    ParamShape,
)

BUILTIN_MODULES = (text, dates, arrays, markdown, html, numbers)


def build_default_registry() -> FilterRegistry:
    """Returns a new, unfrozen registry holding every built-in filter."""
    registry = FilterRegistry()
    for module in BUILTIN_MODULES:
        for definition in module.FILTERS:
            registry.add(definition)
    return registry


DEFAULT_REGISTRY = build_default_registry()

register = DEFAULT_REGISTRY.register
lookup = DEFAULT_REGISTRY.lookup

__all__ = [
    "BUILTIN_MODULES",
    "DEFAULT_REGISTRY",
    "FilterDefinition",
    "FilterParam",
    "FilterRegistry",
    "ParamShape",
    "build_default_registry",
    "lookup",
    "register",
]
