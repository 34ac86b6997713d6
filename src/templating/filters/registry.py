"""
Filter registry.

A filter is a pure ``(value, param) -> str`` transform. The registry knows
each filter's name, the shape its parameter is parsed into before ``apply``
runs, and an optional validator the editor can run without applying the
filter. Registration happens once at start-up; the table is append-only and
can be frozen read-only, so concurrent renders can share it.
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.utils.error_handler import ErrorHandler

from ..errors import FilterRegistrationError
from ..params import split_arguments, unwrap_param

FilterParam = str | list[str] | None
ApplyFunction = Callable[[str, Any], str]
ParamValidator = Callable[[str | None], str | None]


class ParamShape(Enum):
    """What ``apply`` receives as its parameter."""

    NONE = "none"  # always None
    TEXT = "text"  # the unwrapped parameter text, or None
    LIST = "list"  # quoted, comma-separated items; [] when absent


@dataclass(frozen=True)
class FilterDefinition:
    name: str
    apply: ApplyFunction
    param: ParamShape = ParamShape.NONE
    validator: ParamValidator | None = None

    def parse_param(self, raw: str | None, quoted: bool | None = None) -> FilterParam:
        """Turns a raw parameter into the shape ``apply`` expects.

        ``quoted`` is known when the parameter comes from the parser, which
        already removed parentheses and quotes. When it is ``None`` the raw
        text is unwrapped here, as written in a template.
        """
        if self.param is ParamShape.NONE:
            return None
        if raw is not None and quoted is None:
            raw, quoted = unwrap_param(raw)
            if not raw and not quoted:
                raw = None
        if self.param is ParamShape.TEXT:
            return raw
        if raw is None:
            return []
        if quoted:
            return [raw]
        return split_arguments(raw)

    def validate(self, raw: str | None) -> str | None:
        """Returns an error message for a bad parameter, or None."""
        if self.validator is None:
            return None
        return self.validator(raw)

    def __call__(
        self, value: str, raw_param: str | None = None, quoted: bool | None = None
    ) -> str:
        """Applies the filter; failures are logged and the input returned."""
        try:
            result = self.apply(value, self.parse_param(raw_param, quoted))
        except Exception as exc:
            return ErrorHandler.log_and_return_default(
                f"apply filter {self.name}",
                exc,
                value,
                level="warning",
                filter=self.name,
            )
        return result if isinstance(result, str) else str(result)


class FilterRegistry:
    """Name → filter table shared by the renderer and the validator."""

    def __init__(self, definitions: Iterable[FilterDefinition] = ()):
        self._filters: dict[str, FilterDefinition] = {}
        self._frozen = False
        for definition in definitions:
            self.add(definition)

    def register(
        self,
        name: str,
        apply: ApplyFunction | None = None,
        *,
        param: ParamShape = ParamShape.TEXT,
        validator: ParamValidator | None = None,
    ):
        """Registers ``apply`` under ``name``; usable as a decorator.

        Extension filters default to receiving their parameter as text.
        """

        def decorator(func: ApplyFunction) -> ApplyFunction:
            self.add(FilterDefinition(name, func, param, validator))
            return func

        if apply is None:
            return decorator
        return decorator(apply)

    def add(self, definition: FilterDefinition) -> FilterDefinition:
        if self._frozen:
            raise FilterRegistrationError(
                f'Cannot register filter "{definition.name}": registry is frozen'
            )
        if definition.name in self._filters:
            raise FilterRegistrationError(
                f'Filter "{definition.name}" is already registered'
            )
        self._filters[definition.name] = definition
        return definition

    def lookup(self, name: str) -> FilterDefinition | None:
        return self._filters.get(name)

    def freeze(self) -> "FilterRegistry":
        self._frozen = True
        return self

    def copy(self) -> "FilterRegistry":
        """Returns an unfrozen registry with the same filters, for extension."""
        return FilterRegistry(self._filters.values())

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> list[str]:
        return sorted(self._filters)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __iter__(self) -> Iterator[FilterDefinition]:
        return iter(self._filters.values())

    def __len__(self) -> int:
        return len(self._filters)
