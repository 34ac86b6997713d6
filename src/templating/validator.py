"""
Template validation for editors.

Produces advisory, line-tagged issues without rendering anything:

- parse errors (``ERROR``),
- unknown plain variables, with a "Did you mean" hint (``WARNING``),
- unknown filters and filter parameters rejected by the filter's own
  validator (``WARNING``).

Filters are looked up in the same registry the renderer uses, so the two can
never disagree about which filters exist.
"""

import difflib
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from .filters import DEFAULT_REGISTRY, FilterRegistry
from .nodes import (
    ExpressionNode,
    ForNode,
    IfNode,
    Namespace,
    Node,
    SetNode,
    VariableRef,
    iter_filter_calls,
    iter_names,
    tag_expressions,
)
from .parser import parse

PRESET_VARIABLES = frozenset(
    {
        "author",
        "content",
        "contentHtml",
        "date",
        "description",
        "domain",
        "favicon",
        "fullHtml",
        "highlights",
        "image",
        "published",
        "selection",
        "selectionHtml",
        "site",
        "title",
        "time",
        "url",
        "words",
    }
)

# plain keys that are resolved dynamically and cannot be checked statically
DYNAMIC_PREFIXES = ("schema:",)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    line: int
    message: str
    severity: Severity = Severity.WARNING
    column: int | None = None


@dataclass
class ValidationReport:
    """All issues of one template, sorted by line."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.issues


def base_name(key: str) -> str:
    """``author.name`` → ``author``; ``items[0]`` → ``items``."""
    return key.split(".", 1)[0].split("[", 1)[0]


def suggest_variable(name: str, known: Iterable[str]) -> str | None:
    """Returns the closest known variable name, compared case-insensitively."""
    by_lower = {candidate.lower(): candidate for candidate in known}
    matches = difflib.get_close_matches(name.lower(), list(by_lower), n=1, cutoff=0.6)
    return by_lower[matches[0]] if matches else None


def validate_variables(
    ast: list[Node], known: Iterable[str] | None = None
) -> list[ValidationIssue]:
    """Warns once per plain variable reference that is not in ``known``.

    Names bound by ``{% set %}`` count as known after the tag; a ``{% for %}``
    item, its ``_index`` and ``loop`` count as known inside the loop body.
    """
    known_names = frozenset(known) if known is not None else PRESET_VARIABLES
    issues: list[ValidationIssue] = []
    _check_scope(ast, known_names, set(), issues)
    issues.sort(key=lambda issue: (issue.line, issue.column or 0))
    return issues


def _check_scope(
    nodes: Sequence[Node],
    known: frozenset[str],
    bound: set[str],
    issues: list[ValidationIssue],
) -> None:
    for node in nodes:
        if isinstance(node, ExpressionNode):
            current: ExpressionNode | None = node
            while current is not None:
                _check_ref(
                    current.variable, node.line, node.column, known, bound, issues
                )
                current = current.fallback
            continue

        for expr in tag_expressions(node):
            for ref in iter_names(expr):
                _check_ref(ref, node.line, node.column, known, bound, issues)

        if isinstance(node, SetNode):
            bound.add(node.name)
        elif isinstance(node, IfNode):
            for _, body in node.branches:
                _check_scope(body, known, bound, issues)
            if node.else_body is not None:
                _check_scope(node.else_body, known, bound, issues)
        elif isinstance(node, ForNode):
            loop_bound = bound | {node.iterator, f"{node.iterator}_index", "loop"}
            _check_scope(node.body, known, loop_bound, issues)


def _check_ref(
    ref: VariableRef,
    line: int,
    column: int,
    known: frozenset[str],
    bound: set[str],
    issues: list[ValidationIssue],
) -> None:
    if ref.namespace is not Namespace.PLAIN:
        return
    if ref.key.startswith(DYNAMIC_PREFIXES):
        return
    name = base_name(ref.key)
    if ref.key in known or name in known or name in bound:
        return

    message = f'Unknown variable "{ref.key}"'
    similar = suggest_variable(name, known | bound)
    if similar:
        message += f'. Did you mean "{similar}"?'
    issues.append(ValidationIssue(line, message, Severity.WARNING, column))


def validate_filters(
    ast: list[Node], registry: FilterRegistry | None = None
) -> list[ValidationIssue]:
    """Warns about unknown filters and about parameters a filter rejects."""
    registry = registry if registry is not None else DEFAULT_REGISTRY
    issues = []
    for call in iter_filter_calls(ast):
        definition = registry.lookup(call.name)
        if definition is None:
            issues.append(
                ValidationIssue(
                    call.line,
                    f'Unknown filter "{call.name}"',
                    Severity.WARNING,
                    call.column,
                )
            )
            continue
        error = definition.validate(call.raw_param)
        if error:
            issues.append(
                ValidationIssue(
                    call.line,
                    f'Invalid parameter for filter "{call.name}": {error}',
                    Severity.WARNING,
                    call.column,
                )
            )
    return issues


def validate_template(
    source: str,
    known: Iterable[str] | None = None,
    registry: FilterRegistry | None = None,
) -> ValidationReport:
    """Parses ``source`` and runs every check, for a summary badge or a lint run."""
    result = parse(source)
    issues = [
        ValidationIssue(error.line or 1, error.message, Severity.ERROR, error.column)
        for error in result.errors
    ]
    issues += validate_variables(result.ast, known)
    issues += validate_filters(result.ast, registry)
    issues.sort(key=lambda issue: (issue.line, issue.column or 0))
    return ValidationReport(issues)
