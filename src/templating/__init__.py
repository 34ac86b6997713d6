"""
Clip template engine.

``tokenize → parse → validate (optional) → render``. Each step is a plain
function over immutable data; nothing is cached between renders.
"""

from .errors import FilterRegistrationError, ParseError, TemplateError
from .filters import (
    DEFAULT_REGISTRY,
    FilterDefinition,
    FilterRegistry,
    ParamShape,
    build_default_registry,
    lookup,
    register,
)
from .lexer import Lexer, tokenize
from .nodes import (
    ExpressionNode,
    FilterCall,
    ForNode,
    IfNode,
    LiteralNode,
    MetaAttribute,
    Namespace,
    Node,
    SetNode,
    VariableRef,
)
from .parser import ParseResult, Parser, parse
from .renderer import TemplateRenderer, render, render_stream, render_template
from .resolver import RenderContext, SelectorResolver, VariableResolver, resolve
from .tokens import Token, TokenType
from .validator import (
    PRESET_VARIABLES,
    Severity,
    ValidationIssue,
    ValidationReport,
    validate_filters,
    validate_template,
    validate_variables,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "ExpressionNode",
    "FilterCall",
    "FilterDefinition",
    "FilterRegistrationError",
    "FilterRegistry",
    "ForNode",
    "IfNode",
    "Lexer",
    "LiteralNode",
    "MetaAttribute",
    "Namespace",
    "Node",
    "PRESET_VARIABLES",
    "ParamShape",
    "ParseError",
    "ParseResult",
    "Parser",
    "RenderContext",
    "SelectorResolver",
    "SetNode",
    "Severity",
    "TemplateError",
    "TemplateRenderer",
    "Token",
    "TokenType",
    "ValidationIssue",
    "ValidationReport",
    "VariableRef",
    "VariableResolver",
    "build_default_registry",
    "lookup",
    "parse",
    "register",
    "render",
    "render_stream",
    "render_template",
    "resolve",
    "tokenize",
    "validate_filters",
    "validate_template",
    "validate_variables",
]
