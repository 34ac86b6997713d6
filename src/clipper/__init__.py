"""Clip templates: note generation from captured pages"""

from .base import ClipResult, GeneratedNote
from .engine import ClipperEngine
from .frontmatter import generate_frontmatter
from .generator import NoteGenerator
from .models import ClipTemplate, NoteBehavior, Property, PropertyType, default_template
from .triggers import find_matching_template, matches_trigger
from .uri import build_obsidian_uri

__all__ = [
    "ClipResult",
    "ClipTemplate",
    "ClipperEngine",
    "GeneratedNote",
    "NoteBehavior",
    "NoteGenerator",
    "Property",
    "PropertyType",
    "build_obsidian_uri",
    "default_template",
    "find_matching_template",
    "generate_frontmatter",
    "matches_trigger",
]
