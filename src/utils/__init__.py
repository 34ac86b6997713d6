"""Utility modules for the web clipper"""

from .logger import (
    get_logger,
    preview_text,
    setup_logging,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "preview_text",
]
