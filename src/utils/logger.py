"""
Logging configuration for the web clipper
"""

import logging

import structlog
from rich.console import Console
from rich.logging import RichHandler

from src.config import get_settings


def setup_logging() -> None:
    """Set up structured logging with rich formatting"""

    settings = get_settings()

    # Configure log level
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=True,
            markup=False,
            rich_tracebacks=True,
        )
    ]

    if settings.log_dir is not None:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(settings.log_dir / "clipper.log", encoding="utf-8")
        )

    # Configure standard library logging
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            (
                structlog.processors.JSONRenderer()
                if settings.log_format == "json"
                else structlog.dev.ConsoleRenderer(colors=False)
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    from typing import cast

    logger = structlog.get_logger(name)
    return cast("structlog.stdlib.BoundLogger", logger)


def preview_text(content: str, max_length: int = 80) -> str:
    """Shorten template or page text for log records"""
    flattened = " ".join(content.split())
    if len(flattened) > max_length:
        return flattened[:max_length] + "..."
    return flattened
