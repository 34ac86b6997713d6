from typing import ClassVar, cast

import structlog


class LoggerMixin:
    """Mixin class to add logging capabilities to any class"""

    # Overrides the class name as the logger name when set
    logger_name: ClassVar[str | None] = None

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get logger instance for this class"""
        return cast(
            "structlog.stdlib.BoundLogger",
            structlog.get_logger(self.logger_name or self.__class__.__name__),
        )
