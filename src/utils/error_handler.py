"""共通エラーハンドリングユーティリティ

Recovered failures (a filter that cannot parse its input, a selector that times
out, a page that cannot be fetched) must never abort a render. This module
keeps the "log it, hand back a fallback" pattern in one place so every
swallowed exception still leaves a structured log record.
"""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger("error_handler")

T = TypeVar("T")


class ErrorHandler:
    """共通エラーハンドリング機能を提供するクラス"""

    @staticmethod
    def log_and_return_default(
        operation_name: str,
        exception: BaseException,
        default_value: T,
        *,
        level: str = "error",
        **kwargs: Any,
    ) -> T:
        """エラーをログ記録し、デフォルト値を返す標準パターン"""
        log = getattr(logger, level, logger.error)
        log(
            f"Failed to {operation_name}",
            error=str(exception) or exception.__class__.__name__,
            error_type=exception.__class__.__name__,
            **kwargs,
        )
        return default_value


def handle_errors(
    operation_name: str,
    default_return: Any = None,
    reraise: bool = False,
    **log_kwargs: Any,
):
    """
    メソッドのエラーハンドリングを自動化するデコレータ

    Args:
        operation_name: 操作の名前（ログ記録用）
        default_return: エラー時の戻り値（デフォルト: None）
        reraise: True の場合、例外を再発生させる
        **log_kwargs: ログに追加する情報
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if reraise:
                    logger.error(
                        f"Failed to {operation_name}", error=str(e), **log_kwargs
                    )
                    raise
                return ErrorHandler.log_and_return_default(
                    operation_name, e, default_return, **log_kwargs
                )

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if reraise:
                    logger.error(
                        f"Failed to {operation_name}", error=str(e), **log_kwargs
                    )
                    raise
                return ErrorHandler.log_and_return_default(
                    operation_name, e, default_return, **log_kwargs
                )

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return wrapper

    return decorator


def safe_with_default(operation_name: str, default_value: Any, **log_kwargs: Any):
    """デフォルト値付きセーフ操作"""
    return handle_errors(operation_name, default_return=default_value, **log_kwargs)
