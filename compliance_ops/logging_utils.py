"""
Centralized logging and error handling utilities for the compliance portal.

This module provides decorators and helper functions to standardize logging
and error reporting around block-explorer calls.

Features:
- Structured logging with contextual information
- Explorer error classification for UI treatment (rate limit vs. generic)
- Performance timing on async operations
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import structlog

from .explorer.exceptions import (
    DispatchCancelledError,
    ExplorerError,
    RateLimitedError,
    RemoteError,
    TransportError,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]

logger = structlog.get_logger(__name__)

USER_MESSAGES = {
    "rate_limited": "Rate limit reached. Try again in a few seconds.",
    "cancelled": "Request cancelled before it was sent.",
    "timeout_error": "The explorer did not answer in time.",
    "transport_error": "Could not reach the explorer.",
}


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
    )


class ExplorerErrorHandler:
    """Centralized explorer error handling with structured logging."""

    @staticmethod
    def classify_error(error: Exception) -> tuple[str, bool]:
        """
        Classify an error for display.

        Args:
            error: The exception to classify

        Returns:
            Tuple of (error_category, retryable)
        """
        if isinstance(error, RateLimitedError):
            return "rate_limited", True
        if isinstance(error, DispatchCancelledError):
            return "cancelled", True
        if isinstance(error, RemoteError):
            return "remote_error", False
        if isinstance(error, TransportError):
            return "transport_error", False
        if isinstance(error, TimeoutError):
            return "timeout_error", False
        if isinstance(error, ConnectionError | OSError):
            return "transport_error", False
        return "unknown_error", False

    @staticmethod
    def describe_error(
        error: Exception,
        operation: str | None = None,
    ) -> dict[str, Any]:
        """
        Build the payload a UI needs to render an error.

        Remote errors keep the explorer's message verbatim; the other
        categories get a fixed user-facing text.
        """
        category, retryable = ExplorerErrorHandler.classify_error(error)
        if category in ("remote_error", "unknown_error"):
            message = str(error) or USER_MESSAGES["transport_error"]
        else:
            message = USER_MESSAGES[category]

        payload: dict[str, Any] = {
            "category": category,
            "message": message,
            "retryable": retryable,
            "detail": str(error),
        }
        if operation:
            payload["operation"] = operation
        if isinstance(error, RateLimitedError) and error.retry_after is not None:
            payload["retry_after"] = error.retry_after
        return payload

    @staticmethod
    def wrap_error(
        error: Exception,
        operation: str,
        api: str = "unknown",
        context: dict[str, Any] | None = None,
    ) -> ExplorerError:
        """
        Convert an arbitrary exception into an ExplorerError with logging.

        ExplorerError instances are returned unchanged.
        """
        if isinstance(error, ExplorerError):
            return error

        category, _ = ExplorerErrorHandler.classify_error(error)
        logger.error(
            "Operation failed",
            operation=operation,
            error_type=type(error).__name__,
            error_category=category,
            error_message=str(error),
            **(context or {}),
        )
        return TransportError(f"{operation} failed: {error!s}", api=api)


def log_operation(
    operation: str,
    *,
    log_args: bool = False,
    log_result: bool = False,
    log_timing: bool = True,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations with structured context.

    Args:
        operation: Description of the operation being performed
        log_args: Whether to log function arguments
        log_result: Whether to log function result
        log_timing: Whether to log execution timing
        context: Additional context to include in logs

    Returns:
        Decorated function with logging
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation,
                function=func.__name__,
                **(context or {}),
            )

            log_data = {}
            if log_args:
                log_data.update({
                    "args": args[1:] if args else [],  # Skip 'self' if present
                    "kwargs": kwargs,
                })

            operation_logger.debug("Operation started", **log_data)

            start_time = time.perf_counter() if log_timing else None

            try:
                result = await func(*args, **kwargs)

                end_log_data: dict[str, Any] = {}
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    end_log_data["duration_ms"] = duration
                if log_result:
                    end_log_data["result"] = result

                operation_logger.debug(
                    "Operation completed successfully", **end_log_data
                )
                return result

            except Exception as e:
                category, _ = ExplorerErrorHandler.classify_error(e)
                error_log_data: dict[str, Any] = {
                    "error_type": type(e).__name__,
                    "error_category": category,
                    "error_message": str(e),
                }
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    error_log_data["duration_ms"] = duration

                operation_logger.warning("Operation failed", **error_log_data)
                raise

        return wrapper
    return decorator


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Async context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging
        log_timing: Whether to log operation timing

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **(context or {}),
    )

    operation_logger.debug("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger

        log_data: dict[str, Any] = {}
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            log_data["duration_ms"] = duration

        operation_logger.debug("Operation completed successfully", **log_data)

    except Exception as e:
        error_log_data: dict[str, Any] = {
            "error_type": type(e).__name__,
            "error_message": str(e),
        }
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            error_log_data["duration_ms"] = duration

        operation_logger.warning("Operation failed", **error_log_data)
        raise


async def safe_explorer_call(
    operation: str,
    coro: Awaitable[T],
    *,
    api: str = "unknown",
    context: dict[str, Any] | None = None,
) -> T:
    """
    Await an explorer coroutine, converting stray exceptions to ExplorerError.

    Args:
        operation: Description of the operation
        coro: Coroutine to execute
        api: Remote API name for error context
        context: Additional context for logging

    Returns:
        Result of the coroutine

    Raises:
        ExplorerError: The original explorer error, or a TransportError wrapper
    """
    try:
        async with operation_context(operation, context=context):
            return await coro
    except Exception as e:
        wrapped = ExplorerErrorHandler.wrap_error(e, operation, api, context)
        if wrapped is e:
            raise
        raise wrapped from e
