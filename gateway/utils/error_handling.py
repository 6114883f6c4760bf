"""Error handling utilities and decorators for standardized error management."""

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from gateway.exceptions import (
    GatewayBaseError,
    wrap_exception,
)

F = TypeVar("F", bound=Callable[..., Any])

DEFAULT_HANDLED: tuple[type[BaseException], ...] = (
    OSError,
    RuntimeError,
    ValueError,
    ConnectionError,
)


def handle_errors(
    exception_class: type[GatewayBaseError],
    message: str,
    error_code: str | None = None,
    log_level: int = logging.ERROR,
    reraise: bool = True,
    handled: tuple[type[BaseException], ...] = DEFAULT_HANDLED,
) -> Callable[[F], F]:
    """Decorator for standardized error handling with logging and exception wrapping.

    Args:
        exception_class: Exception class to wrap to
        message: Error message template
        error_code: Optional error code
        log_level: Logging level (default ERROR)
        reraise: Whether to reraise the wrapped exception
        handled: Exception types that get wrapped; anything else propagates untouched

    Usage:
        @handle_errors(ConfigurationLoadError, "Failed to load noise filters", "NOISE_FILTER_LOAD_FAILED")
        def from_yaml(cls, path):
            ...
    """

    def _wrap(func: Callable[..., Any], args: tuple[Any, ...], exc: BaseException) -> None:
        # Get logger from self if available, otherwise create one
        logger = getattr(args[0], "logger", None) if args else None
        if not isinstance(logger, logging.Logger):
            logger = logging.getLogger(func.__module__)

        formatted_message = f"{message} in {func.__name__}"
        logger.log(log_level, "%s: %s", formatted_message, exc)

        if reraise:
            wrapped_error = wrap_exception(
                exc,  # type: ignore[arg-type]
                exception_class,
                formatted_message,
                error_code=error_code,
                context={
                    "function": func.__name__,
                    "args": str(args[1:]) if len(args) > 1 else None,
                },
            )
            raise wrapped_error from exc

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except GatewayBaseError:
                raise
            except handled as e:
                _wrap(func, args, e)
                return None

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except GatewayBaseError:
                raise
            except handled as e:
                _wrap(func, args, e)
                return None

        # Return appropriate wrapper based on function type
        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper  # type: ignore[return-value]

    return decorator


def log_and_wrap_error(
    exception: Exception,
    exception_class: type[GatewayBaseError],
    message: str,
    error_code: str | None = None,
    context: dict[str, Any] | None = None,
    logger: logging.Logger | None = None,
) -> GatewayBaseError:
    """Standardized error logging and wrapping utility.

    Args:
        exception: Original exception
        exception_class: Target exception class
        message: Error message
        error_code: Optional error code
        context: Additional context information
        logger: Logger instance (if None, creates one)

    Returns:
        Wrapped exception
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    logger.error("%s: %s", message, exception)

    return wrap_exception(
        exception, exception_class, message, error_code=error_code, context=context
    )
