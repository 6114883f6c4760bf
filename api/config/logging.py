"""Structured logging configuration using structlog.

Records carry event, module, level, timestamp and elapsed_ms fields and are
rendered as JSON (or console text for local runs). Everything goes to stderr
because the stdio MCP transport owns stdout.
"""

import functools
import logging
import sys
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar, cast

import structlog
from structlog.types import EventDict

from gateway.utils import sanitize_for_logging

T = TypeVar("T")


def add_elapsed_ms() -> Callable[[logging.Logger, str, EventDict], EventDict]:
    """Stamp each record with milliseconds since logging was configured."""
    start_time = time.time()

    def processor(
        _logger: logging.Logger, _method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("elapsed_ms", round((time.time() - start_time) * 1000, 2))
        return event_dict

    return processor


def mask_credentials(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask bearer tokens and credential-named fields before rendering."""
    return cast("EventDict", sanitize_for_logging(dict(event_dict)))


def configure_structured_logging(
    *, level: str = "INFO", format_json: bool = True
) -> None:
    """Configure structlog and stdlib logging to write to stderr."""
    structlog.reset_defaults()
    log_level = getattr(logging, level.upper())

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_elapsed_ms(),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO", utc=True),
    ]
    if format_json:
        processors += [
            structlog.processors.format_exc_info,
            mask_credentials,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [mask_credentials, structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # The gateway core logs through the standard library
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=log_level,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger whose records carry ``module=name``.

    Example:
        logger = get_logger(__name__)
        logger.info("Session opened", session_id=session_id)
    """
    return cast("structlog.BoundLogger", structlog.get_logger(module=name))


def log_function_call(
    func_name: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Log start, completion and failure of an async tool with its duration."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:  # noqa: ANN401
            logger = get_logger(func.__module__)
            start_time = time.time()
            logger.info("Tool started", function=func_name, kwargs_keys=sorted(kwargs))
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.exception(
                    "Tool failed",
                    function=func_name,
                    elapsed_ms=round((time.time() - start_time) * 1000, 2),
                    exception_type=type(e).__name__,
                )
                raise
            logger.info(
                "Tool completed",
                function=func_name,
                elapsed_ms=round((time.time() - start_time) * 1000, 2),
            )
            return result

        return wrapper

    return decorator
