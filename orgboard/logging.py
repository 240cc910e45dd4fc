"""
Structured logging for Orgboard.

Every component logs snake_case events through structlog (``cache_hit``,
``swr_refresh_failed``, ``page_fetched``, ``rate_limit_low``) with the
organization, cache key or command bound as context. Logs always go to
stderr; stdout belongs to CLI output.

The renderer follows ``LOG_FORMAT``: ``console`` for people, ``json`` for
log shippers, and ``auto`` (default) picks console when stderr is a
terminal or DEBUG is on, JSON otherwise.
"""

import inspect
import logging
import sys
import time
from collections.abc import Callable, Mapping, MutableMapping
from functools import lru_cache, wraps
from typing import Any, Optional, TypeVar

import structlog
from structlog.types import Processor

from orgboard import __version__

F = TypeVar("F", bound=Callable[..., Any])


def _wants_console(log_format: Optional[str] = None) -> bool:
    from .config import get_settings

    settings = get_settings()
    log_format = log_format or settings.log_format
    if log_format == "auto":
        return settings.debug or sys.stderr.isatty()
    return log_format == "console"


def _add_orgboard_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> Mapping[str, Any] | str | bytes | bytearray | tuple[Any, ...]:
    """Stamp entries with the tool and its version so shipped logs can be filtered."""
    event_dict.setdefault("app", "orgboard")
    event_dict.setdefault("version", __version__)
    return event_dict


def get_processors(log_format: Optional[str] = None) -> list[Processor]:
    """structlog processor chain ending in the console or JSON renderer."""
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_orgboard_context,
    ]

    if _wants_console(log_format):
        return shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        ]
    return shared_processors + [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


@lru_cache(maxsize=1)
def configure_logging(level: str = "INFO") -> None:
    """Configure structlog once; ``get_logger`` falls back to the defaults."""
    # stdout carries CLI output, logs go to stderr
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=get_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name)  # type: ignore[no-any-return]


# =============================================================================
# Context Management
# =============================================================================


def bind_context(**kwargs: Any) -> None:
    """Bind context variables included in all subsequent log entries."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(org="acme", resource="repository_issues"):
            logger.info("refresh_started")  # Includes org and resource
        logger.info("done")  # Does not include org or resource
    """

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self._keys = list(kwargs.keys())

    def __enter__(self):
        structlog.contextvars.bind_contextvars(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.unbind_contextvars(*self._keys)
        return False


# =============================================================================
# Decorators
# =============================================================================


def log_timing(
    operation: str, logger: structlog.stdlib.BoundLogger | None = None
) -> Callable[[F], F]:
    """
    Decorator to log coroutine timing.

    Usage:
        @log_timing("repository_issues_load")
        async def _load(self, org):
            ...
    """

    def decorator(func: F) -> F:
        _logger = logger or get_logger(func.__module__)

        if not inspect.iscoroutinefunction(func):
            raise TypeError("log_timing only wraps coroutine functions")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - start
                _logger.warning(
                    "operation_failed",
                    operation=operation,
                    duration_seconds=round(elapsed, 3),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise
            elapsed = time.perf_counter() - start
            _logger.info(
                "operation_complete", operation=operation, duration_seconds=round(elapsed, 3)
            )
            return result

        return wrapper  # type: ignore

    return decorator


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "LogContext",
    "log_timing",
]
