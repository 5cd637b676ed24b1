"""
Structured logging for the vector store adapters.

Adapter methods are wrapped with ``log_operation`` so every event emitted
while they run (by the adapter itself or by the shared batching, filter
and payload helpers) carries ``backend``, ``operation`` and, where the
call targets one, ``collection``. ``setup_logging`` is for the host
application's entry point; the library never configures logging itself.
"""

import functools
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from structlog.types import Processor

from codesearch.config.settings import Settings, get_settings

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

# Libraries whose request-level chatter drowns the adapter events
_NOISY_LOGGERS = ("httpx", "httpcore", "qdrant_client", "asyncio")


def _renderer(settings: Settings) -> list[Processor]:
    if settings.is_production:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog and stdlib logging.

    Production renders one JSON object per line; other environments get
    console output. Context bound by ``log_operation`` is merged into
    every event.
    """
    settings = settings or get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        *_renderer(settings),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_operation(operation: str) -> Callable[[F], F]:
    """
    Bind adapter context to all log events emitted during the wrapped call.

    The wrapped coroutine must be a method of an object with a ``backend``
    attribute. A ``collection_name`` argument, positional or keyword, is
    bound as ``collection``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            context: dict[str, Any] = {"backend": self.backend, "operation": operation}
            collection = kwargs.get("collection_name", args[0] if args else None)
            if isinstance(collection, str):
                context["collection"] = collection

            with structlog.contextvars.bound_contextvars(**context):
                return await func(self, *args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
