"""
Connection management shared by the vector database adapters.

Each adapter owns one ConnectionManager. Connection setup is started as
soon as the adapter is constructed inside a running event loop (otherwise
on first use), and every concurrent caller awaits the same in-flight setup.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import httpx
import structlog

from codesearch.vectorstore.errors import NotInitializedError

logger = structlog.get_logger(__name__)

ClientT = TypeVar("ClientT")

DEFAULT_QDRANT_HOST = "localhost"
DEFAULT_QDRANT_PORT = 6333


def resolve_endpoint(
    url: str | None = None,
    host: str | None = None,
    port: int | None = None,
    https: bool | None = None,
    prefix: str | None = None,
) -> str:
    """
    Build the Qdrant base URL from explicit URL or host/port parts.

    An explicit ``url`` wins. A configured host defaults to https; the
    implicit localhost default uses plain http.

    Raises:
        ValueError: If the result is not an absolute http(s) URL
    """
    if url:
        base = url.rstrip("/")
    else:
        if host:
            scheme = "https" if https is None or https else "http"
        else:
            host = DEFAULT_QDRANT_HOST
            scheme = "https" if https else "http"
        base = f"{scheme}://{host}:{port or DEFAULT_QDRANT_PORT}"

    if prefix:
        base = f"{base}/{prefix.strip('/')}"

    try:
        parsed = httpx.URL(base)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid Qdrant endpoint '{base}': {e}") from e

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValueError(f"Invalid Qdrant endpoint '{base}': expected http(s)://host[:port]")

    return base


class ConnectionManager(Generic[ClientT]):
    """
    Single-flight connection setup for one adapter instance.

    Usage:
        manager = ConnectionManager(self._connect, name="qdrant-rest")
        client = await manager.ensure_initialized()
    """

    def __init__(self, connect: Callable[[], Awaitable[ClientT]], name: str):
        """
        Initialize and, when an event loop is running, start connecting.

        Args:
            connect: Coroutine function returning the connected client
            name: Adapter name used in errors and logs
        """
        self._connect = connect
        self._name = name
        self._task: asyncio.Future[ClientT] | None = None

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the first operation starts the connection.
            return
        self.start()

    @property
    def started(self) -> bool:
        """Whether connection setup has been kicked off."""
        return self._task is not None

    def start(self) -> "asyncio.Future[ClientT]":
        """Start connection setup once; later calls return the same future."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._connect())
            self._task.add_done_callback(self._on_setup_done)
        return self._task

    def _on_setup_done(self, task: "asyncio.Future[ClientT]") -> None:
        # Consumes the exception even when no caller ever awaits the setup
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Connection setup failed", adapter=self._name, error=str(error))

    async def ensure_initialized(self) -> ClientT:
        """
        Wait for the shared connection setup and return the client.

        Raises:
            NotInitializedError: If setup failed (e.g. unresolvable endpoint)
        """
        task = self.start()
        try:
            # Shield so a cancelled caller does not cancel the shared setup.
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise NotInitializedError(
                f"{self._name} is not initialized: {e}"
            ) from e

    async def release(self) -> ClientT | None:
        """
        Forget the connection and hand back the client for closing.

        Returns:
            The connected client, or None if setup never succeeded
        """
        task, self._task = self._task, None
        if task is None:
            return None
        try:
            return await task
        except Exception as e:
            logger.debug("Releasing connection that never initialized", adapter=self._name, error=str(e))
            return None
