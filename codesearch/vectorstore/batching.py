"""
Sequential batched upserts.

Points are written one fixed-size batch at a time, waiting for the
backend acknowledgment of each batch before sending the next. A failed
batch stops the write; earlier batches stay written.
"""

import time
from collections.abc import Awaitable, Callable, Iterator, Sequence
from typing import TypeVar

import structlog

from codesearch.observability.metrics import get_metrics
from codesearch.vectorstore.errors import BatchInsertError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def iter_batches(items: Sequence[T], batch_size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``batch_size`` items."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    for start in range(0, len(items), batch_size):
        yield items[start : start + batch_size]


async def upsert_in_batches(
    collection_name: str,
    points: Sequence[T],
    upsert_batch: Callable[[Sequence[T]], Awaitable[None]],
    batch_size: int,
    backend: str,
) -> int:
    """
    Upsert points sequentially in fixed-size batches.

    Args:
        collection_name: Target collection (for errors and logs)
        points: Backend-ready points
        upsert_batch: Coroutine writing one batch and waiting for acknowledgment
        batch_size: Maximum points per request
        backend: Adapter name for metrics

    Returns:
        Number of points written

    Raises:
        BatchInsertError: If a batch fails; carries the failing batch index
    """
    metrics = get_metrics()
    written = 0

    for batch_index, batch in enumerate(iter_batches(points, batch_size)):
        started = time.perf_counter()
        try:
            await upsert_batch(batch)
        except Exception as e:
            metrics.record_upsert_batch(backend, len(batch), success=False)
            logger.error(
                "Upsert batch failed",
                collection=collection_name,
                batch_index=batch_index,
                written=written,
                error=str(e),
            )
            raise BatchInsertError(collection_name, batch_index, written, e) from e

        metrics.record_upsert_batch(backend, len(batch), success=True)
        metrics.record_request_latency(backend, "upsert", time.perf_counter() - started)
        written += len(batch)
        logger.debug(
            "Upserted batch",
            collection=collection_name,
            batch_index=batch_index,
            size=len(batch),
        )

    return written
