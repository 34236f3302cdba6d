"""Chunking and bounded-concurrency dispatch of batch operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

MAX_BATCH_SIZE = 10
"""Most records Airtable accepts in one write or delete request."""


def is_scalar(data: object) -> bool:
    """Whether `data` is a single item rather than a list of items."""
    return isinstance(data, str | bytes | Mapping) or not isinstance(data, Sequence)


def chunk(data: T | Sequence[T], size: int = MAX_BATCH_SIZE) -> list[list[T]]:
    """Split `data` into consecutive chunks of at most `size` items.

    A single item becomes one chunk of one. An empty sequence yields no
    chunks at all, so no request is issued for it.
    """
    if size < 1:
        msg = "size must be at least 1"
        raise ValueError(msg)
    if is_scalar(data):
        return [[data]]  # type: ignore[list-item]
    items = list(data)  # type: ignore[arg-type]
    return [items[i : i + size] for i in range(0, len(items), size)]


async def dispatch(
    chunks: Sequence[Sequence[T]],
    worker: Callable[[Sequence[T]], Awaitable[Sequence[R]]],
    concurrency: int = 1,
) -> list[R]:
    """Apply `worker` to every chunk with at most `concurrency` in flight.

    Chunks are started in input order and the flattened result keeps that
    order whatever the completion order. The first failure is raised and
    no further chunks are started. Chunks already in flight are left to
    finish and their results are dropped. Writes they made are not undone,
    so a failed batch may be partially applied.
    """
    if concurrency < 1:
        msg = "concurrency must be at least 1"
        raise ValueError(msg)
    if not chunks:
        return []

    results: list[Sequence[R]] = [() for _ in chunks]
    pending = iter(enumerate(chunks))
    failed = False

    async def run() -> None:
        nonlocal failed
        for index, items in pending:
            if failed:
                return
            try:
                results[index] = await worker(items)
            except Exception:
                failed = True
                logger.debug("Batch %d of %d failed", index + 1, len(chunks))
                raise

    lanes = min(concurrency, len(chunks))
    logger.debug("Dispatching %d batches over %d lanes", len(chunks), lanes)
    await asyncio.gather(*(run() for _ in range(lanes)))
    return [result for batch in results for result in batch]


def collapse(results: list[R], scalar: bool) -> R | list[R] | None:
    """Unwrap the result of a single-item request.

    List requests always get a list back, even of zero or one element.
    """
    if not scalar:
        return results
    return results[0] if results else None
