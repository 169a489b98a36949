"""
Parallel processing module for the scanner package.

Hashes media in fixed-size chunks on a bounded thread pool. Only the hashing
runs on worker threads; results are handed back one chunk at a time so that
grouping and cache writes stay on the single coordinating thread.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterator, Optional, Sequence, TypeVar

from ..config import DEFAULT_WORKERS, SCAN_CHUNK_SIZE
from ..models import MediaItem
from .cancellation import CancellationToken
from .dependencies import _logger

T = TypeVar('T')


def iter_hashed_chunks(
    items: Sequence[MediaItem],
    hash_fn: Callable[[MediaItem], Optional[T]],
    max_workers: int = DEFAULT_WORKERS,
    chunk_size: int = SCAN_CHUNK_SIZE,
    cancel_token: Optional[CancellationToken] = None,
) -> Iterator[list[tuple[MediaItem, Optional[T]]]]:
    """
    Hash items chunk by chunk, yielding each finished chunk in input order.

    Cancellation is checked before each chunk starts, so work is abandoned
    only at chunk boundaries. A hash function that raises is treated like
    one that returned None.

    Args:
        items: Items to hash
        hash_fn: Per-item hash function, run on worker threads
        max_workers: Size of the thread pool
        chunk_size: Items per chunk
        cancel_token: Optional cancellation token

    Yields:
        List of (item, result) pairs for one chunk

    Raises:
        ScanCancelled: If cancellation is requested between chunks
    """
    if not items:
        return

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        for start in range(0, len(items), chunk_size):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            chunk = items[start:start + chunk_size]
            futures = {
                executor.submit(hash_fn, item): index
                for index, item in enumerate(chunk)
            }

            results: list[Optional[T]] = [None] * len(chunk)
            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    _logger.warning(f"Hashing failed for {chunk[index].id}: {e}")

            yield list(zip(chunk, results))


__all__ = ['iter_hashed_chunks']
