"""
Exact-duplicate engine.

Finds byte-identical media in three phases:
1. Size grouping - a file with a unique size cannot have a duplicate
2. Signature lookup/computation for the remaining candidates, in chunks
3. Grouping by signature, cache write-back and pruning
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Optional, Sequence

from ..config import DEFAULT_WORKERS, SCAN_CHUNK_SIZE
from ..database import SignatureCache
from ..models import (
    CacheStats,
    DuplicateScanResult,
    ExactGroup,
    MediaItem,
    SignatureCacheEntry,
    sort_oldest_first,
)
from .cancellation import CancellationToken
from .hashing import calculate_signature
from .parallel import iter_hashed_chunks
from .storage import FileSystemStorage, MediaStorage


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class ExactDuplicateFinder:
    """
    Groups byte-identical files using cached content signatures.

    Usage:
        finder = ExactDuplicateFinder(stores.signatures)
        result = finder.find_duplicates(items, on_progress=print)
    """

    def __init__(
        self,
        signature_cache: SignatureCache,
        storage: Optional[MediaStorage] = None,
        max_workers: int = DEFAULT_WORKERS,
        chunk_size: int = SCAN_CHUNK_SIZE,
    ):
        self.signature_cache = signature_cache
        self.storage = storage or FileSystemStorage()
        self.max_workers = max_workers
        self.chunk_size = chunk_size

    def find_duplicates(
        self,
        items: Sequence[MediaItem],
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DuplicateScanResult:
        """
        Find all groups of identical files.

        Args:
            items: Full candidate list for this scan
            on_progress: Called with the cumulative number of items processed
            cancel_token: Polled between chunks

        Returns:
            DuplicateScanResult with groups sorted by reclaimable size and the
            paths that could not be hashed

        Raises:
            ScanCancelled: If cancelled; chunks completed so far stay cached
            CacheError: If the signature cache cannot be read or written
        """
        def report(count: int):
            if on_progress is not None:
                on_progress(count)

        if not items:
            report(0)
            return DuplicateScanResult(groups=[], skipped_paths=[])

        # Phase 1: group by size
        by_size: dict[int, list[MediaItem]] = defaultdict(list)
        for item in items:
            if item.size > 0:
                by_size[item.size].append(item)

        candidates = [
            item
            for bucket in by_size.values() if len(bucket) > 1
            for item in bucket
        ]
        processed = len(items) - len(candidates)
        if processed > 0:
            report(processed)
        logger.debug(f"Size check complete: {len(candidates):,} of {len(items):,} files need signatures")

        # Phase 2: signatures
        cache = {entry.file_path: entry for entry in self.signature_cache.get_all()}
        stats = CacheStats(total_files=len(candidates))
        by_signature: dict[str, list[MediaItem]] = defaultdict(list)
        skipped: list[str] = []

        def signature_for(item: MediaItem) -> tuple[Optional[str], bool]:
            cached = cache.get(item.id)
            if cached is not None and cached.signature and cached.matches(item):
                return cached.signature, True
            return calculate_signature(item, self.storage), False

        for chunk in iter_hashed_chunks(
            candidates,
            signature_for,
            max_workers=self.max_workers,
            chunk_size=self.chunk_size,
            cancel_token=cancel_token,
        ):
            to_upsert: list[SignatureCacheEntry] = []
            for item, result in chunk:
                signature, from_cache = result if result is not None else (None, False)
                if not signature:
                    stats.cache_misses += 1
                    skipped.append(item.id)
                    continue

                if from_cache:
                    stats.cache_hits += 1
                else:
                    stats.cache_misses += 1
                    to_upsert.append(SignatureCacheEntry(
                        file_path=item.id,
                        last_modified=item.date_modified,
                        size=item.size,
                        signature=signature,
                    ))
                by_signature[signature].append(item)

            self.signature_cache.upsert(to_upsert)
            processed += len(chunk)
            report(processed)

        # Phase 3: prune and group
        present = {item.id for item in items}
        removed = [path for path in cache if path not in present]
        if removed:
            self.signature_cache.delete_by_paths(removed)
            logger.debug(f"Pruned {len(removed):,} signatures for files no longer present")

        groups = [
            ExactGroup(
                signature=signature,
                items=sort_oldest_first(members),
                size_per_file=members[0].size,
            )
            for signature, members in by_signature.items()
            if len(members) > 1
        ]
        groups.sort(key=lambda g: g.item_count * g.size_per_file, reverse=True)

        logger.info(
            f"Exact scan finished: {len(groups):,} groups, {len(skipped):,} skipped, "
            f"{stats.cache_hits:,} cache hits ({stats.hit_rate:.1f}%)"
        )
        return DuplicateScanResult(groups=groups, skipped_paths=skipped, stats=stats)


__all__ = ['ExactDuplicateFinder']
