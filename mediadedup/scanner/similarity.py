"""
Similarity engine.

Clusters visually similar images and videos by the Hamming distance of their
dHash fingerprints. Fingerprints and clusters are both cached:
- a fingerprint is reused while the file's (mtime, size) is unchanged
- a cached cluster is reused while none of its members changed; touching
  any member drops the whole cluster and its members are re-clustered

Clustering is representative based: each cluster is keyed by the hash of
its first member, and an item joins the closest cluster whose representative
lies within the threshold. Similarity is therefore not assumed transitive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from ..config import DEFAULT_THRESHOLD, DEFAULT_WORKERS, SCAN_CHUNK_SIZE
from ..database import PerceptualHashCache, SimilarGroupCache
from ..models import (
    CacheStats,
    MediaItem,
    PHashCacheEntry,
    SimilarGroup,
    SimilarGroupEntry,
    SimilarScanResult,
    sort_oldest_first,
)
from .cancellation import CancellationToken
from .hashing import (
    calculate_perceptual_fingerprint,
    hamming_distance,
    histogram_similarity,
    is_valid_phash,
)
from .parallel import iter_hashed_chunks
from .storage import FileSystemStorage, MediaStorage


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
Fingerprint = tuple[str, Optional[str]]


@dataclass
class _Cluster:
    """Working state of one cluster during a scan."""
    key: str
    histogram: Optional[str]
    members: list[str] = field(default_factory=list)
    dirty: bool = False


class SimilarityFinder:
    """
    Finds clusters of perceptually similar media.

    Usage:
        finder = SimilarityFinder(stores.phashes, stores.similar_groups, threshold=5)
        result = finder.find_similar(items)
    """

    def __init__(
        self,
        phash_cache: PerceptualHashCache,
        group_cache: SimilarGroupCache,
        storage: Optional[MediaStorage] = None,
        threshold: int = DEFAULT_THRESHOLD,
        histogram_threshold: Optional[float] = None,
        max_workers: int = DEFAULT_WORKERS,
        chunk_size: int = SCAN_CHUNK_SIZE,
        include_videos: bool = True,
    ):
        """
        Args:
            phash_cache: Perceptual hash store
            group_cache: Cluster membership store
            storage: Media storage; local filesystem if None
            threshold: Maximum Hamming distance (out of 64 bits) to be similar
            histogram_threshold: If set, images must also have a histogram
                intersection of at least this value to be similar
            max_workers: Hashing thread pool size
            chunk_size: Items per hashing chunk
            include_videos: Fingerprint videos from a representative frame
        """
        self.phash_cache = phash_cache
        self.group_cache = group_cache
        self.storage = storage or FileSystemStorage()
        self.threshold = threshold
        self.histogram_threshold = histogram_threshold
        self.max_workers = max_workers
        self.chunk_size = chunk_size
        self.include_videos = include_videos

    def is_similar(self, a: Fingerprint, b: Fingerprint) -> bool:
        """Decide whether two fingerprints are close enough to cluster."""
        distance = hamming_distance(a[0], b[0])
        if distance < 0 or distance > self.threshold:
            return False
        if self.histogram_threshold is not None and a[1] and b[1]:
            return histogram_similarity(a[1], b[1]) >= self.histogram_threshold
        return True

    def find_similar(
        self,
        items: Sequence[MediaItem],
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SimilarScanResult:
        """
        Cluster the given items.

        Args:
            items: Candidate images and videos
            on_progress: Called with the cumulative number of items processed
            cancel_token: Polled between chunks

        Returns:
            SimilarScanResult with groups sorted by size and unscannable paths

        Raises:
            ScanCancelled: If cancelled; fingerprints of completed chunks stay
                cached and clusters touched by them are already invalidated
            CacheError: If a store cannot be read or written
        """
        def report(count: int):
            if on_progress is not None:
                on_progress(count)

        if not items:
            report(0)
            return SimilarScanResult(groups=[], skipped_paths=[])

        candidates = [item for item in items if item.size > 0 and self._accepts(item)]
        excluded_videos = sum(1 for item in items if item.is_video and not self._accepts(item))
        if excluded_videos:
            reason = "video similarity disabled" if not self.include_videos else "video frame decoding unavailable"
            logger.warning(f"{excluded_videos:,} videos left out of similarity scan ({reason})")

        processed = len(items) - len(candidates)
        if processed > 0:
            report(processed)

        fingerprints, skipped, stats, cache = self._hash_phase(
            candidates, processed, report, cancel_token
        )

        # Drop fingerprints of files that vanished or can no longer be read
        present = {item.id for item in items}
        skipped_set = set(skipped)
        removed = [path for path in cache if path not in present or path in skipped_set]
        if removed:
            self.phash_cache.delete_by_paths(removed)
        self.group_cache.delete_groups_containing(removed + skipped)

        clusters = self._load_valid_clusters(fingerprints)
        clustered = {path for cluster in clusters for path in cluster.members}

        by_id = {item.id: item for item in candidates}
        pool = sort_oldest_first([by_id[path] for path in fingerprints if path not in clustered])
        logger.debug(
            f"Reusing {len(clusters):,} cached clusters, clustering {len(pool):,} new or changed files"
        )

        for index, item in enumerate(pool):
            if cancel_token is not None and index % self.chunk_size == 0:
                cancel_token.raise_if_cancelled()
            self._assign(item.id, fingerprints[item.id], clusters)

        self.group_cache.insert(
            SimilarGroupEntry(cluster.key, path)
            for cluster in clusters
            if cluster.dirty and len(cluster.members) > 1
            for path in cluster.members
        )

        groups = [
            SimilarGroup(
                phash=cluster.key,
                items=sort_oldest_first([by_id[path] for path in cluster.members]),
            )
            for cluster in clusters
            if len(cluster.members) > 1
        ]
        groups.sort(key=lambda g: (-g.item_count, g.phash))

        logger.info(
            f"Similarity scan finished: {len(groups):,} groups, {len(skipped):,} skipped, "
            f"{stats.cache_hits:,} cache hits ({stats.hit_rate:.1f}%)"
        )
        return SimilarScanResult(groups=groups, skipped_paths=skipped, stats=stats)

    def _accepts(self, item: MediaItem) -> bool:
        if not item.is_video:
            return True
        return self.include_videos and self.storage.supports_video_frames

    def _hash_phase(
        self,
        candidates: list[MediaItem],
        processed: int,
        report: ProgressCallback,
        cancel_token: Optional[CancellationToken],
    ) -> tuple[dict[str, Fingerprint], list[str], CacheStats, dict[str, PHashCacheEntry]]:
        """Look up or compute fingerprints, writing back after every chunk."""
        cache = {entry.file_path: entry for entry in self.phash_cache.get_all()}
        stats = CacheStats(total_files=len(candidates))
        fingerprints: dict[str, Fingerprint] = {}
        skipped: list[str] = []

        def fingerprint_for(item: MediaItem) -> tuple[Optional[Fingerprint], bool]:
            cached = cache.get(item.id)
            # Malformed cached hashes are treated as misses
            if cached is not None and cached.matches(item) and is_valid_phash(cached.phash):
                return (cached.phash.lower(), cached.histogram), True
            return calculate_perceptual_fingerprint(item, self.storage), False

        for chunk in iter_hashed_chunks(
            candidates,
            fingerprint_for,
            max_workers=self.max_workers,
            chunk_size=self.chunk_size,
            cancel_token=cancel_token,
        ):
            to_upsert: list[PHashCacheEntry] = []
            for item, result in chunk:
                fingerprint, from_cache = result if result is not None else (None, False)
                if fingerprint is None:
                    stats.cache_misses += 1
                    skipped.append(item.id)
                    continue

                if from_cache:
                    stats.cache_hits += 1
                else:
                    stats.cache_misses += 1
                    to_upsert.append(PHashCacheEntry(
                        file_path=item.id,
                        last_modified=item.date_modified,
                        size=item.size,
                        phash=fingerprint[0],
                        histogram=fingerprint[1],
                    ))
                fingerprints[item.id] = fingerprint

            # Keep clusters consistent with the fingerprints written so far
            self.group_cache.delete_groups_containing(e.file_path for e in to_upsert)
            self.phash_cache.upsert(to_upsert)
            processed += len(chunk)
            report(processed)

        return fingerprints, skipped, stats, cache

    def _load_valid_clusters(self, fingerprints: dict[str, Fingerprint]) -> list[_Cluster]:
        """
        Load cached clusters whose members are all unchanged in this scan.

        A cluster is kept only if every member was fingerprinted in this scan,
        no member already belongs to another kept cluster, and its key is
        still the hash of one of its members. Anything else is deleted whole.
        """
        clusters: list[_Cluster] = []
        invalid: list[str] = []
        seen: set[str] = set()

        for key, members in sorted(self.group_cache.get_groups().items()):
            representative = next(
                (path for path in members
                 if path in fingerprints and fingerprints[path][0] == key),
                None,
            )
            valid = (
                len(members) > 1
                and representative is not None
                and all(path in fingerprints and path not in seen for path in members)
            )
            if not valid:
                invalid.append(key)
                continue

            seen.update(members)
            ordered = [representative] + sorted(p for p in members if p != representative)
            clusters.append(_Cluster(
                key=key,
                histogram=fingerprints[representative][1],
                members=ordered,
            ))

        if invalid:
            self.group_cache.delete_groups(invalid)
            logger.debug(f"Dropped {len(invalid):,} stale cached clusters")
        return clusters

    def _assign(self, path: str, fingerprint: Fingerprint, clusters: list[_Cluster]):
        """Put a path into the closest matching cluster or start a new one."""
        best: Optional[_Cluster] = None
        best_distance = None
        for cluster in clusters:
            if not self.is_similar(fingerprint, (cluster.key, cluster.histogram)):
                continue
            distance = hamming_distance(fingerprint[0], cluster.key)
            if best_distance is None or distance < best_distance:
                best, best_distance = cluster, distance

        if best is not None:
            best.members.append(path)
            best.dirty = True
        elif any(cluster.key == fingerprint[0] for cluster in clusters):
            # Same hash, rejected by the histogram check; keys must stay unique
            logger.debug(f"{path} left unclustered: representative hash already in use")
        else:
            clusters.append(_Cluster(
                key=fingerprint[0],
                histogram=fingerprint[1],
                members=[path],
                dirty=True,
            ))


__all__ = ['SimilarityFinder']
