"""
Fingerprint caches: exact-content signatures and perceptual hashes.

Both stores follow the same contract (bulk read-all, bulk upsert keyed by
file path, bulk delete by path). Failures propagate as CacheError; the scan
that triggered them is expected to abort.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..models import PHashCacheEntry, SignatureCacheEntry
from .connection import ConnectionManager
from .utils import delete_in_chunks, row_to_phash_entry, row_to_signature_entry


logger = logging.getLogger(__name__)


class SignatureCache:
    """
    Durable map of file path -> last computed content signature.

    An entry is only trustworthy while the live file still has the recorded
    (last_modified, size); callers check that with SignatureCacheEntry.matches.
    """

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def get_all(self) -> list[SignatureCacheEntry]:
        """Return every cached signature."""
        with self.conn_mgr.connection(exclusive=False) as conn:
            rows = conn.execute("SELECT * FROM signature_cache").fetchall()
        return [row_to_signature_entry(row) for row in rows]

    def upsert(self, entries: Iterable[SignatureCacheEntry]) -> int:
        """
        Insert or replace signatures keyed by file path.

        Args:
            entries: Entries to write

        Returns:
            Number of entries written
        """
        params = [
            (e.file_path, e.last_modified, e.size, e.signature)
            for e in entries
        ]
        if not params:
            return 0

        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.executemany("""
                INSERT OR REPLACE INTO signature_cache (
                    file_path, last_modified, size, signature
                ) VALUES (?, ?, ?, ?)
            """, params)

        logger.debug(f"Upserted {len(params)} signature cache entries")
        return len(params)

    def delete_by_paths(self, paths: Iterable[str]) -> int:
        """Remove signatures for the given file paths."""
        paths = list(paths)
        if not paths:
            return 0
        with self.conn_mgr.connection(exclusive=True) as conn:
            return delete_in_chunks(conn, 'signature_cache', 'file_path', paths)

    def clear(self):
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.execute("DELETE FROM signature_cache")


class PerceptualHashCache:
    """Durable map of file path -> perceptual hash and optional histogram."""

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def get_all(self) -> list[PHashCacheEntry]:
        """Return every cached perceptual hash."""
        with self.conn_mgr.connection(exclusive=False) as conn:
            rows = conn.execute("SELECT * FROM phash_cache").fetchall()
        return [row_to_phash_entry(row) for row in rows]

    def upsert(self, entries: Iterable[PHashCacheEntry]) -> int:
        """Insert or replace perceptual hashes keyed by file path."""
        params = [
            (e.file_path, e.last_modified, e.size, e.phash, e.histogram)
            for e in entries
        ]
        if not params:
            return 0

        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.executemany("""
                INSERT OR REPLACE INTO phash_cache (
                    file_path, last_modified, size, phash, histogram
                ) VALUES (?, ?, ?, ?, ?)
            """, params)

        logger.debug(f"Upserted {len(params)} perceptual hash cache entries")
        return len(params)

    def delete_by_paths(self, paths: Iterable[str]) -> int:
        """Remove perceptual hashes for the given file paths."""
        paths = list(paths)
        if not paths:
            return 0
        with self.conn_mgr.connection(exclusive=True) as conn:
            return delete_in_chunks(conn, 'phash_cache', 'file_path', paths)

    def clear(self):
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.execute("DELETE FROM phash_cache")


__all__ = ['SignatureCache', 'PerceptualHashCache']
