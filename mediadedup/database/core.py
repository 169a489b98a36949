"""
CacheStores facade class for coordinating database operations.

Provides one handle over all durable stores, sharing a single connection
manager, so that engines and the repository receive their stores explicitly.
"""

from __future__ import annotations

from typing import Optional

from ..config import CACHE_DB_FILE
from .clusters import SimilarGroupCache
from .connection import ConnectionManager
from .fingerprints import PerceptualHashCache, SignatureCache
from .maintenance import MaintenanceOperations
from .scan_results import HiddenGroupStore, ScanResultStore
from .schema import initialize_schema, SCHEMA_VERSION
from .unreadable import UnreadableFileCache


class CacheStores:
    """
    SQLite-backed stores for fingerprints, clusters and scan results.

    Thread-safe for concurrent reads; writes are serialized by the
    connection manager's write lock.

    Usage:
        stores = CacheStores("/tmp/cache.db")
        finder = ExactDuplicateFinder(stores.signatures)
        repository = DuplicatesRepository(stores)
    """

    SCHEMA_VERSION = SCHEMA_VERSION

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the stores.

        Args:
            db_path: Path to SQLite database file. Uses default if None.

        Raises:
            CacheError: If the database cannot be created or migrated
        """
        self.db_path = db_path or CACHE_DB_FILE

        self._conn_mgr = ConnectionManager(self.db_path)

        with self._conn_mgr.connection(exclusive=True) as conn:
            initialize_schema(conn)

        self.signatures = SignatureCache(self._conn_mgr)
        self.phashes = PerceptualHashCache(self._conn_mgr)
        self.similar_groups = SimilarGroupCache(self._conn_mgr)
        self.scan_results = ScanResultStore(self._conn_mgr)
        self.hidden_groups = HiddenGroupStore(self._conn_mgr)
        self.unreadable_files = UnreadableFileCache(self._conn_mgr)
        self._maintenance = MaintenanceOperations(self._conn_mgr)

    def get_stats(self) -> dict:
        """Get cache statistics."""
        return self._maintenance.get_stats()

    def clear(self):
        """Clear all cached data."""
        self._maintenance.clear()

    def vacuum(self):
        """Compact the database file."""
        self._maintenance.vacuum()

    def invalidate_paths(self, paths: list[str]):
        """
        Drop every fingerprint and cluster that involves the given paths.

        Used when files are deleted or changed outside of a scan.
        """
        self.similar_groups.delete_groups_containing(paths)
        self.signatures.delete_by_paths(paths)
        self.phashes.delete_by_paths(paths)


__all__ = ['CacheStores']
