"""
Maintenance operations for the cache database.

Provides statistics, full reset and vacuum operations.
"""

from __future__ import annotations

import os
import sqlite3
import logging

from .connection import ConnectionManager
from .schema import _TABLES


logger = logging.getLogger(__name__)


class MaintenanceOperations:
    """
    Handles maintenance operations for the cache database.

    Provides statistics reporting, clearing and database compaction.
    """

    def __init__(self, connection_manager: ConnectionManager):
        """
        Initialize maintenance operations.

        Args:
            connection_manager: ConnectionManager instance for database access
        """
        self.conn_mgr = connection_manager

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache statistics:
                - signatures: Number of cached content signatures
                - phashes: Number of cached perceptual hashes
                - clusters: Number of cached similarity clusters
                - result_groups: Number of persisted result groups
                - unreadable_files: Number of remembered unreadable files
                - db_size_bytes / db_size_mb: Database size on disk
                - db_path: Path to database file
        """
        with self.conn_mgr.connection(exclusive=False) as conn:
            def count(sql: str) -> int:
                return conn.execute(sql).fetchone()[0]

            stats = {
                'signatures': count("SELECT COUNT(*) FROM signature_cache"),
                'phashes': count("SELECT COUNT(*) FROM phash_cache"),
                'clusters': count("SELECT COUNT(DISTINCT group_id) FROM similar_group_cache"),
                'result_groups': count(
                    "SELECT COUNT(*) FROM scan_result_groups WHERE unique_id != 'UNSCANNABLE_SUMMARY'"
                ),
                'unreadable_files': count("SELECT COUNT(*) FROM unreadable_file_cache"),
            }

        db_size = os.path.getsize(self.conn_mgr.db_path) if os.path.exists(self.conn_mgr.db_path) else 0
        stats.update({
            'db_size_bytes': db_size,
            'db_size_mb': round(db_size / (1024 * 1024), 2),
            'db_path': self.conn_mgr.db_path,
        })
        return stats

    def clear(self):
        """Clear all cached data, including the persisted scan snapshot."""
        with self.conn_mgr.connection(exclusive=True) as conn:
            for table in _TABLES:
                conn.execute(f"DELETE FROM {table}")
        self.vacuum()

    def vacuum(self):
        """Compact the database file."""
        try:
            # VACUUM must run outside a transaction
            conn = sqlite3.connect(self.conn_mgr.db_path, timeout=30.0)
            try:
                conn.execute("VACUUM")
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.debug(f"Failed to vacuum database: {e}")


__all__ = ['MaintenanceOperations']
