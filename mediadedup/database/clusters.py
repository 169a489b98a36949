"""
Similarity cluster cache.

Stores the many-to-one relation between a cluster key (the perceptual hash
of the cluster representative) and its member file paths, so repeat scans can
skip comparisons among unchanged files.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from ..models import SimilarGroupEntry
from .connection import ConnectionManager
from .utils import chunked, delete_in_chunks, placeholders


logger = logging.getLogger(__name__)


class SimilarGroupCache:
    """
    Cached cluster membership.

    Clusters are never partially updated: when a member changes or
    disappears the whole cluster is removed with delete_groups_containing
    and re-evaluated on the next scan.
    """

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def get_all(self) -> list[SimilarGroupEntry]:
        """Return every (group_id, file_path) membership row."""
        with self.conn_mgr.connection(exclusive=False) as conn:
            rows = conn.execute(
                "SELECT group_id, file_path FROM similar_group_cache"
            ).fetchall()
        return [SimilarGroupEntry(row['group_id'], row['file_path']) for row in rows]

    def get_groups(self) -> dict[str, list[str]]:
        """Return cluster key -> member paths."""
        groups: dict[str, list[str]] = defaultdict(list)
        for entry in self.get_all():
            groups[entry.group_id].append(entry.file_path)
        return dict(groups)

    def insert(self, entries: Iterable[SimilarGroupEntry]) -> int:
        """Insert membership rows; an existing (group_id, file_path) is replaced."""
        params = [(e.group_id, e.file_path) for e in entries]
        if not params:
            return 0
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.executemany("""
                INSERT OR REPLACE INTO similar_group_cache (group_id, file_path)
                VALUES (?, ?)
            """, params)
        return len(params)

    def upsert(self, entries: Iterable[SimilarGroupEntry]) -> int:
        return self.insert(entries)

    def delete_by_paths(self, paths: Iterable[str]) -> int:
        """
        Remove single membership rows.

        Prefer delete_groups_containing for invalidation; this only exists
        to honour the uniform store contract.
        """
        paths = list(paths)
        if not paths:
            return 0
        with self.conn_mgr.connection(exclusive=True) as conn:
            return delete_in_chunks(conn, 'similar_group_cache', 'file_path', paths)

    def delete_groups(self, group_ids: Iterable[str]) -> int:
        """Remove whole clusters by key."""
        group_ids = list(group_ids)
        if not group_ids:
            return 0
        with self.conn_mgr.connection(exclusive=True) as conn:
            return delete_in_chunks(conn, 'similar_group_cache', 'group_id', group_ids)

    def delete_groups_containing(self, paths: Iterable[str]) -> int:
        """
        Delete every cluster that contains any of the given file paths.

        This is the invalidation primitive: if one member of a cluster is
        modified or removed, the entire cluster must be re-evaluated.

        Args:
            paths: Member paths that changed or disappeared

        Returns:
            Number of membership rows removed
        """
        paths = list(dict.fromkeys(paths))
        if not paths:
            return 0

        removed = 0
        with self.conn_mgr.connection(exclusive=True) as conn:
            for chunk in chunked(paths):
                result = conn.execute(f"""
                    DELETE FROM similar_group_cache
                    WHERE group_id IN (
                        SELECT DISTINCT group_id FROM similar_group_cache
                        WHERE file_path IN ({placeholders(chunk)})
                    )
                """, chunk)
                removed += result.rowcount

        if removed:
            logger.debug(f"Invalidated {removed} cluster memberships for {len(paths)} changed files")
        return removed

    def clear(self):
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.execute("DELETE FROM similar_group_cache")


__all__ = ['SimilarGroupCache']
