"""
Scan result snapshot store.

Persists the groups found by the last scan, their ordered members and the
list of files that could not be scanned, all under one shared timestamp.
A save always replaces the previous snapshot completely.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Iterable, Optional

from ..models import ExactGroup, ScanResultGroup, SimilarGroup
from .connection import ConnectionManager
from .utils import row_to_media_item


logger = logging.getLogger(__name__)

UNSCANNABLE_SUMMARY_ID = 'UNSCANNABLE_SUMMARY'
SUMMARY_GROUP_TYPE = 'SUMMARY_UNSCANNABLE'


def current_timestamp_ms() -> int:
    return int(time.time() * 1000)


class ScanResultStore:
    """Stores and reloads the snapshot of the latest scan."""

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def save(
        self,
        groups: Iterable[ScanResultGroup],
        unscannable_files: Iterable[str],
        timestamp: Optional[int] = None,
    ) -> int:
        """
        Replace the stored snapshot with a new one.

        Runs in a single transaction: the old snapshot is cleared and the new
        one written, or nothing changes at all.

        Args:
            groups: Result groups in display order
            unscannable_files: Paths that could not be read or hashed
            timestamp: Snapshot time in ms; defaults to now. Passing the
                original time keeps it when results are merely pruned.

        Returns:
            The timestamp the snapshot was saved under
        """
        if timestamp is None:
            timestamp = current_timestamp_ms()
        unscannable_files = list(unscannable_files)

        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.execute("DELETE FROM media_item_refs")
            conn.execute("DELETE FROM scan_result_groups")

            for position, group in enumerate(groups):
                if isinstance(group, ExactGroup):
                    row = (group.unique_id, group.group_type, group.signature, None,
                           group.size_per_file, None, position, timestamp)
                elif isinstance(group, SimilarGroup):
                    row = (group.unique_id, group.group_type, None, group.phash,
                           None, None, position, timestamp)
                else:
                    raise TypeError(f"Unsupported group type: {type(group).__name__}")

                conn.execute("""
                    INSERT OR REPLACE INTO scan_result_groups (
                        unique_id, group_type, signature, phash, size_per_file,
                        unscannable_file_paths, position, timestamp
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, row)

                conn.executemany("""
                    INSERT INTO media_item_refs (
                        group_id, position, media_item_id, display_name, mime_type,
                        date_modified, size, is_video, width, height
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, [
                    (group.unique_id, index, item.id, item.display_name, item.mime_type,
                     item.date_modified, item.size, int(item.is_video),
                     item.width, item.height)
                    for index, item in enumerate(group.items)
                ])

            if unscannable_files:
                conn.execute("""
                    INSERT OR REPLACE INTO scan_result_groups (
                        unique_id, group_type, signature, phash, size_per_file,
                        unscannable_file_paths, position, timestamp
                    ) VALUES (?, ?, NULL, NULL, NULL, ?, -1, ?)
                """, (UNSCANNABLE_SUMMARY_ID, SUMMARY_GROUP_TYPE,
                      json.dumps(unscannable_files), timestamp))

        logger.debug(f"Saved scan snapshot at {timestamp} with {len(unscannable_files)} unscannable files")
        return timestamp

    def load_latest(self) -> Optional[tuple[list[ScanResultGroup], list[str], int]]:
        """
        Load the stored snapshot without validating it against the disk.

        Returns:
            (groups, unscannable_files, timestamp), or None if nothing is stored
        """
        with self.conn_mgr.connection(exclusive=False) as conn:
            group_rows = conn.execute("""
                SELECT * FROM scan_result_groups
                WHERE unique_id != ?
                ORDER BY position
            """, (UNSCANNABLE_SUMMARY_ID,)).fetchall()
            summary_row = conn.execute(
                "SELECT * FROM scan_result_groups WHERE unique_id = ? LIMIT 1",
                (UNSCANNABLE_SUMMARY_ID,),
            ).fetchone()

            if not group_rows and summary_row is None:
                return None

            timestamp = group_rows[0]['timestamp'] if group_rows else summary_row['timestamp']

            groups: list[ScanResultGroup] = []
            for row in group_rows:
                ref_rows = conn.execute("""
                    SELECT * FROM media_item_refs WHERE group_id = ? ORDER BY position
                """, (row['unique_id'],)).fetchall()
                items = [row_to_media_item(ref) for ref in ref_rows]

                # Only groups that still hold duplicates are worth returning
                if len(items) < 2:
                    continue

                if row['group_type'] == ExactGroup.group_type:
                    groups.append(ExactGroup(
                        signature=row['signature'],
                        items=items,
                        size_per_file=row['size_per_file'] or items[0].size,
                    ))
                elif row['group_type'] == SimilarGroup.group_type:
                    groups.append(SimilarGroup(phash=row['phash'], items=items))
                else:
                    logger.warning(f"Skipping stored group with unknown type {row['group_type']!r}")

        unscannable: list[str] = []
        if summary_row is not None and summary_row['unscannable_file_paths']:
            unscannable = json.loads(summary_row['unscannable_file_paths'])

        return groups, unscannable, timestamp

    def clear(self):
        """Remove the stored snapshot."""
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.execute("DELETE FROM media_item_refs")
            conn.execute("DELETE FROM scan_result_groups")


class HiddenGroupStore:
    """Group ids the user asked not to see again."""

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def get_all(self) -> set[str]:
        with self.conn_mgr.connection(exclusive=False) as conn:
            rows = conn.execute("SELECT unique_id FROM hidden_groups").fetchall()
        return {row['unique_id'] for row in rows}

    def add(self, unique_id: str):
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO hidden_groups (unique_id) VALUES (?)",
                (unique_id,),
            )

    def clear(self):
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.execute("DELETE FROM hidden_groups")


__all__ = [
    'UNSCANNABLE_SUMMARY_ID',
    'ScanResultStore',
    'HiddenGroupStore',
    'current_timestamp_ms',
]
