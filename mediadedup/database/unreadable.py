"""
Cache of files that could not be read during a scan.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .connection import ConnectionManager
from .utils import delete_in_chunks


@dataclass
class UnreadableFileEntry:
    """A file that failed to scan, with the state it had at the time."""
    file_path: str
    last_modified: int
    size: int


class UnreadableFileCache:
    """Durable list of unreadable files keyed by path."""

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def get_all(self) -> list[UnreadableFileEntry]:
        with self.conn_mgr.connection(exclusive=False) as conn:
            rows = conn.execute("SELECT * FROM unreadable_file_cache").fetchall()
        return [
            UnreadableFileEntry(row['file_path'], row['last_modified'], row['size'])
            for row in rows
        ]

    def upsert(self, entries: Iterable[UnreadableFileEntry]) -> int:
        params = [(e.file_path, e.last_modified, e.size) for e in entries]
        if not params:
            return 0
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.executemany("""
                INSERT OR REPLACE INTO unreadable_file_cache (file_path, last_modified, size)
                VALUES (?, ?, ?)
            """, params)
        return len(params)

    def delete_by_paths(self, paths: Iterable[str]) -> int:
        paths = list(paths)
        if not paths:
            return 0
        with self.conn_mgr.connection(exclusive=True) as conn:
            return delete_in_chunks(conn, 'unreadable_file_cache', 'file_path', paths)

    def clear(self):
        with self.conn_mgr.connection(exclusive=True) as conn:
            conn.execute("DELETE FROM unreadable_file_cache")


__all__ = ['UnreadableFileEntry', 'UnreadableFileCache']
