"""
Shared utilities for database operations.

Provides helpers for chunked IN-clause queries and row conversion so that
every store reads and writes entries the same way.
"""

from __future__ import annotations

import sqlite3
from typing import Iterable, Iterator, Sequence, TypeVar

from ..models import MediaItem, PHashCacheEntry, SignatureCacheEntry

T = TypeVar('T')

# SQLite variable limit constant - used for batch operations
# SQLite has a limit of 999 variables, we use 500 for safety
CHUNK_SIZE = 500


def chunked(values: Sequence[T], size: int = CHUNK_SIZE) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most `size` values."""
    for i in range(0, len(values), size):
        yield values[i:i + size]


def placeholders(values: Sequence) -> str:
    """Return '?,?,...' with one marker per value."""
    return ','.join('?' * len(values))


def delete_in_chunks(
    conn: sqlite3.Connection,
    table: str,
    column: str,
    values: Iterable[str],
) -> int:
    """
    Delete every row of `table` whose `column` is in `values`.

    Args:
        conn: Active connection (inside a write transaction)
        table: Table name
        column: Key column name
        values: Keys to delete

    Returns:
        Number of rows removed
    """
    keys = list(dict.fromkeys(values))
    removed = 0
    for chunk in chunked(keys):
        result = conn.execute(
            f"DELETE FROM {table} WHERE {column} IN ({placeholders(chunk)})",
            chunk,
        )
        removed += result.rowcount
    return removed


def row_to_signature_entry(row: sqlite3.Row) -> SignatureCacheEntry:
    return SignatureCacheEntry(
        file_path=row['file_path'],
        last_modified=row['last_modified'],
        size=row['size'],
        signature=row['signature'],
    )


def row_to_phash_entry(row: sqlite3.Row) -> PHashCacheEntry:
    return PHashCacheEntry(
        file_path=row['file_path'],
        last_modified=row['last_modified'],
        size=row['size'],
        phash=row['phash'],
        histogram=row['histogram'],
    )


def row_to_media_item(row: sqlite3.Row) -> MediaItem:
    """Convert a media_item_refs row back into a MediaItem snapshot."""
    return MediaItem(
        id=row['media_item_id'],
        display_name=row['display_name'] or "",
        mime_type=row['mime_type'] or "",
        date_modified=row['date_modified'],
        size=row['size'],
        is_video=bool(row['is_video']),
        width=row['width'] or 0,
        height=row['height'] or 0,
    )


__all__ = [
    'CHUNK_SIZE',
    'chunked',
    'placeholders',
    'delete_in_chunks',
    'row_to_signature_entry',
    'row_to_phash_entry',
    'row_to_media_item',
]
