"""
Database schema initialization and migrations.

Provides schema versioning and table creation for the cache database.
"""

from __future__ import annotations

import sqlite3


# Schema version - increment when changing table structure or the meaning of
# stored values (2: image signatures hash RGBA instead of RGB)
SCHEMA_VERSION = 2

_TABLES = (
    'signature_cache',
    'similar_group_cache',
    'phash_cache',
    'media_item_refs',
    'scan_result_groups',
    'unreadable_file_cache',
    'hidden_groups',
)


def initialize_schema(conn: sqlite3.Connection) -> None:
    """
    Initialize database schema with versioning support.

    Creates tables and indexes if they don't exist. Drops and recreates
    tables if schema version has changed.

    Args:
        conn: Active database connection

    Tables created:
        - meta: Schema version tracking
        - signature_cache: Exact-content signatures keyed by file path
        - phash_cache: Perceptual hashes and histograms keyed by file path
        - similar_group_cache: Cluster key to member path relation
        - scan_result_groups: Persisted result groups plus unscannable summary
        - media_item_refs: Ordered members of each persisted group
        - unreadable_file_cache: Files that could not be read, with their state
        - hidden_groups: Group ids the user chose to hide
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """)

    result = conn.execute(
        "SELECT value FROM meta WHERE key = 'schema_version'"
    ).fetchone()

    current_version = int(result['value']) if result else 0

    if current_version < SCHEMA_VERSION:
        for table in _TABLES:
            conn.execute(f"DROP TABLE IF EXISTS {table}")

    conn.execute("""
        CREATE TABLE IF NOT EXISTS signature_cache (
            file_path TEXT PRIMARY KEY,
            last_modified INTEGER NOT NULL,
            size INTEGER NOT NULL,
            signature TEXT NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS phash_cache (
            file_path TEXT PRIMARY KEY,
            last_modified INTEGER NOT NULL,
            size INTEGER NOT NULL,
            phash TEXT NOT NULL,
            histogram TEXT
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS similar_group_cache (
            group_id TEXT NOT NULL,
            file_path TEXT NOT NULL,
            PRIMARY KEY (group_id, file_path)
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_similar_group_cache_file_path
        ON similar_group_cache(file_path)
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS scan_result_groups (
            unique_id TEXT PRIMARY KEY,
            group_type TEXT NOT NULL,
            signature TEXT,
            phash TEXT,
            size_per_file INTEGER,
            unscannable_file_paths TEXT,
            position INTEGER NOT NULL,
            timestamp INTEGER NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS media_item_refs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            group_id TEXT NOT NULL
                REFERENCES scan_result_groups(unique_id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            media_item_id TEXT NOT NULL,
            display_name TEXT,
            mime_type TEXT,
            date_modified INTEGER NOT NULL,
            size INTEGER NOT NULL,
            is_video INTEGER NOT NULL,
            width INTEGER,
            height INTEGER
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_media_item_refs_group_id
        ON media_item_refs(group_id)
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS unreadable_file_cache (
            file_path TEXT PRIMARY KEY,
            last_modified INTEGER NOT NULL,
            size INTEGER NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS hidden_groups (
            unique_id TEXT PRIMARY KEY,
            hidden_at REAL DEFAULT (strftime('%s', 'now'))
        )
    """)

    conn.execute("""
        INSERT OR REPLACE INTO meta (key, value)
        VALUES ('schema_version', ?)
    """, (str(SCHEMA_VERSION),))


__all__ = ['SCHEMA_VERSION', 'initialize_schema']
