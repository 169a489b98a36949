"""
Database connection management with thread safety.

Provides ConnectionManager for thread-safe SQLite operations with WAL mode,
and CacheError, the single error type raised by every cache store.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


class CacheError(Exception):
    """Raised when the cache database cannot be read or written."""


class ConnectionManager:
    """
    Manages SQLite connections with thread-safety.

    Provides context manager for database connections with:
    - Thread-safe write operations via lock
    - WAL mode for better read/write concurrency
    - Transaction management (BEGIN/COMMIT/ROLLBACK)
    - sqlite3 errors surfaced as CacheError
    """

    def __init__(self, db_path: str):
        """
        Initialize connection manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._write_lock = threading.Lock()
        self._ensure_directory()

    def _ensure_directory(self):
        """Ensure the directory for the database file exists."""
        db_path = Path(self.db_path).resolve()
        db_dir = db_path.parent

        if db_dir and db_dir != db_path:
            try:
                db_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise CacheError(f"Cannot create cache directory {db_dir}: {e}") from e

    @contextmanager
    def connection(self, exclusive: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        The whole block runs in one transaction; any exception rolls it back,
        so a failed write leaves the previous cache state untouched.

        Args:
            exclusive: If True, acquire write lock for thread safety

        Yields:
            sqlite3.Connection with row factory and WAL mode enabled

        Raises:
            CacheError: If the database cannot be opened or a statement fails
        """
        if exclusive:
            self._write_lock.acquire()

        try:
            try:
                conn = sqlite3.connect(
                    self.db_path,
                    timeout=30.0,
                    isolation_level=None,
                    check_same_thread=False,
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA foreign_keys=ON")
                conn.execute("BEGIN")
            except sqlite3.Error as e:
                raise CacheError(f"Cannot open cache database {self.db_path}: {e}") from e

            try:
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                conn.execute("ROLLBACK")
                raise CacheError(f"Cache database operation failed: {e}") from e
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()
        finally:
            if exclusive:
                self._write_lock.release()


__all__ = ['CacheError', 'ConnectionManager']
