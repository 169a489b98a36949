"""
SQLite database backend for mediadedup.

Provides the durable stores behind incremental scans:
- Signature cache (exact-content fingerprints)
- Perceptual hash cache (dHash + optional histogram)
- Similarity cluster cache
- Scan result snapshot, hidden groups and unreadable files

Every fingerprint is stored with the file's (mtime, size) at hashing time so
that stale entries are detected and recomputed.

Public API:
- CacheStores: Facade owning all stores for one database file
- CacheError: Raised on any database failure
"""

from __future__ import annotations

from .connection import CacheError, ConnectionManager
from .core import CacheStores
from .clusters import SimilarGroupCache
from .fingerprints import PerceptualHashCache, SignatureCache
from .scan_results import HiddenGroupStore, ScanResultStore, UNSCANNABLE_SUMMARY_ID
from .unreadable import UnreadableFileCache, UnreadableFileEntry


__all__ = [
    'CacheError',
    'CacheStores',
    'ConnectionManager',
    'SignatureCache',
    'PerceptualHashCache',
    'SimilarGroupCache',
    'ScanResultStore',
    'HiddenGroupStore',
    'UnreadableFileCache',
    'UnreadableFileEntry',
    'UNSCANNABLE_SUMMARY_ID',
]
