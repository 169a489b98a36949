"""
mediadedup
==========
Finds exact duplicate and visually similar images and videos.

Features:
- Exact detection: size grouping + content signatures (video byte prefix,
  image pixel buffer)
- Similarity detection: 64-bit dHash with Hamming distance clustering
- Incremental re-scans: fingerprints and clusters cached in SQLite and
  reused while a file's (mtime, size) is unchanged
- Persisted results, revalidated against the disk before display
- Cancellable background scans with progress reporting
- CLI and JSON API
"""

__version__ = "1.0.0"

from .models import (
    MediaItem,
    ExactGroup,
    SimilarGroup,
    PersistedScanResult,
    CacheStats,
)
from .config import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, SIMILARITY_THRESHOLDS
from .database import CacheStores, CacheError
from .scanner import (
    find_media_files,
    ExactDuplicateFinder,
    SimilarityFinder,
    FileSystemStorage,
    MediaStorage,
    CancellationToken,
    ScanCancelled,
    calculate_dhash,
    hamming_distance,
)
from .repository import DuplicatesRepository
from .state import BackgroundScanState, ScanInProgressError
from .service import DuplicateScanService

__all__ = [
    "MediaItem",
    "ExactGroup",
    "SimilarGroup",
    "PersistedScanResult",
    "CacheStats",
    "IMAGE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "SIMILARITY_THRESHOLDS",
    "CacheStores",
    "CacheError",
    "find_media_files",
    "ExactDuplicateFinder",
    "SimilarityFinder",
    "FileSystemStorage",
    "MediaStorage",
    "CancellationToken",
    "ScanCancelled",
    "calculate_dhash",
    "hamming_distance",
    "DuplicatesRepository",
    "BackgroundScanState",
    "ScanInProgressError",
    "DuplicateScanService",
]
