"""
Scanner package for mediadedup.

Provides the two detection engines and everything they need: file discovery,
the storage abstraction, fingerprint functions and chunked parallel hashing.

Public API:
- find_media_files: Discover images and videos in directories
- ExactDuplicateFinder: Group byte-identical media by content signature
- SimilarityFinder: Cluster visually similar media by dHash distance
- MediaStorage / FileSystemStorage: Read access to media content
- CancellationToken / ScanCancelled: Cooperative scan cancellation
- calculate_signature, calculate_dhash, hamming_distance: Fingerprints
- has_heif_support / has_video_support: Optional feature detection
"""

from __future__ import annotations

from .file_discovery import find_media_files, media_item_from_path
from .storage import FileSystemStorage, MediaStorage, UnsupportedMediaError
from .cancellation import CancellationToken, ScanCancelled
from .hashing import (
    calculate_dhash,
    calculate_histogram,
    calculate_perceptual_fingerprint,
    calculate_signature,
    hamming_distance,
    histogram_similarity,
    is_valid_phash,
)
from .exact import ExactDuplicateFinder
from .similarity import SimilarityFinder

from .dependencies import HAS_HEIF_SUPPORT, HAS_VIDEO_SUPPORT


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


def has_video_support() -> bool:
    """Check if video frame decoding is available."""
    return HAS_VIDEO_SUPPORT


__all__ = [
    # File discovery
    'find_media_files',
    'media_item_from_path',
    # Storage
    'MediaStorage',
    'FileSystemStorage',
    'UnsupportedMediaError',
    # Cancellation
    'CancellationToken',
    'ScanCancelled',
    # Fingerprints
    'calculate_signature',
    'calculate_dhash',
    'calculate_histogram',
    'calculate_perceptual_fingerprint',
    'hamming_distance',
    'histogram_similarity',
    'is_valid_phash',
    # Engines
    'ExactDuplicateFinder',
    'SimilarityFinder',
    # Feature detection
    'has_heif_support',
    'has_video_support',
]
