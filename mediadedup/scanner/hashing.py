"""
Hashing module for the scanner package.

Provides the two fingerprint families used by the engines:
- exact-content signatures (prefix hash for videos, pixel hash for images)
- perceptual difference hashes (dHash) with an optional colour histogram

Per-file failures never raise: they are logged and reported as None so the
caller can record the file as unscannable and carry on.
"""

from __future__ import annotations

import hashlib
import re
from typing import Optional

from ..config import (
    DHASH_HEIGHT,
    DHASH_HEX_LENGTH,
    DHASH_WIDTH,
    HISTOGRAM_BINS,
    IMAGE_SIGNATURE_PREFIX,
    PIXEL_HASH_SIZE,
    VIDEO_PREFIX_BYTES,
    VIDEO_SIGNATURE_PREFIX,
)
from ..models import MediaItem
from .dependencies import Image, imagehash, np, _logger
from .storage import MediaStorage

# ITU-R BT.601 luma weights
LUMINANCE_WEIGHTS = np.array([0.299, 0.587, 0.114])

_PHASH_PATTERN = re.compile(rf'^[0-9a-fA-F]{{{DHASH_HEX_LENGTH}}}$')


def calculate_partial_signature(
    item: MediaItem,
    storage: MediaStorage,
    bytes_to_read: int = VIDEO_PREFIX_BYTES,
) -> Optional[str]:
    """
    Sign a file from the SHA-256 of its first `bytes_to_read` bytes.

    Used for videos, where hashing the whole file would dominate scan time.

    Args:
        item: File to sign
        storage: Storage used to read the bytes
        bytes_to_read: Size of the prefix to hash

    Returns:
        Namespaced signature, or None on error
    """
    hasher = hashlib.sha256()
    try:
        for chunk in storage.read_bytes(item, limit=bytes_to_read):
            hasher.update(chunk)
    except Exception as e:
        _logger.debug(f"Partial file hashing failed for {item.id}: {e}")
        return None
    return f"{VIDEO_SIGNATURE_PREFIX}{hasher.hexdigest()}"


def calculate_pixel_signature(
    item: MediaItem,
    storage: MediaStorage,
    max_size: int = PIXEL_HASH_SIZE,
) -> Optional[str]:
    """
    Sign an image from the SHA-256 of a downscaled RGBA pixel buffer.

    Alpha is kept so images that differ only in transparency never share a
    signature. The mode and buffer dimensions are hashed along with the
    pixels so that two thumbnails with the same bytes but a different shape
    cannot collide.

    Args:
        item: Image to sign
        storage: Storage used to decode the image
        max_size: Longest edge of the decoded thumbnail

    Returns:
        Namespaced signature, or None on error
    """
    try:
        image = storage.load_image(item, max_size=max_size, mode='RGBA')
        hasher = hashlib.sha256()
        hasher.update(f"{image.mode}:{image.width}x{image.height}:".encode('ascii'))
        hasher.update(image.tobytes())
    except Exception as e:
        _logger.debug(f"Pixel hashing failed for {item.id}: {e}")
        return None
    return f"{IMAGE_SIGNATURE_PREFIX}{hasher.hexdigest()}"


def calculate_signature(item: MediaItem, storage: MediaStorage) -> Optional[str]:
    """Compute the exact-content signature appropriate for the item's type."""
    if item.is_video:
        return calculate_partial_signature(item, storage)
    return calculate_pixel_signature(item, storage)


def calculate_dhash(image: 'Image.Image') -> str:
    """
    Calculate the difference hash (dHash) of an image.

    1. Resize to a 9x8 grid so each row yields 8 neighbour comparisons.
    2. Convert each pixel to luminance (0.299 R + 0.587 G + 0.114 B).
    3. Emit 1 where the right neighbour is strictly brighter, else 0.
    4. Encode the 64 bits row-major as 16 zero-padded hex characters.

    Robust to brightness/contrast shifts and small resizes. Rotation and
    mirroring are not compensated.

    Args:
        image: Decoded image in any mode

    Returns:
        16-character lowercase hex string
    """
    small = image.convert('RGB').resize((DHASH_WIDTH, DHASH_HEIGHT), Image.Resampling.LANCZOS)
    luminance = np.asarray(small, dtype=np.float64) @ LUMINANCE_WEIGHTS
    diff = luminance[:, 1:] > luminance[:, :-1]
    return str(imagehash.ImageHash(diff))


def is_valid_phash(phash: Optional[str]) -> bool:
    """True if phash is a canonical-length hex string."""
    return bool(phash) and _PHASH_PATTERN.match(phash) is not None


def hamming_distance(hash1: str, hash2: str) -> int:
    """
    Count the differing bits between two perceptual hashes.

    Args:
        hash1: First hash (16 hex characters)
        hash2: Second hash (16 hex characters)

    Returns:
        Number of differing bits, or -1 if either hash is malformed
    """
    if not is_valid_phash(hash1) or not is_valid_phash(hash2):
        return -1
    try:
        return int(imagehash.hex_to_hash(hash1) - imagehash.hex_to_hash(hash2))
    except (ValueError, TypeError):
        return -1


def calculate_histogram(image: 'Image.Image', bins: int = HISTOGRAM_BINS) -> str:
    """
    Calculate a normalised per-channel RGB histogram.

    Returns:
        3 * bins comma-separated values; each channel sums to 1
    """
    counts = np.asarray(image.convert('RGB').histogram(), dtype=np.float64)
    binned = counts.reshape(3, bins, 256 // bins).sum(axis=2)
    totals = binned.sum(axis=1, keepdims=True)
    totals[totals == 0] = 1.0
    normalised = (binned / totals).flatten()
    return ','.join(f"{value:.4f}" for value in normalised)


def histogram_similarity(hist1: Optional[str], hist2: Optional[str]) -> float:
    """
    Histogram intersection of two serialised histograms, in [0, 1].

    Returns 0.0 when either histogram is missing or malformed.
    """
    if not hist1 or not hist2:
        return 0.0
    try:
        a = np.array([float(v) for v in hist1.split(',')])
        b = np.array([float(v) for v in hist2.split(',')])
    except ValueError:
        return 0.0
    if a.shape != b.shape or a.size % 3:
        return 0.0
    return float(np.minimum(a, b).sum() / 3)


def calculate_perceptual_fingerprint(
    item: MediaItem,
    storage: MediaStorage,
) -> Optional[tuple[str, Optional[str]]]:
    """
    Compute (dHash, histogram) for an image, or (dHash, None) for a video.

    Videos are fingerprinted from a representative frame; the resulting
    hash is interchangeable with image hashes.

    Returns:
        Fingerprint tuple, or None on error
    """
    try:
        if item.is_video:
            frame = storage.load_video_frame(item)
            return calculate_dhash(frame), None

        image = storage.load_image(item, max_size=PIXEL_HASH_SIZE)
        return calculate_dhash(image), calculate_histogram(image)
    except Exception as e:
        _logger.debug(f"Perceptual hash calculation failed for {item.id}: {e}")
        return None


__all__ = [
    'LUMINANCE_WEIGHTS',
    'calculate_partial_signature',
    'calculate_pixel_signature',
    'calculate_signature',
    'calculate_dhash',
    'is_valid_phash',
    'hamming_distance',
    'calculate_histogram',
    'histogram_similarity',
    'calculate_perceptual_fingerprint',
]
