"""
Pytest configuration and shared fixtures for test suite.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from PIL import Image
import numpy as np
import os

from mediadedup.database import CacheStores
from mediadedup.scanner import media_item_from_path


def gradient_image(width=90, height=80, offset=0, channel=None) -> Image.Image:
    """
    Left-to-right brightness ramp; its dHash is all ones.

    If channel is given (0, 1 or 2) only that RGB channel carries the ramp.
    """
    row = np.linspace(offset, offset + 200, width).astype(np.uint8)
    plane = np.tile(row, (height, 1))
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    if channel is None:
        pixels[:, :, :] = plane[:, :, None]
    else:
        pixels[:, :, channel] = plane
    return Image.fromarray(pixels)


def noise_image(seed: int, scale: int = 10) -> Image.Image:
    """Random 9x8 block pattern, upscaled so dHash sees one value per block."""
    blocks = np.random.RandomState(seed).randint(0, 256, (8, 9, 3)).astype(np.uint8)
    return Image.fromarray(blocks).resize((9 * scale, 8 * scale), Image.Resampling.NEAREST)


def dhash_image(phash: str) -> Image.Image:
    """
    9x8 grey image whose dHash is exactly phash.

    At the dHash grid size no resampling happens, so every bit is decided by
    one pair of neighbouring pixels: a step up for 1, a step down for 0.
    """
    bits = bin(int(phash, 16))[2:].zfill(64)
    pixels = np.zeros((8, 9), dtype=np.uint8)
    for row in range(8):
        value = 128
        pixels[row, 0] = value
        for col in range(8):
            value += 10 if bits[row * 8 + col] == '1' else -10
            pixels[row, col + 1] = value
    return Image.fromarray(pixels)


def set_mtime(path, seconds: float):
    """Set both atime and mtime of a file."""
    os.utime(path, (seconds, seconds))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def temp_cache_db(temp_dir):
    """Create a temporary database file for cache tests."""
    db_path = temp_dir / "cache" / "test_cache.db"
    return str(db_path)


@pytest.fixture
def stores(temp_cache_db):
    """CacheStores backed by a fresh temporary database."""
    return CacheStores(temp_cache_db)


@pytest.fixture
def media_dir(temp_dir):
    """Directory that holds the generated media files."""
    path = temp_dir / "media"
    path.mkdir()
    return path


@pytest.fixture
def make_item():
    """Snapshot a file on disk as a MediaItem."""
    def _make(path):
        return media_item_from_path(path)
    return _make


@pytest.fixture
def sample_media(media_dir):
    """
    Create a set of sample media files for testing.

    Returns:
        dict with paths to:
        - identical1.png, identical2.png (exact duplicates)
        - gradient.png, gradient_bright.png, gradient_large.png (visually
          similar, not byte-identical)
        - noise_a.png, noise_b.png (unrelated patterns)
        - corrupted.png (not an image)
        - clip1.mp4, clip2.mp4 (same 256 KiB prefix, different tails)
        - clip3.mp4 (same size as the clips, different prefix)
    """
    media = {}
    # Distinct, whole-second modification times keep the oldest-first order stable
    mtime = 1_600_000_000

    def add(name, writer):
        nonlocal mtime
        path = media_dir / name
        writer(path)
        set_mtime(path, mtime)
        mtime += 10
        media[path.stem] = str(path)

    pattern = noise_image(seed=7)
    add("identical1.png", lambda p: pattern.save(p, 'PNG'))
    add("identical2.png", lambda p: pattern.save(p, 'PNG'))

    add("gradient.png", lambda p: gradient_image().save(p, 'PNG'))
    add("gradient_bright.png", lambda p: gradient_image(offset=20).save(p, 'PNG'))
    add("gradient_large.png", lambda p: gradient_image(180, 160).save(p, 'PNG'))

    add("noise_a.png", lambda p: noise_image(seed=1).save(p, 'PNG'))
    add("noise_b.png", lambda p: noise_image(seed=2).save(p, 'PNG'))

    add("corrupted.png", lambda p: p.write_bytes(b"not an image" * 10))

    prefix = bytes(range(256)) * 1024  # 256 KiB
    add("clip1.mp4", lambda p: p.write_bytes(prefix + b"A" * 1000))
    add("clip2.mp4", lambda p: p.write_bytes(prefix + b"B" * 1000))
    add("clip3.mp4", lambda p: p.write_bytes(b"\x00" * len(prefix) + b"A" * 1000))

    return media


@pytest.fixture
def sample_items(sample_media, make_item):
    """MediaItems for every sample file, keyed like sample_media."""
    return {name: make_item(path) for name, path in sample_media.items()}
