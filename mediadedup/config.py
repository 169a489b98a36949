"""
Configuration constants for mediadedup.

This module contains all configurable settings including:
- Supported image and video extensions
- Chunking and read-size limits for the hashing pipeline
- Perceptual hash geometry and similarity threshold levels
"""

import os

# Image extensions decoded through Pillow (HEIC/HEIF need pillow-heif)
IMAGE_EXTENSIONS = {
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.tif',
    '.heic', '.heif', '.avif',
    '.ico', '.pbm', '.pgm', '.ppm', '.pnm', '.tga', '.jp2',
}

VIDEO_EXTENSIONS = {
    '.mp4', '.m4v', '.mov', '.mkv', '.avi', '.webm', '.3gp', '.3g2',
    '.wmv', '.flv', '.mpg', '.mpeg', '.ts', '.mts', '.m2ts',
}

# Items are hashed, cached and checked for cancellation in chunks of this size
SCAN_CHUNK_SIZE = 100

# Videos are signed from a bounded prefix to keep latency flat on large files
VIDEO_PREFIX_BYTES = 256 * 1024
READ_BUFFER_SIZE = 4096

# Images are signed from a decoded thumbnail bounded to this edge length
PIXEL_HASH_SIZE = 256

# Signature namespaces keep video and image signatures from colliding
VIDEO_SIGNATURE_PREFIX = 'video-partial-'
IMAGE_SIGNATURE_PREFIX = 'image-pixel-'

# dHash grid: each of the 8 rows yields 8 neighbour comparisons (64 bits)
DHASH_WIDTH = 9
DHASH_HEIGHT = 8
DHASH_HEX_LENGTH = (DHASH_HEIGHT * (DHASH_WIDTH - 1)) // 4

# Histogram bins per RGB channel for the secondary image descriptor
HISTOGRAM_BINS = 8

# Maximum Hamming distance (out of 64 bits) for two items to be similar
SIMILARITY_THRESHOLDS = {
    'strict': 3,
    'balanced': 5,
    'loose': 8,
}
DEFAULT_THRESHOLD_LEVEL = 'balanced'
DEFAULT_THRESHOLD = SIMILARITY_THRESHOLDS[DEFAULT_THRESHOLD_LEVEL]

# Default number of parallel workers for hashing
DEFAULT_WORKERS = 4

# SQLite cache database location
CACHE_DIR = os.path.join(os.path.expanduser('~'), '.mediadedup')
CACHE_DB_FILE = os.path.join(CACHE_DIR, 'cache.db')
