"""
Dependency initialization for the scanner package.

Handles PIL, imagehash, numpy, HEIC/HEIF support, OpenCV (video frames) and
tqdm imports with proper error handling and configuration.
"""

from __future__ import annotations

import warnings
import logging
from typing import Optional, Any

# Module-level logger
_logger = logging.getLogger(__name__)

# Check for required dependencies
try:
    from PIL import Image
    import imagehash
    import numpy as np
except ImportError:
    raise ImportError(
        "Required packages not found!\n"
        "Install with: pip install Pillow imagehash numpy"
    )

# Register HEIC/HEIF support via pillow-heif
# This must be done before opening any HEIC files
HAS_HEIF_SUPPORT = False
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HAS_HEIF_SUPPORT = True
    _logger.debug("HEIC/HEIF support enabled via pillow-heif")
except ImportError:
    _logger.warning(
        "pillow-heif not installed - HEIC/HEIF files will not be processed. "
        "Install with: pip install pillow-heif"
    )

# Video frame decoding is optional; without it videos still get exact
# (byte-prefix) signatures but are left out of the similarity pass
HAS_VIDEO_SUPPORT = False
cv2: Optional[Any] = None
try:
    import cv2 as _cv2_import
    cv2 = _cv2_import
    HAS_VIDEO_SUPPORT = True
except ImportError:
    _logger.debug(
        "opencv not installed - video similarity disabled. "
        "Install with: pip install opencv-python-headless"
    )

# Increase PIL's decompression bomb limit for large images
Image.MAX_IMAGE_PIXELS = 500_000_000  # 500 megapixels

warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)

# Optional: tqdm for progress bars
HAS_TQDM = False
_tqdm_class: Optional[Any] = None

try:
    from tqdm import tqdm as _tqdm_import
    HAS_TQDM = True
    _tqdm_class = _tqdm_import
except ImportError:
    pass


__all__ = [
    'Image',
    'imagehash',
    'np',
    'cv2',
    'HAS_HEIF_SUPPORT',
    'HAS_VIDEO_SUPPORT',
    'HAS_TQDM',
    '_tqdm_class',
    '_logger',
]
