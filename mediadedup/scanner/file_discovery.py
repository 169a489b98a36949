"""
File discovery module for the scanner package.

Builds MediaItem snapshots for the images and videos under a directory, with
support for recursive scanning and HEIC/HEIF format detection.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

from ..config import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS
from ..models import MediaItem
from .dependencies import HAS_HEIF_SUPPORT


def media_item_from_path(path: str | Path) -> MediaItem:
    """
    Snapshot a single file as a MediaItem.

    Raises:
        OSError: If the file cannot be stat'ed
    """
    filepath = Path(path)
    stat = filepath.stat()
    ext_lower = filepath.suffix.lower()
    return MediaItem(
        id=str(filepath),
        display_name=filepath.name,
        size=stat.st_size,
        date_modified=stat.st_mtime_ns // 1_000_000,
        is_video=ext_lower in VIDEO_EXTENSIONS,
        mime_type=mimetypes.guess_type(filepath.name)[0] or "",
    )


def find_media_files(root_path: str | Path, recursive: bool = True) -> list[MediaItem]:
    """
    Find all image and video files in the given directory.

    Args:
        root_path: Directory path to search
        recursive: If True, search subdirectories recursively

    Returns:
        MediaItem snapshots, ordered by path

    Notes:
        - Automatically filters out HEIC/HEIF files if pillow-heif is not installed
        - Handles symlinks by resolving to canonical paths
        - Deduplicates files that may be encountered via multiple paths
        - Files that vanish or cannot be stat'ed mid-walk are skipped
    """
    root = Path(root_path)

    # Determine which extensions to scan based on HEIF support
    extensions_to_scan = IMAGE_EXTENSIONS | VIDEO_EXTENSIONS
    if not HAS_HEIF_SUPPORT:
        extensions_to_scan = {ext for ext in extensions_to_scan if ext not in {'.heic', '.heif'}}

    items = []
    seen = set()  # Track resolved paths to avoid duplicates

    # Choose iterator based on recursive flag
    iterator = root.rglob('*') if recursive else root.glob('*')

    for filepath in iterator:
        if filepath.suffix.lower() not in extensions_to_scan or not filepath.is_file():
            continue

        resolved = filepath.resolve()
        if str(resolved) in seen:
            continue
        seen.add(str(resolved))

        try:
            items.append(media_item_from_path(resolved))
        except OSError:
            continue

    items.sort(key=lambda item: item.id)
    return items


__all__ = ['find_media_files', 'media_item_from_path']
