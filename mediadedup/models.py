"""
Data models for mediadedup.

Contains dataclasses for media snapshots, cache entries and the two kinds of
scan result groups (exact duplicates and visually similar media).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from .utils.formatters import format_size


@dataclass(frozen=True)
class MediaItem:
    """
    Immutable snapshot of a media file as supplied by the media index.

    Attributes:
        id: Absolute file path, used as the stable file identity
        display_name: File name shown to the user
        size: Size in bytes
        date_modified: Last modification time in milliseconds since epoch
        is_video: True for videos, False for images
        mime_type: MIME type reported by the index (may be empty)
        width: Pixel width if known
        height: Pixel height if known
    """
    id: str
    display_name: str = ""
    size: int = 0
    date_modified: int = 0
    is_video: bool = False
    mime_type: str = ""
    width: int = 0
    height: int = 0

    @property
    def is_image(self) -> bool:
        return not self.is_video

    @property
    def modified_seconds(self) -> int:
        """Modification time truncated to whole seconds."""
        return self.date_modified // 1000

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'display_name': self.display_name,
            'size': self.size,
            'size_formatted': format_size(self.size),
            'date_modified': self.date_modified,
            'is_video': self.is_video,
            'mime_type': self.mime_type,
            'width': self.width,
            'height': self.height,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MediaItem':
        """Create MediaItem from dictionary."""
        return cls(
            id=data['id'],
            display_name=data.get('display_name') or os.path.basename(data['id']),
            size=data.get('size', 0),
            date_modified=data.get('date_modified', 0),
            is_video=data.get('is_video', False),
            mime_type=data.get('mime_type', ''),
            width=data.get('width', 0),
            height=data.get('height', 0),
        )


@dataclass
class SignatureCacheEntry:
    """Last known exact-content signature of a file."""
    file_path: str
    last_modified: int
    size: int
    signature: str

    def matches(self, item: MediaItem) -> bool:
        """True if the entry was computed against the item's current state."""
        return is_same_file_state(self.last_modified, self.size, item)


@dataclass
class PHashCacheEntry:
    """
    Last known perceptual hash of a file.

    The histogram is only generated for images as a second similarity
    factor; it is None for videos.
    """
    file_path: str
    last_modified: int
    size: int
    phash: str
    histogram: Optional[str] = None

    def matches(self, item: MediaItem) -> bool:
        return is_same_file_state(self.last_modified, self.size, item)


@dataclass(frozen=True)
class SimilarGroupEntry:
    """Membership of one file in a cached similarity cluster."""
    group_id: str
    file_path: str


def is_same_file_state(last_modified: int, size: int, item: MediaItem) -> bool:
    """
    Compare a recorded (mtime, size) pair with a live item.

    Modification times are compared at second granularity everywhere in the
    package, which tolerates sub-second drift between the media index and
    the filesystem.
    """
    return last_modified // 1000 == item.modified_seconds and size == item.size


@dataclass
class ExactGroup:
    """
    A group of byte-identical files.

    Attributes:
        signature: Content signature shared by every member
        items: Members, sorted oldest first
        size_per_file: Size of each member in bytes
    """
    signature: str
    items: list[MediaItem] = field(default_factory=list)
    size_per_file: int = 0

    group_type = "EXACT"

    @property
    def unique_id(self) -> str:
        return self.signature

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def potential_savings(self) -> int:
        """Bytes reclaimed by keeping one copy."""
        return max(0, self.item_count - 1) * self.size_per_file

    def with_updated_items(self, items: list[MediaItem]) -> 'ExactGroup':
        return replace(self, items=list(items))

    def to_dict(self) -> dict:
        return {
            'unique_id': self.unique_id,
            'group_type': self.group_type,
            'signature': self.signature,
            'size_per_file': self.size_per_file,
            'item_count': self.item_count,
            'potential_savings': self.potential_savings,
            'potential_savings_formatted': format_size(self.potential_savings),
            'items': [item.to_dict() for item in self.items],
        }


@dataclass
class SimilarGroup:
    """
    A group of visually similar images or videos.

    Attributes:
        phash: Perceptual hash of the cluster representative
        items: Members, sorted oldest first
    """
    phash: str
    items: list[MediaItem] = field(default_factory=list)

    group_type = "SIMILAR"

    @property
    def unique_id(self) -> str:
        return self.phash

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def potential_savings(self) -> int:
        """Bytes reclaimed by keeping only the largest member."""
        if self.item_count < 2:
            return 0
        sizes = sorted(item.size for item in self.items)
        return sum(sizes[:-1])

    def with_updated_items(self, items: list[MediaItem]) -> 'SimilarGroup':
        return replace(self, items=list(items))

    def to_dict(self) -> dict:
        return {
            'unique_id': self.unique_id,
            'group_type': self.group_type,
            'phash': self.phash,
            'item_count': self.item_count,
            'potential_savings': self.potential_savings,
            'potential_savings_formatted': format_size(self.potential_savings),
            'items': [item.to_dict() for item in self.items],
        }


ScanResultGroup = Union[ExactGroup, SimilarGroup]


@dataclass
class PersistedScanResult:
    """Validated scan results loaded from the result store."""
    groups: list[ScanResultGroup]
    unscannable_files: list[str]
    timestamp: int

    def to_dict(self) -> dict:
        return {
            'groups': [g.to_dict() for g in self.groups],
            'unscannable_files': list(self.unscannable_files),
            'timestamp': self.timestamp,
        }


@dataclass
class CacheStats:
    """Statistics about cache usage during a scan."""
    cache_hits: int = 0
    cache_misses: int = 0
    total_files: int = 0

    @property
    def hit_rate(self) -> float:
        """Return cache hit rate as percentage."""
        if self.total_files == 0:
            return 0.0
        return (self.cache_hits / self.total_files) * 100


@dataclass
class DuplicateScanResult:
    """Output of the exact-duplicate engine."""
    groups: list[ExactGroup]
    skipped_paths: list[str]
    stats: CacheStats = field(default_factory=CacheStats)


@dataclass
class SimilarScanResult:
    """Output of the similarity engine."""
    groups: list[SimilarGroup]
    skipped_paths: list[str]
    stats: CacheStats = field(default_factory=CacheStats)


def sort_oldest_first(items: list[MediaItem]) -> list[MediaItem]:
    """Deterministic member order used by both engines."""
    return sorted(items, key=lambda item: (item.date_modified, item.id))
