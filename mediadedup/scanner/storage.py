"""
Storage abstraction for the scanner package.

Engines never touch the filesystem directly: they read raw bytes and decoded
pixel buffers through a MediaStorage, which keeps them testable and lets a
caller plug in other backends (archives, remote stores, content providers).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Optional

from ..config import READ_BUFFER_SIZE
from ..models import MediaItem
from .dependencies import Image, HAS_VIDEO_SUPPORT, cv2


class UnsupportedMediaError(Exception):
    """Raised when a storage backend cannot decode a media type."""


class MediaStorage(ABC):
    """Read access to media content."""

    @abstractmethod
    def read_bytes(self, item: MediaItem, limit: Optional[int] = None) -> Iterator[bytes]:
        """
        Stream the raw bytes of a file.

        Args:
            item: File to read
            limit: Stop after this many bytes; None reads the whole file

        Yields:
            Consecutive byte chunks
        """

    @abstractmethod
    def load_image(
        self, item: MediaItem, max_size: Optional[int] = None, mode: str = 'RGB'
    ) -> 'Image.Image':
        """
        Decode an image to the given mode, optionally downscaled to fit
        max_size x max_size.

        Raises:
            OSError: If the file cannot be read or decoded
        """

    @abstractmethod
    def load_video_frame(self, item: MediaItem) -> 'Image.Image':
        """
        Decode a representative RGB frame of a video.

        Raises:
            UnsupportedMediaError: If video decoding is unavailable
            OSError: If the file cannot be read or decoded
        """

    @property
    def supports_video_frames(self) -> bool:
        return True


class FileSystemStorage(MediaStorage):
    """MediaStorage for files on the local filesystem (MediaItem.id is a path)."""

    def __init__(self, buffer_size: int = READ_BUFFER_SIZE):
        self.buffer_size = buffer_size

    def read_bytes(self, item: MediaItem, limit: Optional[int] = None) -> Iterator[bytes]:
        remaining = limit
        with open(item.id, 'rb') as f:
            while remaining is None or remaining > 0:
                to_read = self.buffer_size if remaining is None else min(self.buffer_size, remaining)
                chunk = f.read(to_read)
                if not chunk:
                    break
                if remaining is not None:
                    remaining -= len(chunk)
                yield chunk

    def load_image(
        self, item: MediaItem, max_size: Optional[int] = None, mode: str = 'RGB'
    ) -> 'Image.Image':
        with Image.open(item.id) as img:
            # Force load to detect truncated/corrupt images early
            img.load()
            decoded = img.convert(mode)
        if max_size is not None:
            decoded.thumbnail((max_size, max_size))
        return decoded

    @property
    def supports_video_frames(self) -> bool:
        return HAS_VIDEO_SUPPORT

    def load_video_frame(self, item: MediaItem) -> 'Image.Image':
        if not HAS_VIDEO_SUPPORT or cv2 is None:
            raise UnsupportedMediaError("Video decoding requires opencv-python-headless")

        capture = cv2.VideoCapture(item.id)
        try:
            if not capture.isOpened():
                raise OSError(f"Cannot open video: {item.id}")

            frame_count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
            if frame_count > 1:
                capture.set(cv2.CAP_PROP_POS_FRAMES, frame_count // 2)

            ok, frame = capture.read()
            if not ok or frame is None:
                raise OSError(f"Cannot decode a frame from: {item.id}")
        finally:
            capture.release()

        return Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))


__all__ = ['MediaStorage', 'FileSystemStorage', 'UnsupportedMediaError']
