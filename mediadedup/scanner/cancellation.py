"""
Cooperative cancellation for scans.

Engines poll the token between fixed-size chunks of work, never per file,
so at most one chunk of hashing is wasted when a scan is cancelled.
"""

from __future__ import annotations

import threading


class ScanCancelled(Exception):
    """Raised by an engine once it notices cancellation at a chunk boundary."""


class CancellationToken:
    """Thread-safe cancellation flag shared by a scan and its controller."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        """Raise ScanCancelled if cancellation was requested."""
        if self._event.is_set():
            raise ScanCancelled("Scan cancelled")


__all__ = ['CancellationToken', 'ScanCancelled']
