"""
State management for background duplicate scans.

Holds the state of the one scan that may run at a time, so that the API and
CLI can observe progress, results and errors from any thread.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .models import ScanResultGroup
from .scanner.cancellation import CancellationToken


class ScanInProgressError(Exception):
    """Raised when a scan is started while another one is still running."""


class BackgroundScanState(str, Enum):
    IDLE = 'idle'
    SCANNING = 'scanning'
    CANCELLING = 'cancelling'
    COMPLETE = 'complete'
    CANCELLED = 'cancelled'
    ERROR = 'error'

    @property
    def is_active(self) -> bool:
        return self in (BackgroundScanState.SCANNING, BackgroundScanState.CANCELLING)


@dataclass(frozen=True)
class DuplicateScanState:
    """
    Snapshot of the current scan.

    Attributes:
        state: Lifecycle state
        progress: Fraction of engine work done, 0.0 to 1.0
        phase: Human-readable name of the running step
        results: Groups to display (final, partial or last persisted)
        unscannable_files: Paths that could not be read
        error_message: Set when state is ERROR
        timestamp: Time (ms) of the results, if they were persisted
    """
    state: BackgroundScanState = BackgroundScanState.IDLE
    progress: float = 0.0
    phase: str = ''
    results: list[ScanResultGroup] = field(default_factory=list)
    unscannable_files: list[str] = field(default_factory=list)
    error_message: Optional[str] = None
    timestamp: Optional[int] = None

    def to_status_dict(self) -> dict:
        """Return current status for API response."""
        return {
            'state': self.state.value,
            'progress': round(self.progress, 4),
            'phase': self.phase,
            'group_count': len(self.results),
            'unscannable_count': len(self.unscannable_files),
            'error_message': self.error_message,
            'timestamp': self.timestamp,
        }

    def to_results_dict(self) -> dict:
        """Return groups data for API response."""
        return {
            'state': self.state.value,
            'groups': [g.to_dict() for g in self.results],
            'unscannable_files': list(self.unscannable_files),
            'timestamp': self.timestamp,
        }


class ScanStateHolder:
    """
    Thread-safe owner of the current DuplicateScanState.

    Every transition replaces the immutable snapshot under a lock, so readers
    always see a consistent state. The running scan's cancellation token is
    handed over on entering SCANNING, so a cancel request never reaches a
    stale token.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = DuplicateScanState()
        self._cancel_token: Optional[CancellationToken] = None

    @property
    def current(self) -> DuplicateScanState:
        with self._lock:
            return self._state

    def set_scanning(self, phase: str = '', cancel_token: Optional[CancellationToken] = None):
        """
        Enter SCANNING from any non-active state.

        Args:
            phase: Name of the first step
            cancel_token: Token that request_cancel() will cancel

        Raises:
            ScanInProgressError: If a scan is already scanning or cancelling
        """
        with self._lock:
            if self._state.state.is_active:
                raise ScanInProgressError("A scan is already running")
            self._state = DuplicateScanState(state=BackgroundScanState.SCANNING, phase=phase)
            self._cancel_token = cancel_token

    def update_progress(self, progress: float, phase: Optional[str] = None):
        """Record progress; ignored unless a scan is active."""
        with self._lock:
            if not self._state.state.is_active:
                return
            self._state = replace(
                self._state,
                progress=min(1.0, max(0.0, progress)),
                phase=self._state.phase if phase is None else phase,
            )

    def request_cancel(self) -> bool:
        """
        Move SCANNING to CANCELLING and cancel the scan's token.

        Returns False if nothing was running.
        """
        with self._lock:
            if self._state.state != BackgroundScanState.SCANNING:
                return False
            self._state = replace(self._state, state=BackgroundScanState.CANCELLING)
            if self._cancel_token is not None:
                self._cancel_token.cancel()
            return True

    def set_complete(self, results, unscannable_files, timestamp: Optional[int] = None):
        with self._lock:
            self._state = DuplicateScanState(
                state=BackgroundScanState.COMPLETE,
                progress=1.0,
                phase='complete',
                results=list(results),
                unscannable_files=list(unscannable_files),
                timestamp=timestamp,
            )

    def set_cancelled(self, partial_results=(), unscannable_files=()):
        with self._lock:
            self._state = DuplicateScanState(
                state=BackgroundScanState.CANCELLED,
                progress=self._state.progress,
                phase='cancelled',
                results=list(partial_results),
                unscannable_files=list(unscannable_files),
            )

    def set_error(self, message: str, fallback_results=(), fallback_unscannable=(),
                  timestamp: Optional[int] = None):
        with self._lock:
            self._state = DuplicateScanState(
                state=BackgroundScanState.ERROR,
                progress=self._state.progress,
                phase='error',
                results=list(fallback_results),
                unscannable_files=list(fallback_unscannable),
                error_message=message,
                timestamp=timestamp,
            )

    def set_results(self, results, unscannable_files, timestamp: Optional[int] = None):
        """Replace the displayed results without changing the lifecycle state."""
        with self._lock:
            self._state = replace(
                self._state,
                results=list(results),
                unscannable_files=list(unscannable_files),
                timestamp=timestamp,
            )

    def reset(self):
        """Return to IDLE unless a scan is active."""
        with self._lock:
            if not self._state.state.is_active:
                self._state = DuplicateScanState()


__all__ = [
    'BackgroundScanState',
    'DuplicateScanState',
    'ScanInProgressError',
    'ScanStateHolder',
]
