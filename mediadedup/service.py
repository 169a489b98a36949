"""
Duplicate scan service.

Runs the exact and similarity engines over a list of media items on one
background thread, publishes progress through a ScanStateHolder and persists
the outcome through the DuplicatesRepository.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

from .database import CacheError, CacheStores
from .models import MediaItem, ScanResultGroup
from .repository import DuplicatesRepository
from .scanner import (
    CancellationToken,
    ExactDuplicateFinder,
    MediaStorage,
    ScanCancelled,
    SimilarityFinder,
)
from .state import DuplicateScanState, ScanStateHolder
from .user_config import ScanSettings, get_user_config


logger = logging.getLogger(__name__)


def _merge_paths(*path_lists: Sequence[str]) -> list[str]:
    """Concatenate path lists, keeping first-seen order and dropping repeats."""
    return list(dict.fromkeys(path for paths in path_lists for path in paths))


class DuplicateScanService:
    """
    Coordinates one scan at a time.

    Usage:
        service = DuplicateScanService(CacheStores())
        service.start_scan(find_media_files("/photos"))
        ...
        print(service.state.to_status_dict())
    """

    def __init__(
        self,
        stores: CacheStores,
        storage: Optional[MediaStorage] = None,
        config: Optional[ScanSettings] = None,
    ):
        """
        Args:
            stores: Durable stores used by the engines and the repository
            storage: Media storage shared by both engines
            config: Scan tunables; read from the user configuration if None
        """
        self.stores = stores
        self.storage = storage
        self.config = config or get_user_config().scan_settings()
        self.repository = DuplicatesRepository(stores)
        self.state_holder = ScanStateHolder()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> DuplicateScanState:
        return self.state_holder.current

    def start_scan(
        self,
        items: Sequence[MediaItem],
        scan_exact: bool = True,
        scan_similar: bool = True,
    ) -> threading.Thread:
        """
        Start a scan on a background thread.

        Returns:
            The started thread

        Raises:
            ScanInProgressError: If a scan is already running
        """
        token = self._begin(scan_exact, scan_similar)
        thread = threading.Thread(
            target=self._execute,
            args=(list(items), scan_exact, scan_similar, token),
            name='mediadedup-scan',
            daemon=True,
        )
        self._thread = thread
        thread.start()
        return thread

    def run_scan(
        self,
        items: Sequence[MediaItem],
        scan_exact: bool = True,
        scan_similar: bool = True,
    ) -> DuplicateScanState:
        """
        Run a scan on the calling thread.

        Returns:
            The final state (COMPLETE, CANCELLED or ERROR)

        Raises:
            ScanInProgressError: If a scan is already running
        """
        token = self._begin(scan_exact, scan_similar)
        self._execute(list(items), scan_exact, scan_similar, token)
        return self.state

    def cancel(self) -> bool:
        """
        Request cancellation of the running scan.

        The scan stops at the next chunk boundary. Returns False if no scan
        was running.
        """
        if not self.state_holder.request_cancel():
            return False
        logger.info("Scan cancellation requested")
        return True

    def wait(self, timeout: Optional[float] = None):
        """Block until the background scan thread, if any, finishes."""
        if self._thread is not None:
            self._thread.join(timeout)

    def load_cached_results(self) -> DuplicateScanState:
        """Show the last valid persisted snapshot unless a scan is running."""
        if not self.state.state.is_active:
            result = self.repository.load_validated()
            if result is not None:
                self.state_holder.set_results(result.groups, result.unscannable_files, result.timestamp)
        return self.state

    def on_files_deleted(self, paths: Sequence[str]) -> list[ScanResultGroup]:
        """Propagate deletions to the caches, the stored snapshot and the shown results."""
        deleted = set(paths)
        remaining = self.repository.on_files_deleted(deleted)

        current = self.state
        if not current.state.is_active:
            shown = [
                group.with_updated_items([i for i in group.items if i.id not in deleted])
                for group in current.results
            ]
            self.state_holder.set_results(
                [group for group in shown if group.item_count > 1],
                [path for path in current.unscannable_files if path not in deleted],
                current.timestamp,
            )
        return remaining

    def hide_group(self, unique_id: str):
        """Hide a group now and in every future result."""
        self.repository.hide_group(unique_id)
        current = self.state
        if not current.state.is_active:
            self.state_holder.set_results(
                [group for group in current.results if group.unique_id != unique_id],
                current.unscannable_files,
                current.timestamp,
            )

    def _begin(self, scan_exact: bool, scan_similar: bool) -> CancellationToken:
        if not scan_exact and not scan_similar:
            raise ValueError("At least one of scan_exact or scan_similar must be enabled")
        token = CancellationToken()
        self.state_holder.set_scanning('exact' if scan_exact else 'similar', cancel_token=token)
        return token

    def _execute(
        self,
        items: list[MediaItem],
        scan_exact: bool,
        scan_similar: bool,
        token: CancellationToken,
    ):
        """Scan body; always leaves the holder in a terminal state."""
        passes = int(scan_exact) + int(scan_similar)
        total = max(1, len(items) * passes)

        def progress_reporter(offset: int, phase: str):
            def report(count: int):
                self.state_holder.update_progress((offset + count) / total, phase)
            return report

        groups: list[ScanResultGroup] = []
        unscannable: list[str] = []
        offset = 0

        logger.info(f"Starting scan of {len(items):,} files (exact={scan_exact}, similar={scan_similar})")
        try:
            if scan_exact:
                finder = ExactDuplicateFinder(
                    self.stores.signatures,
                    storage=self.storage,
                    max_workers=self.config.workers,
                    chunk_size=self.config.chunk_size,
                )
                exact = finder.find_duplicates(
                    items,
                    on_progress=progress_reporter(offset, 'exact'),
                    cancel_token=token,
                )
                groups.extend(exact.groups)
                unscannable = _merge_paths(unscannable, exact.skipped_paths)
                offset += len(items)

            if scan_similar:
                finder = SimilarityFinder(
                    self.stores.phashes,
                    self.stores.similar_groups,
                    storage=self.storage,
                    threshold=self.config.threshold,
                    histogram_threshold=self.config.histogram_threshold,
                    max_workers=self.config.workers,
                    chunk_size=self.config.chunk_size,
                    include_videos=self.config.include_videos,
                )
                similar = finder.find_similar(
                    items,
                    on_progress=progress_reporter(offset, 'similar'),
                    cancel_token=token,
                )
                groups.extend(similar.groups)
                unscannable = _merge_paths(unscannable, similar.skipped_paths)

            hidden = self.repository.get_hidden_group_ids()
            visible = [group for group in groups if group.unique_id not in hidden]

            timestamp = self.repository.save(visible, unscannable)
            self.repository.update_unreadable_files(unscannable)
            self.state_holder.set_complete(visible, unscannable, timestamp)
            logger.info(f"Scan complete: {len(visible):,} groups, {len(unscannable):,} unscannable files")

        except ScanCancelled:
            self.state_holder.set_cancelled(groups, unscannable)
            logger.info(f"Scan cancelled with {len(groups):,} partial groups")

        except Exception as e:
            logger.exception(f"Scan failed: {e}")
            self._fail(str(e) or type(e).__name__)

    def _fail(self, message: str):
        """Enter ERROR, surfacing the last valid persisted snapshot if any."""
        try:
            fallback = self.repository.load_validated()
        except CacheError as e:
            logger.warning(f"Could not load previous results: {e}")
            fallback = None

        if fallback is None:
            self.state_holder.set_error(message)
        else:
            self.state_holder.set_error(
                message,
                fallback.groups,
                fallback.unscannable_files,
                fallback.timestamp,
            )


__all__ = ['DuplicateScanService']
