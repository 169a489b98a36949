"""
Duplicates repository.

Sits between the scan service and the durable stores. Its main job is to
decide whether a persisted snapshot can still be shown: every member of every
stored group is checked against the filesystem, and anything that changed,
moved or vanished since the scan is dropped before the results are used.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

from .database import CacheStores, UnreadableFileEntry
from .models import MediaItem, PersistedScanResult, ScanResultGroup


logger = logging.getLogger(__name__)


def is_item_unchanged(item: MediaItem) -> bool:
    """
    True if the file still exists with the size and mtime it was scanned with.

    Modification times are compared in whole seconds.
    """
    try:
        stat = os.stat(item.id)
    except OSError:
        return False
    return int(stat.st_mtime) == item.modified_seconds and stat.st_size == item.size


def prune_groups(
    groups: Iterable[ScanResultGroup],
    keep,
) -> list[ScanResultGroup]:
    """
    Filter each group's members with `keep`, discarding groups left with
    fewer than two members. Group order is preserved.
    """
    pruned: list[ScanResultGroup] = []
    for group in groups:
        items = [item for item in group.items if keep(item)]
        if len(items) < 2:
            continue
        if len(items) == len(group.items):
            pruned.append(group)
        else:
            pruned.append(group.with_updated_items(items))
    return pruned


class DuplicatesRepository:
    """
    Validated access to persisted scan results.

    Usage:
        repository = DuplicatesRepository(CacheStores())
        result = repository.load_validated()
        if result is not None:
            show(result.groups)
    """

    def __init__(self, stores: CacheStores):
        self.stores = stores

    def load_validated(self) -> Optional[PersistedScanResult]:
        """
        Load the last snapshot, revalidated against the filesystem.

        Members that no longer exist or whose (mtime, size) changed are
        removed; groups left with one member are dropped, and so are groups
        the user has hidden.

        Returns:
            PersistedScanResult, or None if nothing valid is stored

        Raises:
            CacheError: If the result store cannot be read
        """
        loaded = self.stores.scan_results.load_latest()
        if loaded is None:
            return None

        groups, unscannable, timestamp = loaded
        hidden = self.stores.hidden_groups.get_all()

        validated = prune_groups(
            (g for g in groups if g.unique_id not in hidden),
            is_item_unchanged,
        )
        dropped = len(groups) - len(validated)
        if dropped:
            logger.debug(f"Dropped {dropped} stored groups that are hidden or no longer valid")

        if not validated and not unscannable:
            return None
        return PersistedScanResult(
            groups=validated,
            unscannable_files=unscannable,
            timestamp=timestamp,
        )

    def has_valid_cached_results(self) -> bool:
        """
        True if at least one stored group still has two unchanged members.

        Stops at the first valid group instead of validating the whole
        snapshot.
        """
        loaded = self.stores.scan_results.load_latest()
        if loaded is None:
            return False

        hidden = self.stores.hidden_groups.get_all()
        for group in loaded[0]:
            if group.unique_id in hidden:
                continue
            valid = 0
            for item in group.items:
                if is_item_unchanged(item):
                    valid += 1
                    if valid >= 2:
                        return True
        return False

    def save(
        self,
        groups: list[ScanResultGroup],
        unscannable_files: Iterable[str],
        timestamp: Optional[int] = None,
    ) -> int:
        """Persist a snapshot, replacing the previous one. Returns its timestamp."""
        saved_at = self.stores.scan_results.save(groups, unscannable_files, timestamp)
        logger.info(f"Saved {len(groups)} result groups")
        return saved_at

    def clear_scan_results(self):
        """Forget the persisted snapshot (caches are kept)."""
        self.stores.scan_results.clear()

    def on_files_deleted(self, paths: Iterable[str]) -> list[ScanResultGroup]:
        """
        React to files deleted outside of a scan.

        Fingerprints and clusters involving the paths are invalidated, the
        paths are removed from the stored snapshot and the pruned snapshot is
        saved again under its original timestamp.

        Args:
            paths: Identities of the deleted files

        Returns:
            The groups remaining in the stored snapshot
        """
        deleted = set(paths)
        if not deleted:
            return []

        self.stores.invalidate_paths(list(deleted))
        self.stores.unreadable_files.delete_by_paths(deleted)

        loaded = self.stores.scan_results.load_latest()
        if loaded is None:
            return []

        groups, unscannable, timestamp = loaded
        remaining = prune_groups(groups, lambda item: item.id not in deleted)
        remaining_unscannable = [path for path in unscannable if path not in deleted]

        self.stores.scan_results.save(remaining, remaining_unscannable, timestamp)
        logger.info(
            f"Removed {len(deleted)} deleted files from stored results, "
            f"{len(remaining)} groups remain"
        )
        return remaining

    def hide_group(self, unique_id: str):
        """Hide a group from future results."""
        self.stores.hidden_groups.add(unique_id)

    def get_hidden_group_ids(self) -> set[str]:
        return self.stores.hidden_groups.get_all()

    def update_unreadable_files(self, paths: Iterable[str]):
        """
        Record the files that failed in the latest scan.

        Each path is stored with its current (mtime, size) so a later change
        to the file can be told apart. Paths that cannot be stat'ed are
        stored with zeros.
        """
        entries = []
        for path in paths:
            try:
                stat = os.stat(path)
                entries.append(UnreadableFileEntry(path, stat.st_mtime_ns // 1_000_000, stat.st_size))
            except OSError:
                entries.append(UnreadableFileEntry(path, 0, 0))

        self.stores.unreadable_files.clear()
        self.stores.unreadable_files.upsert(entries)

    def get_unreadable_files(self) -> list[str]:
        return sorted(entry.file_path for entry in self.stores.unreadable_files.get_all())

    def clear_unreadable_files(self):
        self.stores.unreadable_files.clear()


__all__ = ['DuplicatesRepository', 'is_item_unchanged', 'prune_groups']
