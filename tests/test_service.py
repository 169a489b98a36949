"""
Tests for scan state management and DuplicateScanService.
"""

import pytest

from mediadedup.database import CacheError
from mediadedup.models import ExactGroup, MediaItem
from mediadedup.scanner import CancellationToken, FileSystemStorage
from mediadedup.service import DuplicateScanService
from mediadedup.state import BackgroundScanState, ScanInProgressError, ScanStateHolder
from mediadedup.user_config import ScanSettings


SETTINGS = ScanSettings(threshold=5, workers=2, chunk_size=4, include_videos=False)


class CallbackStorage(FileSystemStorage):
    """Filesystem storage that runs a callback before every read."""

    def __init__(self, on_read):
        super().__init__()
        self.on_read = on_read

    def read_bytes(self, item, limit=None):
        self.on_read()
        yield from super().read_bytes(item, limit)

    def load_image(self, item, max_size=None, mode='RGB'):
        self.on_read()
        return super().load_image(item, max_size, mode)


@pytest.fixture
def service(stores):
    return DuplicateScanService(stores, config=SETTINGS)


class TestScanStateHolder:
    """Test ScanStateHolder transitions."""

    def test_initial_state(self):
        state = ScanStateHolder().current
        assert state.state == BackgroundScanState.IDLE
        assert state.progress == 0.0
        assert state.results == []

    def test_scan_lifecycle(self):
        holder = ScanStateHolder()
        holder.set_scanning('exact')
        holder.update_progress(0.5, 'similar')
        assert holder.current.progress == 0.5
        assert holder.current.phase == 'similar'

        group = ExactGroup("sig", [MediaItem("/a"), MediaItem("/b")], 10)
        holder.set_complete([group], ["/bad"], timestamp=3)
        state = holder.current
        assert state.state == BackgroundScanState.COMPLETE
        assert state.progress == 1.0
        assert state.results == [group]
        assert state.timestamp == 3

    def test_progress_is_clamped_and_ignored_when_idle(self):
        holder = ScanStateHolder()
        holder.update_progress(0.7)
        assert holder.current.progress == 0.0

        holder.set_scanning()
        holder.update_progress(1.5)
        assert holder.current.progress == 1.0

    def test_second_scan_rejected_while_active(self):
        holder = ScanStateHolder()
        holder.set_scanning()
        with pytest.raises(ScanInProgressError):
            holder.set_scanning()

        holder.request_cancel()
        with pytest.raises(ScanInProgressError):
            holder.set_scanning()

        holder.set_cancelled()
        holder.set_scanning()
        assert holder.current.state == BackgroundScanState.SCANNING

    def test_request_cancel_only_from_scanning(self):
        holder = ScanStateHolder()
        assert not holder.request_cancel()

        holder.set_scanning()
        assert holder.request_cancel()
        assert holder.current.state == BackgroundScanState.CANCELLING
        assert not holder.request_cancel()

    def test_request_cancel_cancels_handed_over_token(self):
        holder = ScanStateHolder()
        first, second = CancellationToken(), CancellationToken()

        holder.set_scanning(cancel_token=first)
        holder.set_cancelled()
        holder.set_scanning(cancel_token=second)
        assert holder.request_cancel()

        assert second.is_cancelled
        assert not first.is_cancelled

    def test_error_keeps_fallback(self):
        holder = ScanStateHolder()
        holder.set_scanning()
        holder.set_error("boom", ["g"], ["/bad"], timestamp=9)
        state = holder.current
        assert state.state == BackgroundScanState.ERROR
        assert state.error_message == "boom"
        assert state.results == ["g"]
        assert state.timestamp == 9

    def test_reset(self):
        holder = ScanStateHolder()
        holder.set_scanning()
        holder.reset()
        assert holder.current.state == BackgroundScanState.SCANNING

        holder.set_complete([], [])
        holder.reset()
        assert holder.current.state == BackgroundScanState.IDLE

    def test_status_dict(self):
        holder = ScanStateHolder()
        holder.set_scanning('exact')
        status = holder.current.to_status_dict()
        assert status['state'] == 'scanning'
        assert status['phase'] == 'exact'
        assert status['group_count'] == 0


class TestDuplicateScanService:
    """Test DuplicateScanService."""

    def test_run_scan_finds_both_kinds(self, service, sample_items):
        state = service.run_scan(list(sample_items.values()))

        assert state.state == BackgroundScanState.COMPLETE
        assert state.progress == 1.0
        types = sorted(g.group_type for g in state.results)
        assert types == ["EXACT", "EXACT", "SIMILAR", "SIMILAR"]
        assert state.unscannable_files == [sample_items['corrupted'].id]
        assert state.timestamp is not None

    def test_results_are_persisted(self, service, stores, sample_items):
        service.run_scan(list(sample_items.values()))

        reloaded = DuplicateScanService(stores, config=SETTINGS)
        state = reloaded.load_cached_results()
        assert len(state.results) == 4
        assert state.state == BackgroundScanState.IDLE
        assert service.repository.get_unreadable_files() == [sample_items['corrupted'].id]

    def test_exact_only(self, service, sample_items):
        state = service.run_scan(list(sample_items.values()), scan_similar=False)
        assert {g.group_type for g in state.results} == {"EXACT"}
        assert state.unscannable_files == []

    def test_similar_only(self, service, sample_items):
        state = service.run_scan(list(sample_items.values()), scan_exact=False)
        assert {g.group_type for g in state.results} == {"SIMILAR"}

    def test_no_pass_enabled(self, service, sample_items):
        with pytest.raises(ValueError):
            service.run_scan(list(sample_items.values()), scan_exact=False, scan_similar=False)
        assert service.state.state == BackgroundScanState.IDLE

    def test_hidden_groups_filtered(self, service, sample_items):
        first = service.run_scan(list(sample_items.values()))
        hidden_id = first.results[0].unique_id

        service.hide_group(hidden_id)
        assert hidden_id not in [g.unique_id for g in service.state.results]

        second = service.run_scan(list(sample_items.values()))
        assert hidden_id not in [g.unique_id for g in second.results]
        assert len(second.results) == 3

    def test_background_scan(self, service, sample_items):
        thread = service.start_scan(list(sample_items.values()))
        thread.join(timeout=60)
        assert not thread.is_alive()
        assert service.state.state == BackgroundScanState.COMPLETE

    def test_scan_rejected_while_running(self, service, sample_items):
        service.state_holder.set_scanning()
        with pytest.raises(ScanInProgressError):
            service.start_scan(list(sample_items.values()))

    def test_cancel_without_scan(self, service):
        assert not service.cancel()

    def test_cancel_right_after_scan_starts(self, service, sample_items, monkeypatch):
        set_scanning = service.state_holder.set_scanning

        def set_scanning_then_cancel(*args, **kwargs):
            set_scanning(*args, **kwargs)
            assert service.cancel()

        monkeypatch.setattr(service.state_holder, 'set_scanning', set_scanning_then_cancel)
        state = service.run_scan(list(sample_items.values()))

        assert state.state == BackgroundScanState.CANCELLED
        assert service.stores.scan_results.load_latest() is None

    def test_cancel_during_scan(self, stores, sample_items):
        holder = {}

        def cancel_on_read():
            holder['service'].cancel()

        settings = ScanSettings(threshold=5, workers=1, chunk_size=1, include_videos=False)
        service = DuplicateScanService(stores, storage=CallbackStorage(cancel_on_read), config=settings)
        holder['service'] = service

        state = service.run_scan(list(sample_items.values()))

        assert state.state == BackgroundScanState.CANCELLED
        assert state.results == []
        # The chunk that was running when cancel arrived is still cached
        assert len(stores.signatures.get_all()) == 1
        assert stores.scan_results.load_latest() is None

    def test_failure_falls_back_to_persisted_results(self, service, stores, sample_items, monkeypatch):
        service.run_scan(list(sample_items.values()))

        def broken():
            raise CacheError("disk I/O error")

        monkeypatch.setattr(stores.signatures, 'get_all', broken)
        state = service.run_scan(list(sample_items.values()))

        assert state.state == BackgroundScanState.ERROR
        assert "disk I/O error" in state.error_message
        assert len(state.results) == 4

    def test_failure_without_previous_results(self, service, stores, sample_items, monkeypatch):
        def broken():
            raise CacheError("disk I/O error")

        monkeypatch.setattr(stores.signatures, 'get_all', broken)
        state = service.run_scan(list(sample_items.values()))

        assert state.state == BackgroundScanState.ERROR
        assert state.results == []

    def test_on_files_deleted_updates_shown_results(self, service, sample_items):
        service.run_scan(list(sample_items.values()))

        remaining = service.on_files_deleted([sample_items['clip1'].id])

        assert len(remaining) == 3
        assert len(service.state.results) == 3
        shown = {item.id for g in service.state.results for item in g.items}
        assert sample_items['clip1'].id not in shown
