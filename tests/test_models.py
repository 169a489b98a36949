"""
Unit tests for models module.
"""

import pytest
from mediadedup.models import (
    CacheStats,
    ExactGroup,
    MediaItem,
    PHashCacheEntry,
    PersistedScanResult,
    SignatureCacheEntry,
    SimilarGroup,
    is_same_file_state,
    sort_oldest_first,
)
from mediadedup.utils.formatters import format_size


def item(path, size=1000, modified=1_600_000_000_000, **kwargs):
    return MediaItem(id=path, display_name=path.rsplit('/', 1)[-1], size=size,
                     date_modified=modified, **kwargs)


class TestFormatSize:
    """Test format_size function."""

    def test_bytes(self):
        assert format_size(500) == "500.0 B"

    def test_kilobytes(self):
        assert format_size(1024) == "1.0 KB"

    def test_megabytes(self):
        assert format_size(1024 * 1024) == "1.0 MB"

    def test_zero(self):
        assert format_size(0) == "0.0 B"


class TestMediaItem:
    """Test MediaItem dataclass."""

    def test_properties(self):
        media = item("/photos/2020/cat.jpg", modified=1_600_000_000_999)
        assert media.is_image
        assert media.modified_seconds == 1_600_000_000

    def test_video_flag(self):
        assert not item("/v/clip.mp4", is_video=True).is_image

    def test_frozen_and_hashable(self):
        a = item("/a.jpg")
        b = item("/a.jpg")
        assert a == b
        assert len({a, b}) == 1
        with pytest.raises(Exception):
            a.size = 5

    def test_dict_round_trip(self):
        original = item("/a.jpg", mime_type="image/jpeg", width=10, height=20)
        data = original.to_dict()
        assert data['size_formatted'] == "1000.0 B"
        assert MediaItem.from_dict(data) == original

    def test_from_dict_defaults_display_name(self):
        restored = MediaItem.from_dict({'id': '/x/y/z.png'})
        assert restored.display_name == "z.png"
        assert restored.size == 0


class TestFileState:
    """Test staleness comparison."""

    def test_same_second_matches(self):
        media = item("/a.jpg", modified=1_600_000_000_100)
        assert is_same_file_state(1_600_000_000_900, 1000, media)

    def test_different_second_is_stale(self):
        media = item("/a.jpg", modified=1_600_000_001_000)
        assert not is_same_file_state(1_600_000_000_999, 1000, media)

    def test_different_size_is_stale(self):
        media = item("/a.jpg")
        assert not is_same_file_state(media.date_modified, 999, media)

    def test_cache_entries_use_file_state(self):
        media = item("/a.jpg")
        assert SignatureCacheEntry("/a.jpg", media.date_modified, 1000, "sig").matches(media)
        assert not PHashCacheEntry("/a.jpg", media.date_modified, 1, "0" * 16).matches(media)


class TestExactGroup:
    """Test ExactGroup dataclass."""

    def test_identity_and_savings(self):
        group = ExactGroup("image-pixel-abc", [item("/a.jpg"), item("/b.jpg"), item("/c.jpg")], 1000)
        assert group.unique_id == "image-pixel-abc"
        assert group.group_type == "EXACT"
        assert group.item_count == 3
        assert group.potential_savings == 2000

    def test_with_updated_items(self):
        group = ExactGroup("sig", [item("/a.jpg"), item("/b.jpg")], 1000)
        pruned = group.with_updated_items([item("/a.jpg")])
        assert pruned.item_count == 1
        assert group.item_count == 2
        assert pruned.signature == "sig"

    def test_to_dict(self):
        group = ExactGroup("sig", [item("/a.jpg"), item("/b.jpg")], 1000)
        data = group.to_dict()
        assert data['group_type'] == "EXACT"
        assert data['item_count'] == 2
        assert len(data['items']) == 2


class TestSimilarGroup:
    """Test SimilarGroup dataclass."""

    def test_savings_keep_largest(self):
        group = SimilarGroup("ffffffffffffffff", [
            item("/a.jpg", size=100), item("/b.jpg", size=300), item("/c.jpg", size=200),
        ])
        assert group.unique_id == "ffffffffffffffff"
        assert group.group_type == "SIMILAR"
        assert group.potential_savings == 300

    def test_single_member_saves_nothing(self):
        assert SimilarGroup("0" * 16, [item("/a.jpg")]).potential_savings == 0


class TestHelpers:
    """Test CacheStats, PersistedScanResult and ordering."""

    def test_hit_rate(self):
        assert CacheStats(cache_hits=75, cache_misses=25, total_files=100).hit_rate == 75.0
        assert CacheStats().hit_rate == 0.0

    def test_sort_oldest_first_breaks_ties_by_path(self):
        items = [item("/b.jpg", modified=2), item("/c.jpg", modified=1), item("/a.jpg", modified=2)]
        assert [i.id for i in sort_oldest_first(items)] == ["/c.jpg", "/a.jpg", "/b.jpg"]

    def test_persisted_result_to_dict(self):
        result = PersistedScanResult(
            groups=[ExactGroup("sig", [item("/a.jpg"), item("/b.jpg")], 1000)],
            unscannable_files=["/bad.png"],
            timestamp=123,
        )
        data = result.to_dict()
        assert data['timestamp'] == 123
        assert data['unscannable_files'] == ["/bad.png"]
        assert data['groups'][0]['unique_id'] == "sig"
