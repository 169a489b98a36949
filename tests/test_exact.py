"""
Tests for the exact-duplicate engine.
"""

from dataclasses import replace

import pytest

from mediadedup.models import SignatureCacheEntry
from mediadedup.scanner import (
    CancellationToken,
    ExactDuplicateFinder,
    ScanCancelled,
    media_item_from_path,
)
from tests.conftest import gradient_image, noise_image, set_mtime


def paths_of(group):
    return [item.id for item in group.items]


class TestExactDuplicateFinder:
    """Test ExactDuplicateFinder."""

    def test_finds_identical_images_and_videos(self, stores, sample_items):
        finder = ExactDuplicateFinder(stores.signatures)
        result = finder.find_duplicates(list(sample_items.values()))

        groups = {tuple(paths_of(g)) for g in result.groups}
        assert (sample_items['identical1'].id, sample_items['identical2'].id) in groups
        assert (sample_items['clip1'].id, sample_items['clip2'].id) in groups
        assert len(result.groups) == 2

    def test_groups_sorted_by_reclaimable_size(self, stores, sample_items):
        result = ExactDuplicateFinder(stores.signatures).find_duplicates(list(sample_items.values()))
        sizes = [g.item_count * g.size_per_file for g in result.groups]
        assert sizes == sorted(sizes, reverse=True)
        # The 257 KB clips outweigh the small PNGs
        assert result.groups[0].items[0].is_video

    def test_members_oldest_first(self, stores, sample_items):
        set_mtime(sample_items['identical1'].id, 1_700_000_000)
        items = [media_item_from_path(sample_items[name].id) for name in ("identical1", "identical2")]

        result = ExactDuplicateFinder(stores.signatures).find_duplicates(items)
        assert paths_of(result.groups[0]) == [sample_items['identical2'].id, sample_items['identical1'].id]

    def test_three_identical_files_form_one_group(self, stores, media_dir, make_item):
        pattern = noise_image(seed=11)
        for name, mtime in (("c.png", 1_600_000_300), ("a.png", 1_600_000_100), ("b.png", 1_600_000_200)):
            pattern.save(media_dir / name, 'PNG')
            set_mtime(media_dir / name, mtime)
        items = [make_item(media_dir / name) for name in ("c.png", "a.png", "b.png")]

        result = ExactDuplicateFinder(stores.signatures).find_duplicates(items)

        assert len(result.groups) == 1
        group = result.groups[0]
        assert group.item_count == 3
        assert paths_of(group) == [str(media_dir / n) for n in ("a.png", "b.png", "c.png")]
        assert group.size_per_file == items[0].size
        assert all(item.size == group.size_per_file for item in group.items)

    def test_transparency_only_difference_not_grouped(self, stores, media_dir, make_item):
        for name, alpha in (("opaque.tif", 255), ("faded.tif", 10)):
            image = gradient_image(40, 40).convert('RGBA')
            image.putalpha(alpha)
            image.save(media_dir / name, 'TIFF')
        items = [make_item(media_dir / "opaque.tif"), make_item(media_dir / "faded.tif")]
        assert items[0].size == items[1].size

        result = ExactDuplicateFinder(stores.signatures).find_duplicates(items)
        assert result.groups == []
        assert result.skipped_paths == []

    def test_empty_input(self, stores):
        calls = []
        result = ExactDuplicateFinder(stores.signatures).find_duplicates([], on_progress=calls.append)
        assert result.groups == []
        assert result.skipped_paths == []
        assert calls == [0]

    def test_unique_sizes_never_hashed(self, stores, sample_items):
        items = [sample_items['gradient'], sample_items['corrupted']]
        result = ExactDuplicateFinder(stores.signatures).find_duplicates(items)
        assert result.groups == []
        assert result.skipped_paths == []
        assert stores.signatures.get_all() == []

    def test_zero_size_files_ignored(self, stores, media_dir, make_item):
        (media_dir / "a.png").write_bytes(b"")
        (media_dir / "b.png").write_bytes(b"")
        items = [make_item(media_dir / "a.png"), make_item(media_dir / "b.png")]

        result = ExactDuplicateFinder(stores.signatures).find_duplicates(items)
        assert result.groups == []
        assert result.skipped_paths == []

    def test_unreadable_candidates_are_skipped(self, stores, media_dir, make_item):
        (media_dir / "bad1.png").write_bytes(b"x" * 64)
        (media_dir / "bad2.png").write_bytes(b"y" * 64)
        items = [make_item(media_dir / "bad1.png"), make_item(media_dir / "bad2.png")]

        result = ExactDuplicateFinder(stores.signatures).find_duplicates(items)
        assert result.groups == []
        assert sorted(result.skipped_paths) == sorted(i.id for i in items)
        assert stores.signatures.get_all() == []

    def test_progress_is_cumulative(self, stores, sample_items):
        calls = []
        items = list(sample_items.values())
        ExactDuplicateFinder(stores.signatures, chunk_size=2).find_duplicates(items, on_progress=calls.append)

        assert calls == sorted(calls)
        assert calls[-1] == len(items)

    def test_second_scan_uses_cache(self, stores, sample_items):
        items = list(sample_items.values())
        finder = ExactDuplicateFinder(stores.signatures)

        first = finder.find_duplicates(items)
        second = finder.find_duplicates(items)

        assert first.stats.cache_hits == 0
        assert second.stats.cache_misses == 0
        assert second.stats.cache_hits == second.stats.total_files >= 5
        assert [g.unique_id for g in second.groups] == [g.unique_id for g in first.groups]

    def test_cached_signature_is_trusted_while_file_state_matches(self, stores, sample_items):
        a, b = sample_items['noise_a'], sample_items['noise_b']
        # Pretend both already hashed to the same value
        stores.signatures.upsert([
            SignatureCacheEntry(a.id, a.date_modified, a.size, "image-pixel-forged"),
            SignatureCacheEntry(b.id, b.date_modified, a.size, "image-pixel-forged"),
        ])
        same_size_b = replace(b, size=a.size)

        result = ExactDuplicateFinder(stores.signatures).find_duplicates([a, same_size_b])
        assert [g.signature for g in result.groups] == ["image-pixel-forged"]

    def test_modified_file_is_rehashed(self, stores, media_dir, make_item):
        (media_dir / "a.mp4").write_bytes(b"1" * 5000)
        (media_dir / "b.mp4").write_bytes(b"1" * 5000)
        set_mtime(media_dir / "a.mp4", 1_600_000_000)
        set_mtime(media_dir / "b.mp4", 1_600_000_010)
        finder = ExactDuplicateFinder(stores.signatures)

        first = finder.find_duplicates([make_item(media_dir / "a.mp4"), make_item(media_dir / "b.mp4")])
        assert len(first.groups) == 1

        # Same size, different content, new mtime
        (media_dir / "b.mp4").write_bytes(b"2" * 5000)
        set_mtime(media_dir / "b.mp4", 1_600_000_100)
        items = [make_item(media_dir / "a.mp4"), make_item(media_dir / "b.mp4")]

        second = finder.find_duplicates(items)
        assert second.groups == []
        assert second.stats.cache_hits == 1

    def test_removed_files_pruned_from_cache(self, stores, sample_items):
        finder = ExactDuplicateFinder(stores.signatures)
        finder.find_duplicates(list(sample_items.values()))
        assert sample_items['clip3'].id in {e.file_path for e in stores.signatures.get_all()}

        remaining = [i for k, i in sample_items.items() if k != 'clip3']
        finder.find_duplicates(remaining)
        assert sample_items['clip3'].id not in {e.file_path for e in stores.signatures.get_all()}

    def test_cancelled_before_start(self, stores, sample_items):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ScanCancelled):
            ExactDuplicateFinder(stores.signatures).find_duplicates(
                list(sample_items.values()), cancel_token=token
            )
        assert stores.signatures.get_all() == []

    def test_completed_chunks_stay_cached_on_cancel(self, stores, sample_items):
        token = CancellationToken()
        calls = []

        def on_progress(count):
            calls.append(count)
            if len(calls) == 2:
                token.cancel()

        finder = ExactDuplicateFinder(stores.signatures, chunk_size=1, max_workers=1)
        with pytest.raises(ScanCancelled):
            finder.find_duplicates(list(sample_items.values()), on_progress=on_progress, cancel_token=token)

        # First call reports the non-candidates, second the first finished chunk
        assert len(stores.signatures.get_all()) == 1
