"""
Report formatting and display for the CLI interface.

Provides functions to format and print scan results in a human-readable
format.
"""

from __future__ import annotations

from typing import Optional

from ..models import ExactGroup, ScanResultGroup, SimilarGroup
from ..utils.formatters import format_size, format_timestamp


def _format_group_header(group_number: int, group: ScanResultGroup) -> str:
    """
    Format a group header line.

    Args:
        group_number: The group number (1-indexed)
        group: The result group

    Returns:
        Formatted header string
    """
    return (f"\nGroup {group_number} ({group.item_count} files, "
            f"{format_size(group.potential_savings)} reclaimable):")


def _print_item_in_group(item, is_oldest: bool) -> None:
    """
    Print a single member of a group.

    Members are stored oldest first; the oldest is the suggested original.
    """
    marker = "  [ORIG]" if is_oldest else "  [DUPE]"
    kind = "video" if item.is_video else "image"
    print(f"{marker} {item.id}")
    print(f"         {kind} | {format_size(item.size)} | "
          f"modified {format_timestamp(item.date_modified)}")


def _calculate_statistics(groups: list[ScanResultGroup]) -> dict[str, int]:
    """
    Calculate statistics for result groups.

    Returns:
        Dictionary with total_duplicates, total_groups and total_waste (bytes)
    """
    return {
        'total_duplicates': sum(g.item_count - 1 for g in groups),
        'total_groups': len(groups),
        'total_waste': sum(g.potential_savings for g in groups),
    }


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def _print_groups(groups: list[ScanResultGroup], section_title: str) -> None:
    if not groups:
        return

    _print_section_header(section_title)

    for i, group in enumerate(groups, 1):
        print(_format_group_header(i, group))
        for index, item in enumerate(group.items):
            _print_item_in_group(item, index == 0)


def print_scan_report(
    groups: list[ScanResultGroup],
    unscannable_files: list[str],
    timestamp: Optional[int] = None,
) -> None:
    """
    Print a report of found duplicates and similar media.

    Args:
        groups: Exact and similar groups in display order
        unscannable_files: Paths that could not be read
        timestamp: Scan time in ms, shown for stored results
    """
    exact_groups = [g for g in groups if isinstance(g, ExactGroup)]
    similar_groups = [g for g in groups if isinstance(g, SimilarGroup)]

    # Header
    print("\n" + "=" * 70)
    print("DUPLICATE MEDIA REPORT")
    if timestamp is not None:
        print(f"Scanned at {format_timestamp(timestamp)}")
    print("=" * 70)

    exact_stats = _calculate_statistics(exact_groups)
    similar_stats = _calculate_statistics(similar_groups)

    print(f"\nExact duplicates found: {exact_stats['total_duplicates']} files in "
          f"{exact_stats['total_groups']} groups")
    print(f"Similar media found: {similar_stats['total_duplicates']} files in "
          f"{similar_stats['total_groups']} groups")

    _print_groups(exact_groups, "EXACT DUPLICATES (identical content)")
    _print_groups(similar_groups, "SIMILAR MEDIA (visually alike)")

    if unscannable_files:
        _print_section_header(f"UNSCANNABLE FILES ({len(unscannable_files)})")
        for path in unscannable_files:
            print(f"  {path}")

    # Footer with total space recoverable
    total_waste = exact_stats['total_waste'] + similar_stats['total_waste']
    print("\n" + "=" * 70)
    print(f"Total space recoverable: {format_size(total_waste)}")
    print("=" * 70)


__all__ = ['print_scan_report']
