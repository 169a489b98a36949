"""
Formatting utilities for mediadedup.

Provides human-readable formatting for time estimates, file sizes
and scan timestamps.
"""

from __future__ import annotations

from datetime import datetime


def format_size(size_bytes: float) -> str:
    """Format file size in human-readable form."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


def format_time_estimate(seconds: float) -> str:
    """
    Format seconds into human-readable time estimate.

    Args:
        seconds: Time in seconds

    Returns:
        Formatted time string (e.g., "5s", "2m 30s", "1h 15m")

    Examples:
        >>> format_time_estimate(150)
        '2m 30s'
    """
    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        return f"{int(seconds / 60)}m {int(seconds % 60)}s"
    else:
        hours = int(seconds / 3600)
        minutes = int((seconds % 3600) / 60)
        return f"{hours}h {minutes}m"


def format_timestamp(timestamp_ms: int) -> str:
    """Format a millisecond epoch timestamp as local 'YYYY-MM-DD HH:MM:SS'."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime('%Y-%m-%d %H:%M:%S')


__all__ = ['format_time_estimate', 'format_size', 'format_timestamp']
