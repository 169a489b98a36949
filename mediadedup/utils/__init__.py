"""
Utilities package for mediadedup.

Provides:
- formatters: Human-readable formatting for durations, file sizes
  and scan timestamps
"""

from __future__ import annotations

from . import formatters

from .formatters import format_time_estimate, format_size, format_timestamp

__all__ = [
    'formatters',
    'format_time_estimate',
    'format_size',
    'format_timestamp',
]
