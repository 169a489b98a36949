"""
Argument parsing for the CLI interface.

Provides functions to create and configure the argument parser for the
mediadedup command-line interface.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from ..config import DEFAULT_THRESHOLD_LEVEL, SIMILARITY_THRESHOLDS


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance

    Notes:
        - Options left unset fall back to the user configuration
        - --exact-only and --similar-only are mutually exclusive
    """
    levels = ', '.join(f"{name}={value}" for name, value in SIMILARITY_THRESHOLDS.items())
    parser = argparse.ArgumentParser(
        description='Find duplicate and visually similar images and videos',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  %(prog)s /path/to/media
      Scan for exact duplicates and similar media (report only)

  %(prog)s /path/to/media --exact-only
      Only byte-identical files

  %(prog)s /path/to/media --level strict
      Similar media within a small Hamming distance ({levels})

  %(prog)s --cached
      Show the last scan's results, revalidated against the disk

  %(prog)s --clear-cache
      Forget every cached fingerprint and stored result
        """
    )

    # Positional argument
    parser.add_argument(
        'directory',
        type=Path,
        nargs='?',
        default=None,
        help='Directory to scan for duplicate media'
    )

    # Scanning options
    parser.add_argument(
        '-r', '--no-recursive',
        action='store_true',
        help='Do not scan subdirectories'
    )

    parser.add_argument(
        '-l', '--level',
        choices=list(SIMILARITY_THRESHOLDS),
        default=None,
        help=f'Similarity threshold level. Default: {DEFAULT_THRESHOLD_LEVEL}'
    )

    parser.add_argument(
        '-t', '--threshold',
        type=int,
        default=None,
        help='Explicit Hamming distance threshold (0-64, lower=stricter); overrides --level'
    )

    parser.add_argument(
        '--histogram-threshold',
        type=float,
        default=None,
        help='Also require a colour histogram intersection of at least this value (0-1)'
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        '--exact-only',
        action='store_true',
        help='Only find exact duplicates (skip similarity matching)'
    )
    mode_group.add_argument(
        '--similar-only',
        action='store_true',
        help='Only find similar media (skip exact matching)'
    )

    parser.add_argument(
        '--no-videos',
        action='store_true',
        help='Leave videos out of similarity matching'
    )

    # Cache options
    parser.add_argument(
        '--db',
        type=Path,
        default=None,
        help='Cache database path (default: ~/.mediadedup/cache.db)'
    )

    parser.add_argument(
        '--cached',
        action='store_true',
        help='Print the stored results of the last scan instead of scanning'
    )

    parser.add_argument(
        '--clear-cache',
        action='store_true',
        help='Clear all cached fingerprints and stored results'
    )

    # Performance options
    parser.add_argument(
        '-w', '--workers',
        type=int,
        default=None,
        help='Number of parallel hashing workers'
    )

    # Output options
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars (useful for piping output)'
    )

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Returns:
        Parsed arguments as Namespace object

    Examples:
        >>> args = parse_arguments(['/path/to/media', '--level', 'strict'])
        >>> args.directory
        PosixPath('/path/to/media')
        >>> args.level
        'strict'
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
]
