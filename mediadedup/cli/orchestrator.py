"""
CLI workflow orchestration for mediadedup.

Provides the CLIOrchestrator class that coordinates the entire CLI workflow
from argument parsing through final reporting.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..database import CacheError, CacheStores
from ..scanner import find_media_files, has_heif_support, has_video_support
from ..scanner.dependencies import HAS_TQDM, _tqdm_class
from ..service import DuplicateScanService
from ..state import BackgroundScanState
from ..user_config import get_user_config, resolve_threshold
from ..utils.formatters import format_size, format_time_estimate
from .arg_parser import parse_arguments
from .reporting import print_scan_report

# Seconds between progress polls while the scan thread runs
POLL_INTERVAL = 0.2


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class CLIOrchestrator:
    """
    Orchestrates the CLI workflow.

    Manages the lifecycle from argument parsing through scanning and
    reporting. Ctrl+C during a scan cancels it at the next chunk boundary.
    """

    def __init__(self, argv=None):
        """
        Initialize the orchestrator.

        Args:
            argv: Argument list; sys.argv is used if None
        """
        self.argv = argv
        self.logger = None
        self.args = None
        self.stores: Optional[CacheStores] = None
        self.items = []

    def run(self) -> int:
        """
        Execute the complete CLI workflow.

        Returns:
            Exit code (0 for success, 1 for error, 130 if cancelled)

        Workflow phases:
        1. Setup & argument parsing
        2. Validation
        3. Cache maintenance / stored results
        4. File discovery
        5. Scan & reporting
        """
        # Phase 1: Setup
        self.args = parse_arguments(self.argv)
        self.logger = setup_logging(self.args.verbose)

        # Phase 2: Validation
        exit_code = self._validate_phase()
        if exit_code != 0:
            return exit_code

        try:
            self.stores = CacheStores(str(self.args.db) if self.args.db else get_user_config().cache_db_file)

            # Phase 3: Cache maintenance
            if self.args.clear_cache:
                self.stores.clear()
                self.logger.info("Cache cleared")
                if self.args.directory is None:
                    return 0

            if self.args.cached:
                return self._cached_phase()

            # Phase 4: Discovery
            exit_code = self._discover_phase()
            if exit_code != 0:
                return exit_code

            # Phase 5: Scan
            return self._scan_phase()

        except CacheError as e:
            self.logger.error(f"Cache error: {e}")
            return 1

    def _validate_phase(self) -> int:
        """
        Validate arguments.

        Returns:
            0 for success, 1 for validation error
        """
        if self.args.directory is None and not (self.args.cached or self.args.clear_cache):
            self.logger.error("Please provide a directory to scan (or use --cached)")
            return 1

        if self.args.directory is not None and not self.args.cached:
            if not self.args.directory.is_dir():
                self.logger.error(f"Directory not found: {self.args.directory}")
                return 1

        if self.args.threshold is not None:
            try:
                resolve_threshold(threshold=self.args.threshold)
            except ValueError as e:
                self.logger.error(str(e))
                return 1

        if self.args.workers is not None and self.args.workers < 1:
            self.logger.error("--workers must be at least 1")
            return 1

        return 0

    def _cached_phase(self) -> int:
        """Print the stored snapshot, revalidated against the disk."""
        service = DuplicateScanService(self.stores)
        result = service.repository.load_validated()
        if result is None:
            self.logger.info("No valid stored results. Run a scan first.")
            return 0
        print_scan_report(result.groups, result.unscannable_files, result.timestamp)
        return 0

    def _discover_phase(self) -> int:
        """
        Find media files.

        Returns:
            0 for success, non-zero if nothing was found
        """
        show_progress = not self.args.no_progress
        self.logger.info(f"Scanning {self.args.directory} for media...")
        if show_progress:
            print("Scanning for media files...", end=" ", flush=True)

        self.items = find_media_files(self.args.directory, recursive=not self.args.no_recursive)

        if show_progress:
            print("done!")

        videos = sum(1 for item in self.items if item.is_video)
        self.logger.info(f"Found {len(self.items) - videos:,} images and {videos:,} videos")
        if not has_heif_support():
            self.logger.debug("HEIC/HEIF decoding unavailable (pip install pillow-heif)")
        if videos and not has_video_support():
            self.logger.warning("Video frame decoding unavailable; videos only get exact matching")

        if not self.items:
            self.logger.info("No media found. Exiting.")
            return 1
        return 0

    def _build_service(self) -> DuplicateScanService:
        config = get_user_config()
        threshold = None
        if self.args.threshold is not None or self.args.level is not None:
            threshold = resolve_threshold(self.args.level or config.threshold_level, self.args.threshold)

        settings = config.scan_settings(
            threshold=threshold,
            histogram_threshold=self.args.histogram_threshold,
            workers=self.args.workers,
            include_videos=False if self.args.no_videos else None,
        )
        self.logger.debug(f"Scan settings: {settings}")
        return DuplicateScanService(self.stores, config=settings)

    def _scan_phase(self) -> int:
        """
        Run the scan in the background while showing progress.

        Returns:
            Exit code
        """
        service = self._build_service()
        started = time.time()
        thread = service.start_scan(
            self.items,
            scan_exact=not self.args.similar_only,
            scan_similar=not self.args.exact_only,
        )

        pbar = None
        if HAS_TQDM and not self.args.no_progress and _tqdm_class is not None:
            pbar = _tqdm_class(total=100, desc="Scanning", unit="%", ncols=80)

        try:
            while thread.is_alive():
                try:
                    thread.join(POLL_INTERVAL)
                except KeyboardInterrupt:
                    self.logger.warning("Cancelling scan...")
                    service.cancel()
                if pbar is not None:
                    pbar.n = int(service.state.progress * 100)
                    pbar.set_postfix_str(service.state.phase)
                    pbar.refresh()
        finally:
            if pbar is not None:
                pbar.close()

        state = service.state
        self.logger.info(f"Scan finished in {format_time_estimate(time.time() - started)}")
        if state.state == BackgroundScanState.ERROR:
            self.logger.error(f"Scan failed: {state.error_message}")
            return 1

        print_scan_report(state.results, state.unscannable_files, state.timestamp)

        if state.state == BackgroundScanState.CANCELLED:
            self.logger.warning("Scan cancelled - partial results shown, nothing was saved")
            return 130

        savings = sum(group.potential_savings for group in state.results)
        self.logger.info(f"Results saved ({format_size(savings)} reclaimable)")
        return 0


__all__ = ['CLIOrchestrator', 'setup_logging']
