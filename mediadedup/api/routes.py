"""
Flask routes for the mediadedup JSON API.

The blueprint is stateless: the DuplicateScanService it drives is stored in
the app config under SERVICE_KEY by create_app().
"""

from __future__ import annotations

import logging
import os

from flask import Blueprint, current_app, jsonify, request

from ..database import CacheError
from ..scanner import find_media_files
from ..service import DuplicateScanService
from ..state import BackgroundScanState, ScanInProgressError

# Create blueprint for routes
api = Blueprint('api', __name__)

SERVICE_KEY = 'MEDIADEDUP_SERVICE'

# Module logger
_logger = logging.getLogger(__name__)


def _service() -> DuplicateScanService:
    return current_app.config[SERVICE_KEY]


@api.errorhandler(CacheError)
def handle_cache_error(e: CacheError):
    _logger.error(f"Cache failure while handling request: {e}")
    return jsonify({'error': f'Cache error: {e}'}), 500


# =============================================================================
# Route Handlers
# =============================================================================

@api.route('/api/status')
def api_status():
    """Return current scan status."""
    return jsonify(_service().state.to_status_dict())


@api.route('/api/scan', methods=['POST'])
def api_scan():
    """Start a new scan of a directory in the background."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'Request body required'}), 400

    directory = str(data.get('directory', '')).strip()
    if not directory:
        return jsonify({'error': 'Please provide a directory path'}), 400
    if not os.path.isdir(directory):
        return jsonify({'error': f'Directory not found: {directory}'}), 400

    scan_exact = bool(data.get('exact', True))
    scan_similar = bool(data.get('similar', True))
    if not scan_exact and not scan_similar:
        return jsonify({'error': 'Enable at least one of exact or similar'}), 400

    service = _service()
    if service.state.state.is_active:
        return jsonify({'error': 'A scan is already running'}), 409

    items = find_media_files(directory, recursive=bool(data.get('recursive', True)))
    try:
        service.start_scan(items, scan_exact=scan_exact, scan_similar=scan_similar)
    except ScanInProgressError as e:
        return jsonify({'error': str(e)}), 409

    _logger.info(f"Started scan of {directory} ({len(items):,} files)")
    return jsonify({'status': 'started', 'total_files': len(items)})


@api.route('/api/cancel', methods=['POST'])
def api_cancel():
    """Cancel the current scan."""
    if _service().cancel():
        return jsonify({'status': 'cancel_requested'})
    return jsonify({'status': 'no_scan_running'})


@api.route('/api/results')
def api_results():
    """
    Return the groups to display.

    When no scan has run in this process, the last persisted snapshot is
    revalidated and returned instead.
    """
    service = _service()
    state = service.state
    if state.state == BackgroundScanState.IDLE and not state.results:
        state = service.load_cached_results()
    return jsonify(state.to_results_dict())


@api.route('/api/results/deleted', methods=['POST'])
def api_results_deleted():
    """Notify that files were deleted; prunes caches and stored results."""
    data = request.get_json(silent=True) or {}
    paths = data.get('paths')
    if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
        return jsonify({'error': 'paths must be a list of strings'}), 400

    remaining = _service().on_files_deleted(paths)
    return jsonify({
        'status': 'updated',
        'groups': [g.to_dict() for g in remaining],
    })


@api.route('/api/groups/<path:unique_id>/hide', methods=['POST'])
def api_hide_group(unique_id: str):
    """Hide a group from current and future results."""
    _service().hide_group(unique_id)
    return jsonify({'status': 'hidden', 'unique_id': unique_id})


@api.route('/api/cache/stats')
def api_cache_stats():
    """Return cache statistics."""
    return jsonify(_service().stores.get_stats())


@api.route('/api/cache/clear', methods=['POST'])
def api_cache_clear():
    """Clear every cache and the stored results."""
    service = _service()
    if service.state.state.is_active:
        return jsonify({'error': 'Cannot clear the cache while a scan is running'}), 409
    service.stores.clear()
    service.state_holder.reset()
    return jsonify({'status': 'cleared'})
