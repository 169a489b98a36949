#!/usr/bin/env python3
"""
mediadedup - JSON API server
============================
Serves scan control and results over HTTP for a separate front end.

Run with: python -m mediadedup api
Or: mediadedup-api

Options:
    -q, --quiet     Quiet mode - suppress all output except errors
    -v, --verbose   Verbose mode - show all Flask request logs
    -p, --port      Port to run on (default: 5000)
    --db            Cache database path
"""

import argparse
import logging
from typing import Optional

from flask import Flask

from .api import api, SERVICE_KEY
from .database import CacheError, CacheStores
from .service import DuplicateScanService
from .user_config import get_user_config


# Logging levels
LOG_QUIET = 0    # No output except errors
LOG_MINIMAL = 1  # Startup info only (default)
LOG_VERBOSE = 2  # All Flask request logs


def create_app(
    service: Optional[DuplicateScanService] = None,
    log_level: int = LOG_MINIMAL,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        service: Scan service to expose; one backed by the configured cache
            database is created if None
        log_level: Logging verbosity level

    Returns:
        Configured Flask app instance
    """
    if service is None:
        service = DuplicateScanService(CacheStores(get_user_config().cache_db_file))

    app = Flask(__name__)
    app.config[SERVICE_KEY] = service

    # Configure logging based on level
    if log_level < LOG_VERBOSE:
        # Suppress Flask's default request logging
        log = logging.getLogger('werkzeug')
        log.setLevel(logging.ERROR if log_level == LOG_QUIET else logging.WARNING)

    # Register routes
    app.register_blueprint(api)

    return app


def suppress_flask_banner():
    """Suppress Flask's development server banner and startup messages."""
    try:
        import flask.cli
        flask.cli.show_server_banner = lambda *args, **kwargs: None
    except (ImportError, AttributeError):
        pass

    # Suppress werkzeug's startup log messages
    logging.getLogger('werkzeug').setLevel(logging.ERROR)


def main():
    """Main entry point for the API server."""
    parser = argparse.ArgumentParser(
        description='mediadedup - JSON API server',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Quiet mode - suppress all output except errors'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose mode - show all Flask request logs'
    )
    parser.add_argument(
        '-p', '--port',
        type=int,
        default=5000,
        help='Port to run the server on (default: 5000)'
    )
    parser.add_argument(
        '--db',
        metavar='PATH',
        help='Cache database path (default: ~/.mediadedup/cache.db)'
    )

    args = parser.parse_args()

    # Determine log level
    if args.quiet:
        log_level = LOG_QUIET
    elif args.verbose:
        log_level = LOG_VERBOSE
    else:
        log_level = LOG_MINIMAL

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO if log_level else logging.ERROR,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        stores = CacheStores(args.db or get_user_config().cache_db_file)
    except CacheError as e:
        parser.exit(1, f"Error: cannot open cache database: {e}\n")

    service = DuplicateScanService(stores)
    service.load_cached_results()

    if log_level >= LOG_MINIMAL:
        print()
        print("  mediadedup API")
        print(f"  Cache database: {stores.db_path}")
        if service.state.results:
            print(f"  Previous results: {len(service.state.results)} groups")
        print(f"  Listening on: http://127.0.0.1:{args.port}")
        print()
        print("  Press Ctrl+C to stop")
        print()

    # Suppress Flask banner for non-verbose modes
    if log_level < LOG_VERBOSE:
        suppress_flask_banner()

    app = create_app(service, log_level)

    try:
        app.run(
            host='127.0.0.1',
            port=args.port,
            debug=False,
            threaded=True,
            use_reloader=False
        )
    except KeyboardInterrupt:
        if log_level >= LOG_MINIMAL:
            print("\n  Server stopped\n")


if __name__ == '__main__':
    main()
