"""
Allow running the package with: python -m mediadedup

By default, runs the CLI. Use the 'api' subcommand to serve the JSON API.

Examples:
    python -m mediadedup /path/to/media       # Scan with the CLI
    python -m mediadedup cli /path/to/media   # Scan with the CLI (explicit)
    python -m mediadedup api --port 5000      # Serve the JSON API
    python -m mediadedup config --init        # Create example config file
"""

import sys


def main():
    if len(sys.argv) > 1 and sys.argv[1] == 'api':
        # Remove 'api' from argv so argparse in app.py doesn't see it
        sys.argv.pop(1)
        from .app import main as api_main
        api_main()
    elif len(sys.argv) > 1 and sys.argv[1] == 'config':
        # Remove 'config' from argv
        sys.argv.pop(1)
        from .user_config import get_user_config

        config = get_user_config()

        if '--init' in sys.argv or '-i' in sys.argv:
            # Create example config file
            if config.create_example_config():
                print("Created example configuration file at:")
                print(f"  {config.config_file_path}")
                print("\nEdit this file to customize mediadedup settings.")
            else:
                print("Failed to create configuration file.")
                sys.exit(1)
        else:
            # Show current config path and values
            print(f"Configuration file: {config.config_file_path}")
            if config.config_file_path.exists():
                print("Status: found")
            else:
                print("Status: not found (using defaults)")
                print("\nRun 'python -m mediadedup config --init' to create one.")

            print("\nCurrent settings:")
            print(f"  threshold_level: {config.threshold_level}")
            print(f"  similarity_threshold: {config.similarity_threshold}")
            print(f"  histogram_threshold: {config.histogram_threshold}")
            print(f"  default_workers: {config.default_workers}")
            print(f"  chunk_size: {config.chunk_size}")
            print(f"  include_videos: {config.include_videos}")
            print(f"  cache_db_file: {config.cache_db_file}")
    else:
        if len(sys.argv) > 1 and sys.argv[1] == 'cli':
            # Remove 'cli' from argv so argparse doesn't see it
            sys.argv.pop(1)
        from .cli import main as cli_main
        sys.exit(cli_main())


if __name__ == '__main__':
    main()
