#!/usr/bin/env python3
"""
Quality Cache Script
====================
Command-line interface for inspecting and managing the quality cache.

Usage:
    python scripts/quality_cache.py status
    python scripts/quality_cache.py invalidate
    python scripts/quality_cache.py learning
    python scripts/quality_cache.py record-learning --updates updates.json
"""

import argparse
import sys
import json
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from voicelab.app import create_app
from voicelab.logging_config import get_service_logger

logger = get_service_logger("cli", log_to_file=False)


def main():
    parser = argparse.ArgumentParser(
        description="Inspect and manage the voice quality cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Is the cached snapshot still served?
    python scripts/quality_cache.py status

    # Force the next dashboard load to measure again
    python scripts/quality_cache.py invalidate

    # Record an iteration of the learning process
    python scripts/quality_cache.py record-learning --updates best_settings.json
        """
    )

    parser.add_argument(
        '--data-dir',
        type=str,
        help='Directory holding the cache and learning documents'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)
    subparsers.add_parser('status', help='Show cache status and thresholds')
    subparsers.add_parser('invalidate', help='Delete the cached snapshot')
    subparsers.add_parser('learning', help='Show learning integration status')

    record = subparsers.add_parser('record-learning', help='Advance the learning iteration')
    record.add_argument(
        '--updates',
        type=str,
        help='JSON file with analytics or settings to merge into the learning state'
    )

    args = parser.parse_args()

    app = create_app()
    if args.data_dir:
        app.config.paths.base_dir = Path(args.data_dir)
        app = create_app(app.config, load_env=False)

    service = app.quality_cache

    if args.command == 'status':
        config = service.config
        report = {
            'cache': service.get_cache_status().to_dict(),
            'learning': service.get_learning_integration_status().to_dict(),
            'thresholds': {
                'cacheMaxAgeMinutes': config.max_age_minutes,
                'forceRefreshHours': config.force_refresh_hours,
                'learningUpdateThreshold': config.learning_update_threshold,
            },
        }
    elif args.command == 'invalidate':
        report = {'removed': service.invalidate_cache()}
    elif args.command == 'learning':
        report = service.get_learning_integration_status().to_dict()
    else:
        updates = {}
        if args.updates:
            try:
                with open(args.updates, 'r', encoding='utf-8') as f:
                    updates = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Could not read learning updates: {e}")
                return 1
            if not isinstance(updates, dict):
                logger.error("Learning updates must be a JSON object")
                return 1
        report = {'iteration': service.tracker.record_learning_update(updates)}

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
