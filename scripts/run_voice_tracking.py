#!/usr/bin/env python3
"""
Run Voice Tracking Script
=========================
Command-line interface for finding voices that appear in several videos.

Usage:
    python scripts/run_voice_tracking.py --records speakers.json
    python scripts/run_voice_tracking.py --records speakers.json --top 5
    python scripts/run_voice_tracking.py --records speakers.json --matches-only --output matches.json

The records file holds a JSON list of detected speakers (or an object with a
"speakers" list), in snake_case or the detector's camelCase.
"""

import argparse
import sys
import json
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from voicelab.app import create_app
from voicelab.models import SpeakerRecord
from voicelab.logging_config import get_service_logger

logger = get_service_logger("cli", log_to_file=False)


def load_records(path: str) -> list:
    """Load speaker records from a JSON file."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('speakers', [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of speaker records in {path}")

    return [SpeakerRecord.from_dict(item) for item in data if isinstance(item, dict)]


def main():
    parser = argparse.ArgumentParser(
        description="Find voices that appear in more than one video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Full voice tracking summary
    python scripts/run_voice_tracking.py --records speakers.json

    # Only the ten most significant matches
    python scripts/run_voice_tracking.py --records speakers.json --matches-only --top 10
        """
    )

    parser.add_argument(
        '--records', '-r',
        type=str,
        required=True,
        help='Path to a JSON file of speaker records'
    )

    parser.add_argument(
        '--top', '-n',
        type=int,
        default=None,
        help='Number of matches to report (default: config.matching.top_n for summaries, all for --matches-only)'
    )

    parser.add_argument(
        '--matches-only',
        action='store_true',
        help='Print the ranked match list instead of the summary'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Write the report to this file instead of stdout'
    )

    args = parser.parse_args()

    try:
        records = load_records(args.records)
    except (OSError, ValueError) as e:
        logger.error(f"Could not load speaker records: {e}")
        return 1

    app = create_app()
    engine = app.cluster_engine

    if args.matches_only:
        matches = engine.find_cross_video_matches(records, top_n=args.top)
        report = [m.to_dict() for m in matches]
    else:
        report = engine.summarize(records, top_n=args.top).to_dict()

    text = json.dumps(report, indent=2)
    if args.output:
        Path(args.output).write_text(text, encoding='utf-8')
        logger.info(f"Report written to {args.output}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
