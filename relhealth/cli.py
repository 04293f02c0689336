"""
CLI interface for RelHealth
"""

import sys
import json
import logging
import argparse
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from . import config
from .analysis_engine import build_relationship_report, summarize_relationships
from .goal_generator import generate_goals_from_baseline
from .models import BaselinePreferences, InteractionRecord, normalize_timestamp
from .trend_engine import compare_relationships

logger = logging.getLogger(__name__)


def load_export(filepath: str) -> Dict[str, Any]:
    """
    Load a JSON export: {"interactions": [...], "baseline": {...}}.

    Raises:
        FileNotFoundError: If filepath doesn't exist
        ValueError: If the file is not valid JSON or a record is out of range
    """
    path = Path(filepath)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse {path}: {e}") from e

    interactions = [InteractionRecord.from_dict(item) for item in data.get("interactions", [])]
    baseline = data.get("baseline")

    logger.info(f"Loaded {len(interactions)} interactions from {path}")
    return {
        "interactions": interactions,
        "baseline": BaselinePreferences.from_dict(baseline) if baseline else None,
    }


def _parse_now(value: str) -> datetime:
    """Evaluation instant as naive UTC, matching stored record timestamps."""
    return normalize_timestamp(value or pd.Timestamp.now(tz="UTC"))


def _matches(record: InteractionRecord, relationship_id: str) -> bool:
    return str(record.relationship_id) == str(relationship_id)


def analyze(records: List[InteractionRecord], relationship_id: str, window: str, now: datetime) -> Dict[str, Any]:
    selected = [r for r in records if _matches(r, relationship_id)]
    if not selected:
        logger.warning(f"No interactions found for relationship {relationship_id}")
    # Report the id as it appears in the data when possible
    rel_id = selected[0].relationship_id if selected else relationship_id
    return build_relationship_report(selected, rel_id, window, now)


def compare(records: List[InteractionRecord], window: str, now: datetime) -> Dict[str, Any]:
    report = compare_relationships(summarize_relationships(records, window, now))
    return report.to_dict()


def goals(baseline: BaselinePreferences) -> List[Dict[str, Any]]:
    return [goal.to_dict() for goal in generate_goals_from_baseline(baseline)]


def _write(result: Any, output_file: str = None):
    payload = json.dumps(result, indent=2, default=str)
    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(payload)
        logger.info(f"Report saved to {output_file}")
    else:
        print(payload)


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="RelHealth - Relationship Health Analytics"
    )

    parser.add_argument(
        "command",
        choices=["analyze", "compare", "goals", "config"],
        help="Command to run"
    )

    parser.add_argument(
        "filepath",
        nargs="?",
        help="Path to JSON export file"
    )

    parser.add_argument(
        "-r", "--relationship",
        dest="relationship_id",
        help="Relationship id (analyze)"
    )

    parser.add_argument(
        "-w", "--window",
        choices=list(config.WINDOWS),
        default=config.DEFAULT_WINDOW,
        help="Time window"
    )

    parser.add_argument(
        "--now",
        help="Evaluation instant (ISO 8601, default: current time)"
    )

    parser.add_argument(
        "-o", "--output",
        dest="output_file",
        help="Output JSON file path"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose logging"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    valid, msg = config.validate_config()
    if not valid and args.command != "config":
        logger.error(f"Configuration error: {msg}")
        return 1

    if args.command == "config":
        _write({"valid": valid, "message": msg, "config": config.get_config_summary()})
        return 0 if valid else 1

    if not args.filepath:
        parser.error(f"{args.command} requires a filepath")

    try:
        data = load_export(args.filepath)
        now = _parse_now(args.now)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load export: {e}")
        return 1

    if args.command == "analyze":
        if not args.relationship_id:
            parser.error("analyze requires --relationship")
        result = analyze(data["interactions"], args.relationship_id, args.window, now)
        logger.info(
            f"Health Score: {result['snapshot']['score']}/100 ({result['snapshot']['risk_tier']})"
        )

    elif args.command == "compare":
        result = compare(data["interactions"], args.window, now)

    else:
        if data["baseline"] is None:
            logger.error("Export has no baseline to generate goals from")
            return 1
        result = goals(data["baseline"])

    _write(result, args.output_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
