"""
AR Engagement Analyzer
=======================
Reads a raw AR interaction-log export from data/raw/ and produces the ranked
buying-intent report at data/processed/:

    engagement_metrics.json  - visitors, tier thresholds, campaign summary
    visitors.csv             - one row per visitor, in rank order
    activity_log.csv         - one row per included log record

Usage:
    python scripts/engagement_analyzer.py
    python scripts/engagement_analyzer.py --input data/raw/ar_logs_2024-06-01.json
    python scripts/engagement_analyzer.py --now 2024-06-02T00:00:00Z --sort-by total_ar_seconds

Exports:
    load_log_export, run_cli_analysis, main
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
RAW_DIR = BASE_DIR / "data" / "raw"
PROCESSED_DIR = BASE_DIR / "data" / "processed"
RAW_PATTERN = "ar_logs_*.json"

sys.path.insert(0, str(BASE_DIR))
load_dotenv(BASE_DIR / ".env")

from models.engagement_models import EngagementReport  # noqa: E402
from scripts.engagement.engine import run_engagement_analysis  # noqa: E402
from scripts.engagement.export import write_report  # noqa: E402
from scripts.engagement.ranking import SORT_KEYS  # noqa: E402
from scripts.lib.config import load_config  # noqa: E402
from scripts.lib.errors import (  # noqa: E402
    DataFetchError,
    EngagementError,
    SchemaValidationError,
)
from scripts.lib.logger import setup_logger  # noqa: E402
from scripts.lib.utils import find_latest_file  # noqa: E402

logger = setup_logger("engagement_analyzer")

# Envelope keys the backend has used when wrapping a log export
ENVELOPE_KEYS = ("logs", "results", "data")


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

def load_log_export(path: Optional[str | Path] = None) -> List[Dict[str, Any]]:
    """
    Load raw log rows from *path*, or the newest export in data/raw/.

    Accepts a bare JSON list or an object wrapping the list under one of
    ENVELOPE_KEYS.

    Raises:
        DataFetchError: no export found, or the file is unreadable.
        SchemaValidationError: the JSON holds no list of rows.
    """
    source = Path(path) if path else find_latest_file(RAW_DIR, RAW_PATTERN)
    if source is None:
        raise DataFetchError(f"No {RAW_PATTERN} export in {RAW_DIR}", source=str(RAW_DIR))
    if not source.exists():
        raise DataFetchError(f"Log export not found: {source}", source=str(source))

    try:
        with open(source, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise DataFetchError(f"Could not read {source}: {e}", source=str(source))

    if isinstance(payload, dict):
        for key in ENVELOPE_KEYS:
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break

    if not isinstance(payload, list):
        raise SchemaValidationError(
            f"{source.name} must hold a list of log rows", field="logs",
        )

    logger.info("Loaded %d log rows from %s", len(payload), source)
    return payload


def _parse_now(value: Optional[str]) -> datetime:
    """Reference time for recency; the wall clock is only read here."""
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"--now must be ISO-8601, got {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

def run_cli_analysis(
    input_path: Optional[str | Path] = None,
    now: Optional[datetime] = None,
    sort_by: Optional[str] = None,
    descending: Optional[bool] = None,
    config_path: Optional[str | Path] = None,
    output_dir: Optional[str | Path] = None,
) -> EngagementReport:
    """Load, analyze and export one log batch. Returns the report."""
    config = load_config(config_path)
    rows = load_log_export(input_path)

    report = run_engagement_analysis(
        rows,
        now or datetime.now(timezone.utc),
        sort_by=sort_by,
        descending=descending,
        config=config,
    )

    written = write_report(report, output_dir or PROCESSED_DIR)
    for name, path in written.items():
        logger.info("  %-8s %s", name, path)
    return report


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rank AR campaign visitors by buying intent",
    )
    parser.add_argument(
        "--input",
        type=str,
        default=None,
        help=f"Log export to analyze. Default: newest {RAW_PATTERN} in {RAW_DIR}",
    )
    parser.add_argument(
        "--now",
        type=_parse_now,
        default=None,
        help="Reference time for recency scoring (ISO-8601). Default: current UTC time",
    )
    parser.add_argument(
        "--sort-by",
        choices=sorted(SORT_KEYS),
        default=None,
        help="Ranking column. Default: report.sort_by from the config",
    )
    parser.add_argument(
        "--asc",
        action="store_true",
        help="Rank ascending instead of descending",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config overriding configs/engagement.yaml",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=str(PROCESSED_DIR),
        help=f"Directory for the JSON and CSV exports. Default: {PROCESSED_DIR}",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns a process exit code."""
    args = _parse_args(argv)

    logger.info("AR engagement analysis starting")
    try:
        report = run_cli_analysis(
            input_path=args.input,
            now=args.now,
            sort_by=args.sort_by,
            descending=False if args.asc else None,
            config_path=args.config,
            output_dir=args.output_dir,
        )
    except EngagementError as e:
        logger.error("Engagement analysis failed: %s", e)
        return 1

    tiers = report.summary.get("tier_counts", {})
    logger.info("=== Engagement Analysis Complete ===")
    logger.info("  Records: %d (%d rejected)", report.record_count, report.rejected_records)
    logger.info("  Visitors: %d", len(report.visitors))
    logger.info(
        "  Tiers: High %d / Medium %d / Low %d (%s mode)",
        tiers.get("High", 0), tiers.get("Medium", 0), tiers.get("Low", 0),
        report.thresholds.mode,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
