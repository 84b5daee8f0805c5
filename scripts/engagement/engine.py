"""
AR Engagement Engine
=====================

Batch pipeline from raw interaction logs to a ranked, tiered visitor report:

  parse_log_records()       - validate rows, drop malformed ones
  build_visitors()          - one grouping pass + per-visitor accumulation
  score_visitors()          - intent score per visitor, tiers over the batch
  run_engagement_analysis() - the whole flow, returning an EngagementReport

Every call is independent and side-effect free. The only clock input is the
``now`` argument, so the same batch and ``now`` always give the same report.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from models.engagement_models import EngagementReport, LogRecord, TierThresholds, Visitor
from scripts.engagement.metrics import accumulate_visitor
from scripts.engagement.ranking import sort_visitors
from scripts.engagement.scoring import calculate_intent_score
from scripts.engagement.sessions import group_records
from scripts.engagement.summary import (
    analyze_attributes,
    summarize_campaign,
    summarize_geography,
)
from scripts.engagement.tiers import classify_tiers
from scripts.lib.config import DEFAULT_CONFIG
from scripts.lib.errors import ScoringError

logger = logging.getLogger(__name__)


@dataclass
class ParsedBatch:
    records: List[LogRecord] = field(default_factory=list)
    rejected: int = 0


def parse_log_records(rows: Iterable[Any]) -> ParsedBatch:
    """
    Validate raw rows into LogRecords.

    Rows that are already LogRecords pass through. Rows missing a timestamp or
    session id (or that aren't mappings at all) are skipped and counted.
    """
    batch = ParsedBatch()
    for index, row in enumerate(rows):
        if isinstance(row, LogRecord):
            batch.records.append(row)
            continue
        try:
            batch.records.append(LogRecord.model_validate(row))
        except ValidationError as e:
            batch.rejected += 1
            logger.debug("Skipping malformed log row %d: %s", index, e.errors()[:1])

    if batch.rejected:
        logger.warning(
            "Excluded %d malformed log rows (%d kept)",
            batch.rejected, len(batch.records),
        )
    return batch


def build_visitors(
    records: Sequence[LogRecord],
    visit_gap: timedelta = timedelta(hours=1),
) -> List[Visitor]:
    """Unscored visitors in first-seen order."""
    groups = group_records(records)
    return [accumulate_visitor(group, visit_gap) for group in groups.values()]


def score_visitors(
    visitors: Sequence[Visitor],
    now: Optional[datetime],
    config: Optional[Dict[str, Any]] = None,
) -> Tuple[List[Visitor], TierThresholds]:
    """
    Attach intent scores and batch-relative tiers.

    Returns:
        (scored visitors in input order, tier thresholds).
    """
    config = config or DEFAULT_CONFIG
    scored = [
        v.model_copy(update={"intent_score": calculate_intent_score(v, now, config["scoring"])})
        for v in visitors
    ]
    tiers, thresholds = classify_tiers(
        [(v.id, v.intent_score) for v in scored], config["tiers"],
    )
    return [v.model_copy(update={"intent_tier": tiers[v.id]}) for v in scored], thresholds


def run_engagement_analysis(
    rows: Iterable[Any],
    now: Optional[datetime],
    sort_by: Optional[str] = None,
    descending: Optional[bool] = None,
    config: Optional[Dict[str, Any]] = None,
) -> EngagementReport:
    """
    Run the full engine over one campaign's log batch.

    Args:
        rows: Raw log dicts (backend column names or field names) or LogRecords.
        now: Reference time for recency scoring. Required.
        sort_by: Ranking column; defaults to the config's report.sort_by.
        descending: Ranking direction; defaults to report.descending.
        config: Merged config from ``load_config()``; defaults when omitted.

    Raises:
        ScoringError: *now* not supplied.
        ReportError: unknown *sort_by*.
    """
    if now is None:
        raise ScoringError("run_engagement_analysis needs an explicit 'now'")

    config = config or DEFAULT_CONFIG
    report_cfg = config["report"]
    sort_by = sort_by or report_cfg["sort_by"]
    descending = report_cfg["descending"] if descending is None else descending
    visit_gap = timedelta(minutes=config["sessions"]["visit_gap_minutes"])

    batch = parse_log_records(rows)
    visitors = build_visitors(batch.records, visit_gap)
    scored, thresholds = score_visitors(visitors, now, config)
    ranked = sort_visitors(scored, sort_by, descending)

    summary = summarize_campaign(batch.records, ranked)
    summary["metadata_analysis"] = analyze_attributes(batch.records)
    summary["geography"] = summarize_geography(batch.records, ranked)

    logger.info(
        "Engagement analysis: %d records -> %d visitors (%s tiers, %d rejected)",
        len(batch.records), len(ranked), thresholds.mode, batch.rejected,
    )

    return EngagementReport(
        generated_at=now,
        sort_by=sort_by,
        descending=descending,
        record_count=len(batch.records),
        rejected_records=batch.rejected,
        visitors=ranked,
        records=batch.records,
        thresholds=thresholds,
        summary=summary,
    )
