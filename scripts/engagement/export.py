"""
Flat exports.

Two independent views over the same batch:
  visitor_rows()  - one row per visitor, derived fields spelled out
  activity_rows() - one row per included raw record, plus its visitor key

They must agree: sum(total_views) == len(activity rows) and
sum(total_ar_seconds) == sum(ar_engagement_seconds) across activity rows.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from models.engagement_models import EngagementReport, LogRecord, Visitor
from scripts.engagement.identity import resolve_identity
from scripts.engagement.scoring import round_half_up
from scripts.lib.utils import atomic_write_csv, atomic_write_json

logger = logging.getLogger(__name__)

VISITOR_COLUMNS = [
    "rank",
    "display_label",
    "visitor_id",
    "intent_score",
    "intent_tier",
    "total_ar_seconds",
    "session_count",
    "ar_session_count",
    "unique_day_count",
    "visit_count",
    "total_views",
    "successful_ar_views",
    "ar_success_rate_pct",
    "avg_ar_engagement_seconds",
    "qr_handoff",
    "cta_clicks",
    "first_seen",
    "last_seen",
    "location",
    "attributes",
]

ACTIVITY_COLUMNS = [
    "visitor_id",
    "visitor_hint",
    "session_token",
    "timestamp",
    "succeeded",
    "action",
    "ar_engagement_seconds",
    "ar_engagement_state",
    "qr_was_scanned",
    "cta_clicked",
    "cta_timestamp",
    "cta_target_url",
    "cta_label",
    "is_ar_compatible",
    "error_message",
    "latitude",
    "longitude",
    "referer",
    "auxiliary_attributes",
]


def _iso(dt: Optional[datetime]) -> str:
    return dt.isoformat() if dt else ""


def _blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def format_attributes(attributes: Dict[str, Any]) -> str:
    """Render attributes as ``key: value`` pairs, skipping blank values."""
    return "; ".join(
        f"{key}: {value}" for key, value in attributes.items() if not _blank(value)
    )


def visitor_rows(visitors: Sequence[Visitor]) -> List[Dict[str, Any]]:
    """One export row per visitor, in the order given (rank = position)."""
    rows = []
    for rank, v in enumerate(visitors, start=1):
        rows.append({
            "rank": rank,
            "display_label": v.display_label,
            "visitor_id": v.id,
            "intent_score": v.intent_score,
            "intent_tier": v.intent_tier.value if v.intent_tier else "",
            "total_ar_seconds": round(v.total_ar_seconds, 2),
            "session_count": v.session_count,
            "ar_session_count": v.ar_session_count,
            "unique_day_count": v.unique_day_count,
            "visit_count": v.visit_count,
            "total_views": v.total_views,
            "successful_ar_views": v.successful_ar_views,
            "ar_success_rate_pct": round_half_up(v.ar_success_rate),
            "avg_ar_engagement_seconds": round(v.avg_ar_engagement_seconds, 1),
            "qr_handoff": v.had_qr_handoff,
            "cta_clicks": v.cta_click_count,
            "first_seen": _iso(v.first_seen),
            "last_seen": _iso(v.last_seen),
            "location": v.location_label,
            "attributes": format_attributes(v.merged_attributes),
        })
    return rows


def activity_rows(records: Sequence[LogRecord]) -> List[Dict[str, Any]]:
    """One audit row per record, in input order, with the resolved visitor key."""
    rows = []
    for r in records:
        rows.append({
            "visitor_id": resolve_identity(r).key,
            "visitor_hint": r.visitor_hint or "",
            "session_token": r.session_token,
            "timestamp": _iso(r.timestamp),
            "succeeded": r.succeeded,
            "action": r.action or "",
            "ar_engagement_seconds": r.ar_engagement_seconds if r.ar_engagement_seconds is not None else "",
            "ar_engagement_state": r.ar_engagement_state.value if r.ar_engagement_state else "",
            "qr_was_scanned": r.qr_was_scanned,
            "cta_clicked": r.cta_clicked,
            "cta_timestamp": _iso(r.cta_timestamp),
            "cta_target_url": r.cta_target_url or "",
            "cta_label": r.cta_label or "",
            "is_ar_compatible": "" if r.is_ar_compatible is None else r.is_ar_compatible,
            "error_message": r.error_message or "",
            "latitude": "" if r.latitude is None else r.latitude,
            "longitude": "" if r.longitude is None else r.longitude,
            "referer": r.referer or "",
            "auxiliary_attributes": (
                json.dumps(r.auxiliary_attributes, sort_keys=True, default=str)
                if r.auxiliary_attributes else ""
            ),
        })
    return rows


def write_report(report: EngagementReport, output_dir: str | Path) -> Dict[str, Path]:
    """
    Write the JSON report plus both CSV exports into *output_dir*.

    Returns:
        Mapping of export name to written path (only successful writes).
    """
    output_dir = Path(output_dir)
    targets = {
        "metrics": output_dir / "engagement_metrics.json",
        "visitors": output_dir / "visitors.csv",
        "activity": output_dir / "activity_log.csv",
    }

    written: Dict[str, Path] = {}
    if atomic_write_json(report.model_dump(mode="json"), targets["metrics"]):
        written["metrics"] = targets["metrics"]
    if atomic_write_csv(visitor_rows(report.visitors), targets["visitors"], VISITOR_COLUMNS):
        written["visitors"] = targets["visitors"]
    if atomic_write_csv(activity_rows(report.records), targets["activity"], ACTIVITY_COLUMNS):
        written["activity"] = targets["activity"]

    missing = set(targets) - set(written)
    if missing:
        logger.warning("Some exports failed to write: %s", ", ".join(sorted(missing)))
    else:
        logger.info("Wrote %d exports to %s", len(written), output_dir)
    return written
