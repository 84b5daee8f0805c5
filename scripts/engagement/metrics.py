"""
Metric accumulation.

Folds one visitor group's records into the counters of a Visitor. Nothing here
raises for bad data: optional numerics the parser could not read are already
None and count as zero, missing flags are already False.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional

from models.engagement_models import LogRecord, Visitor
from scripts.engagement.identity import belongs_to
from scripts.engagement.sessions import (
    DEFAULT_VISIT_GAP,
    VisitorGroup,
    ar_sessions,
    distinct_sessions,
    segment_visits,
    unique_days,
)

UNKNOWN_LOCATION = "Unknown"


def location_label(latitude: Optional[float], longitude: Optional[float]) -> str:
    """Coordinate rendering used in place of a reverse-geocoded city."""
    if latitude is None or longitude is None:
        return UNKNOWN_LOCATION
    return f"{latitude:.4f}, {longitude:.4f}"


def merge_attributes(records: List[LogRecord]) -> Dict[str, Any]:
    """Union of auxiliary attributes; later records win on key conflicts.

    *records* must already be in timestamp order.
    """
    merged: Dict[str, Any] = {}
    for record in records:
        merged.update(record.auxiliary_attributes)
    return merged


def accumulate_visitor(
    group: VisitorGroup,
    visit_gap: timedelta = DEFAULT_VISIT_GAP,
) -> Visitor:
    """
    Build the unscored Visitor for one group.

    Args:
        group: Visitor group from ``group_records`` (records sorted by time).
        visit_gap: Inactivity gap that separates inferred visits.

    Returns:
        Visitor with every counter populated, intent_score 0, no tier.

    Raises:
        ValueError: empty group, or a record that resolves to another visitor.
    """
    records = group.records
    if not records:
        raise ValueError(f"Visitor group {group.key!r} has no records")
    strays = [r.session_token for r in records if not belongs_to(r, group.key)]
    if strays:
        raise ValueError(f"Visitor group {group.key!r} holds foreign records: {strays[:3]}")

    total_ar_seconds = 0.0
    engaged_seconds: List[float] = []
    had_qr_handoff = False
    cta_click_count = 0
    successful_ar_views = 0
    first_seen = last_seen = records[0].timestamp
    latest_located: Optional[LogRecord] = None

    for record in records:
        seconds = record.ar_engagement_seconds or 0.0
        total_ar_seconds += seconds
        if seconds > 0:
            engaged_seconds.append(seconds)
        if record.qr_was_scanned:
            had_qr_handoff = True
        if record.cta_clicked:
            cta_click_count += 1
        if record.succeeded:
            successful_ar_views += 1

        if record.timestamp < first_seen:
            first_seen = record.timestamp
        if record.timestamp > last_seen:
            last_seen = record.timestamp
        if record.has_location and (
            latest_located is None or record.timestamp >= latest_located.timestamp
        ):
            latest_located = record

    latitude = latest_located.latitude if latest_located else None
    longitude = latest_located.longitude if latest_located else None

    return Visitor(
        id=group.identity.key,
        display_label=group.identity.label,
        identity_source=group.identity.source,
        total_ar_seconds=total_ar_seconds,
        session_count=len(distinct_sessions(records)),
        ar_session_count=len(ar_sessions(records)),
        unique_day_count=len(unique_days(records)),
        had_qr_handoff=had_qr_handoff,
        cta_click_count=cta_click_count,
        first_seen=first_seen,
        last_seen=last_seen,
        merged_attributes=merge_attributes(records),
        total_views=len(records),
        successful_ar_views=successful_ar_views,
        avg_ar_engagement_seconds=(
            sum(engaged_seconds) / len(engaged_seconds) if engaged_seconds else 0.0
        ),
        visit_count=len(segment_visits([r.timestamp for r in records], visit_gap)),
        latitude=latitude,
        longitude=longitude,
        location_label=location_label(latitude, longitude),
    )
