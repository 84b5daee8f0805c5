"""
Session segmentation.

Sessions are the self-reported ``session_token`` values, counted exactly.
Records are grouped per visitor in a single pass; every per-visitor metric is
derived from that group rather than by rescanning the batch.

A time-gap heuristic (``segment_visits``) additionally splits a visitor's
timeline into inferred visits for reporting.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from models.engagement_models import LogRecord
from scripts.engagement.identity import Identity, resolve_identity

DEFAULT_VISIT_GAP = timedelta(hours=1)


class VisitorGroup:
    """A resolved identity and its records, oldest first."""

    __slots__ = ("identity", "records")

    def __init__(self, identity: Identity):
        self.identity = identity
        self.records: List[LogRecord] = []

    @property
    def key(self) -> str:
        return self.identity.key


def group_records(records: Iterable[LogRecord]) -> Dict[str, VisitorGroup]:
    """
    Build the visitor index in one pass.

    The first record seen for a key supplies its label and source. Groups
    keep first-seen insertion order, and each group's records are sorted by
    timestamp (stable, so equal timestamps keep arrival order).
    """
    groups: Dict[str, VisitorGroup] = {}
    for record in records:
        identity = resolve_identity(record)
        group = groups.get(identity.key)
        if group is None:
            group = groups[identity.key] = VisitorGroup(identity)
        group.records.append(record)

    for group in groups.values():
        group.records.sort(key=lambda r: r.timestamp)
    return groups


def distinct_sessions(records: Iterable[LogRecord]) -> Set[str]:
    return {r.session_token for r in records}


def ar_sessions(records: Iterable[LogRecord]) -> Set[str]:
    """Session tokens with at least one record showing real AR engagement."""
    return {r.session_token for r in records if r.engaged_ar}


def day_key(ts: datetime) -> str:
    """Calendar date of the timestamp as given (no timezone conversion)."""
    return ts.strftime("%Y-%m-%d")


def unique_days(records: Iterable[LogRecord]) -> Set[str]:
    return {day_key(r.timestamp) for r in records}


def segment_visits(
    timestamps: Sequence[datetime],
    gap: timedelta = DEFAULT_VISIT_GAP,
) -> List[Tuple[datetime, datetime]]:
    """
    Split sorted timestamps into visits.

    A new visit starts whenever the gap to the previous event is strictly
    greater than *gap*.

    Returns:
        List of (start, end) pairs, one per visit.
    """
    visits: List[Tuple[datetime, datetime]] = []
    if not timestamps:
        return visits

    ordered = sorted(timestamps)
    start = prev = ordered[0]
    for ts in ordered[1:]:
        if ts - prev > gap:
            visits.append((start, prev))
            start = ts
        prev = ts
    visits.append((start, prev))
    return visits
