"""
Visitor ranking.

Stable sort on one selectable column. Equal values keep the order they had
going in (first-seen order from the grouping pass), in both directions, so
identical input always yields an identical ranking.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Sequence

from models.engagement_models import Visitor
from scripts.lib.errors import ReportError

SORT_KEYS: Dict[str, Callable[[Visitor], Any]] = {
    "intent_score": lambda v: v.intent_score,
    "total_ar_seconds": lambda v: v.total_ar_seconds,
    "session_count": lambda v: v.session_count,
    "ar_success_rate": lambda v: v.ar_success_rate,
    "total_views": lambda v: v.total_views,
    "ar_session_count": lambda v: v.ar_session_count,
    "unique_day_count": lambda v: v.unique_day_count,
    "cta_click_count": lambda v: v.cta_click_count,
    "first_seen": lambda v: v.first_seen,
    "last_seen": lambda v: v.last_seen,
    "display_label": lambda v: v.display_label,
    "location_label": lambda v: v.location_label,
}


def sort_visitors(
    visitors: Sequence[Visitor],
    sort_by: str = "intent_score",
    descending: bool = True,
) -> List[Visitor]:
    """
    Return a new list of *visitors* ordered by *sort_by*.

    Raises:
        ReportError: unknown sort key.
    """
    try:
        key = SORT_KEYS[sort_by]
    except KeyError:
        raise ReportError(
            f"Unknown sort key '{sort_by}'",
            code="INVALID_SORT_KEY",
            allowed=sorted(SORT_KEYS),
        )
    # list.sort(reverse=True) keeps ties in their original order
    return sorted(visitors, key=key, reverse=descending)
