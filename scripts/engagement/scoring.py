"""
Buying-Intent Scorer
=====================

Additive intent score, each component capped on its own:

  AR time        1 pt per 10s in AR                  (max 40)
  AR sessions    6 pts per engaged session           (max 30)
  Unique days    6 pts per calendar day seen         (max 12)
  QR hand-off    5 pts with AR time, 2 pts QR only   (max 5)
  CTA clicks     35 pts per click                    (max 35)
  Recency        5 pts decaying linearly over 30d    (max 5)

The sum is rounded half-up and not clamped, so the ceiling is soft (127 with
the defaults). CTA clicks dominate because the call-to-action is only shown
after a completed AR session. A QR scan without any AR time earns only 2 pts
so it never outranks real product engagement.

Functions:
  score_breakdown()        - Capped component values for one visitor
  calculate_intent_score() - Final rounded score
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from models.engagement_models import Visitor
from scripts.lib.config import DEFAULT_CONFIG
from scripts.lib.errors import ScoringError

DEFAULT_WEIGHTS: Dict[str, Any] = DEFAULT_CONFIG["scoring"]

SECONDS_PER_DAY = 86400.0


def _require_now(now: Optional[datetime]) -> datetime:
    if now is None:
        raise ScoringError("A reference 'now' is required for recency scoring")
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


def recency_points(
    last_seen: datetime,
    now: datetime,
    max_points: float = 5,
    decay_days: float = 30,
) -> float:
    """Linear decay from max_points at now to zero after decay_days."""
    days_since = (now - last_seen).total_seconds() / SECONDS_PER_DAY
    points = max_points * max(0.0, 1 - days_since / decay_days)
    return min(points, max_points)


def score_breakdown(
    visitor: Visitor,
    now: Optional[datetime],
    weights: Optional[Dict[str, Any]] = None,
) -> Dict[str, float]:
    """
    Capped component values for one visitor.

    Args:
        visitor: Accumulated visitor counters.
        now: Reference time for recency. Required.
        weights: Scoring section of the config (defaults when omitted).

    Raises:
        ScoringError: if *now* is None.
    """
    now = _require_now(now)
    w = weights or DEFAULT_WEIGHTS

    ar_time = w["ar_time"]
    ar_sessions = w["ar_sessions"]
    days = w["unique_days"]
    qr = w["qr_handoff"]
    cta = w["cta_clicks"]
    recency = w["recency"]

    if visitor.had_qr_handoff:
        qr_points = qr["with_ar"] if visitor.total_ar_seconds > 0 else qr["without_ar"]
    else:
        qr_points = 0

    return {
        "ar_time": min(visitor.total_ar_seconds / ar_time["per_point_seconds"], ar_time["cap"]),
        "ar_sessions": min(visitor.ar_session_count * ar_sessions["points_each"], ar_sessions["cap"]),
        "unique_days": min(visitor.unique_day_count * days["points_each"], days["cap"]),
        "qr_handoff": qr_points,
        "cta_clicks": min(visitor.cta_click_count * cta["points_each"], cta["cap"]),
        "recency": recency_points(
            visitor.last_seen, now, recency["max_points"], recency["decay_days"],
        ),
    }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_intent_score(
    visitor: Visitor,
    now: Optional[datetime],
    weights: Optional[Dict[str, Any]] = None,
) -> int:
    """Final intent score: the rounded sum of the capped components."""
    return round_half_up(sum(score_breakdown(visitor, now, weights).values()))
