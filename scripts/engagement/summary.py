"""
Campaign-level rollups that sit beside the visitor leaderboard.

Functions:
  summarize_campaign()  - View, AR, QR, device and engagement-time totals
  analyze_attributes()  - Per-parameter breakdown of link metadata
  summarize_geography() - Located records/visitors and the busiest location
"""
from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any, Dict, List, Sequence

from models.engagement_models import IdentitySource, LogRecord, Visitor
from scripts.engagement.metrics import location_label
from scripts.engagement.tiers import tier_counts

QR_SHOWN_ACTION = "show_qr_code"

# Engagement-time buckets in seconds: [lower, upper)
ENGAGEMENT_BUCKETS = (
    ("short", 0, 30),
    ("medium", 30, 60),
    ("long", 60, 120),
    ("very_long", 120, float("inf")),
)


def _safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Zero-safe division."""
    if denominator == 0:
        return default
    return numerator / denominator


def summarize_campaign(
    records: Sequence[LogRecord],
    visitors: Sequence[Visitor],
) -> Dict[str, Any]:
    """Totals over the included records and built visitors."""
    total_views = len(records)
    successful = sum(1 for r in records if r.succeeded)
    qr_shown = sum(1 for r in records if r.action == QR_SHOWN_ACTION)
    qr_scanned = sum(1 for r in records if r.qr_was_scanned)
    errors = sum(1 for r in records if not r.succeeded or r.error_message)
    compatible = sum(1 for r in records if r.is_ar_compatible is True)
    incompatible = sum(1 for r in records if r.is_ar_compatible is False)
    with_metadata = sum(1 for r in records if r.auxiliary_attributes)

    engaged = [r.ar_engagement_seconds for r in records if (r.ar_engagement_seconds or 0) > 0]
    distribution = {name: 0 for name, _, _ in ENGAGEMENT_BUCKETS}
    for seconds in engaged:
        for name, low, high in ENGAGEMENT_BUCKETS:
            if low <= seconds < high:
                distribution[name] += 1
                break

    tiers = tier_counts({v.id: v.intent_tier for v in visitors if v.intent_tier})

    return {
        "total_views": total_views,
        "successful_ar_views": successful,
        "ar_success_rate": round(_safe_div(successful, total_views) * 100, 2),
        "qr_code_shown": qr_shown,
        "qr_scanned": qr_scanned,
        "qr_conversion_rate": round(_safe_div(qr_scanned, qr_shown) * 100, 2),
        "errors": errors,
        "ar_compatible_devices": compatible,
        "non_ar_compatible_devices": incompatible,
        "views_with_additional_metadata": with_metadata,
        "unique_visitors": len(visitors),
        "identified_visitors": sum(
            1 for v in visitors if v.identity_source != IdentitySource.SESSION
        ),
        "cta_clicks": sum(v.cta_click_count for v in visitors),
        "total_ar_seconds": sum(v.total_ar_seconds for v in visitors),
        "engaged_records": len(engaged),
        "avg_engagement_seconds": round(_safe_div(sum(engaged), len(engaged)), 2),
        "engagement_distribution": distribution,
        "tier_counts": tiers,
    }


def analyze_attributes(records: Sequence[LogRecord]) -> List[Dict[str, Any]]:
    """
    Break down every auxiliary attribute key seen in the batch.

    Returns:
        One entry per parameter (sorted by name) with unique value count,
        total occurrences and {value: {count, successful_ar_views}}.
    """
    breakdown: Dict[str, Dict[str, Dict[str, int]]] = defaultdict(
        lambda: defaultdict(lambda: {"count": 0, "successful_ar_views": 0})
    )
    for record in records:
        for name, value in record.auxiliary_attributes.items():
            stats = breakdown[name][str(value)]
            stats["count"] += 1
            if record.succeeded:
                stats["successful_ar_views"] += 1

    results = []
    for name in sorted(breakdown):
        values = breakdown[name]
        results.append({
            "parameter_name": name,
            "unique_values_count": len(values),
            "total_occurrences": sum(s["count"] for s in values.values()),
            "values_breakdown": {value: dict(stats) for value, stats in values.items()},
        })
    return results


def summarize_geography(
    records: Sequence[LogRecord],
    visitors: Sequence[Visitor],
) -> Dict[str, Any]:
    located = [r for r in records if r.has_location]
    labels = Counter(location_label(r.latitude, r.longitude) for r in located)
    top = labels.most_common(1)
    return {
        "located_records": len(located),
        "located_visitors": sum(1 for v in visitors if v.latitude is not None),
        "top_location": top[0][0] if top else None,
        "locations": dict(labels.most_common()),
    }
