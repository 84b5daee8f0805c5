"""
Population-relative intent tiers.

Tiers are derived from the batch's own score distribution, so a visitor's tier
can change when the rest of the batch changes. Always classify the full batch
in one call.

Two modes:
  score       when the batch is spread out (stddev > 5 or IQR > 10):
              High  >= max(Q3, mean + 0.5*stddev)
              Medium >= min(Q1, mean - 0.5*stddev)
              Low   otherwise
  percentile  when scores are clustered: rank by score (descending, stable)
              and take the top 20% as High, the next 40% as Medium.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from models.engagement_models import IntentTier, TierThresholds
from scripts.lib.config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)

DEFAULT_TIER_CONFIG: Dict[str, Any] = DEFAULT_CONFIG["tiers"]


def _quantile(sorted_scores: Sequence[float], fraction: float) -> float:
    return sorted_scores[math.floor(len(sorted_scores) * fraction)]


def compute_thresholds(
    scores: Sequence[float],
    config: Optional[Dict[str, Any]] = None,
) -> TierThresholds:
    """Distribution statistics and the classification mode for *scores*."""
    if not scores:
        return TierThresholds()

    cfg = config or DEFAULT_TIER_CONFIG
    ordered = sorted(scores)
    n = len(ordered)

    mean = sum(ordered) / n
    stddev = math.sqrt(sum((s - mean) ** 2 for s in ordered) / n)
    q1 = _quantile(ordered, 0.25)
    median = _quantile(ordered, 0.5)
    q3 = _quantile(ordered, 0.75)

    band = cfg["stddev_band"] * stddev
    spread_out = stddev > cfg["min_stddev"] or (q3 - q1) > cfg["min_iqr"]

    return TierThresholds(
        mode="score" if spread_out else "percentile",
        mean=mean,
        stddev=stddev,
        q1=q1,
        median=median,
        q3=q3,
        high_threshold=max(q3, mean + band),
        low_threshold=min(q1, mean - band),
    )


def classify_tiers(
    scores: Sequence[Tuple[str, float]],
    config: Optional[Dict[str, Any]] = None,
) -> Tuple[Dict[str, IntentTier], TierThresholds]:
    """
    Assign a tier to every (key, score) pair of the batch.

    Args:
        scores: (visitor key, score) for the whole population, keys unique.
        config: Tiers section of the config (defaults when omitted).

    Returns:
        (key -> tier, thresholds used). Empty input gives ({}, empty thresholds).
    """
    cfg = config or DEFAULT_TIER_CONFIG
    thresholds = compute_thresholds([s for _, s in scores], cfg)
    tiers: Dict[str, IntentTier] = {}
    if not scores:
        return tiers, thresholds

    if thresholds.mode == "score":
        for key, score in scores:
            if score >= thresholds.high_threshold:
                tiers[key] = IntentTier.HIGH
            elif score >= thresholds.low_threshold:
                tiers[key] = IntentTier.MEDIUM
            else:
                tiers[key] = IntentTier.LOW
    else:
        ranked: List[Tuple[str, float]] = sorted(scores, key=lambda pair: pair[1], reverse=True)
        n = len(ranked)
        high_cut = cfg["high_share"]
        # 0.2 + 0.4 is 0.6000000000000001 in floats
        medium_cut = round(cfg["high_share"] + cfg["medium_share"], 9)
        for rank, (key, _) in enumerate(ranked):
            percentile = rank / n
            if percentile < high_cut:
                tiers[key] = IntentTier.HIGH
            elif percentile < medium_cut:
                tiers[key] = IntentTier.MEDIUM
            else:
                tiers[key] = IntentTier.LOW

    logger.debug(
        "Classified %d visitors (%s mode, high>=%.1f, low>=%.1f)",
        len(tiers), thresholds.mode,
        thresholds.high_threshold, thresholds.low_threshold,
    )
    return tiers, thresholds


def tier_counts(tiers: Dict[str, IntentTier]) -> Dict[str, int]:
    counts = {tier.value: 0 for tier in IntentTier}
    for tier in tiers.values():
        counts[tier.value] += 1
    return counts
