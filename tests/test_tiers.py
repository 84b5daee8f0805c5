"""Tests for population-relative tier classification."""

import pytest

from models.engagement_models import IntentTier
from scripts.engagement.tiers import classify_tiers, compute_thresholds, tier_counts


def _population(scores):
    return [(f"v{i}", score) for i, score in enumerate(scores)]


class TestScoreMode:
    def test_spread_population(self):
        tiers, thresholds = classify_tiers(_population([0, 0, 0, 5, 5, 5, 50, 55, 90, 95]))
        assert thresholds.mode == "score"
        assert thresholds.mean == pytest.approx(30.5)
        assert thresholds.stddev == pytest.approx(36.637, abs=1e-3)
        assert thresholds.q1 == 0
        assert thresholds.median == 5
        assert thresholds.q3 == 55
        assert thresholds.high_threshold == 55
        assert thresholds.low_threshold == 0

        high = {key for key, tier in tiers.items() if tier == IntentTier.HIGH}
        assert high == {"v7", "v8", "v9"}
        # Q1 is 0, so nothing falls below the low threshold
        assert tiers["v0"] == IntentTier.MEDIUM
        assert tiers["v6"] == IntentTier.MEDIUM
        assert IntentTier.LOW not in tiers.values()

    def test_stddev_alone_triggers_score_mode(self):
        tiers, thresholds = classify_tiers(_population([0, 0, 0, 0, 20]))
        assert thresholds.q3 - thresholds.q1 == 0
        assert thresholds.stddev == pytest.approx(8.0)
        assert thresholds.mode == "score"
        assert thresholds.high_threshold == pytest.approx(8.0)
        assert tiers["v4"] == IntentTier.HIGH
        assert tiers["v0"] == IntentTier.MEDIUM

    def test_low_tier_below_q1(self):
        tiers, thresholds = classify_tiers(_population([0, 40, 45, 50, 55, 60, 100, 110]))
        assert thresholds.mode == "score"
        assert thresholds.q1 == 45
        # mean 57.5, stddev sqrt(1050): the band sits below Q1
        assert thresholds.low_threshold == pytest.approx(41.298, abs=1e-3)
        assert thresholds.high_threshold == 100
        assert tiers["v0"] == IntentTier.LOW
        assert tiers["v1"] == IntentTier.LOW
        assert tiers["v2"] == IntentTier.MEDIUM
        assert tiers["v5"] == IntentTier.MEDIUM
        assert tiers["v6"] == IntentTier.HIGH


class TestPercentileMode:
    def test_clustered_population(self):
        tiers, thresholds = classify_tiers(_population([48, 52, 50, 49, 51]))
        assert thresholds.mode == "percentile"
        assert tiers["v1"] == IntentTier.HIGH
        assert tiers["v4"] == IntentTier.MEDIUM
        assert tiers["v2"] == IntentTier.MEDIUM
        assert tiers["v3"] == IntentTier.LOW
        assert tiers["v0"] == IntentTier.LOW
        assert tier_counts(tiers) == {"High": 1, "Medium": 2, "Low": 2}

    def test_ties_keep_input_order(self):
        tiers, _ = classify_tiers(_population([10, 10, 10, 10, 10]))
        assert tiers["v0"] == IntentTier.HIGH
        assert [tiers[f"v{i}"] for i in range(1, 5)] == [
            IntentTier.MEDIUM, IntentTier.MEDIUM, IntentTier.LOW, IntentTier.LOW,
        ]

    def test_single_visitor_is_high(self):
        tiers, thresholds = classify_tiers([("only", 12)])
        assert thresholds.mode == "percentile"
        assert tiers == {"only": IntentTier.HIGH}

    def test_ten_visitors_split_two_four_four(self):
        tiers, _ = classify_tiers(_population([50, 51, 52, 53, 54, 55, 56, 57, 58, 59]))
        assert tier_counts(tiers) == {"High": 2, "Medium": 4, "Low": 4}


class TestEdgeCases:
    def test_empty_population(self):
        tiers, thresholds = classify_tiers([])
        assert tiers == {}
        assert thresholds.mode == "empty"

    def test_compute_thresholds_empty(self):
        assert compute_thresholds([]).mode == "empty"

    def test_every_visitor_gets_a_tier(self):
        population = _population([3, 80, 17, 17, 64, 0, 99])
        tiers, _ = classify_tiers(population)
        assert set(tiers) == {key for key, _ in population}

    def test_custom_shares(self):
        config = {
            "stddev_band": 0.5,
            "min_stddev": 5,
            "min_iqr": 10,
            "high_share": 0.4,
            "medium_share": 0.2,
        }
        tiers, _ = classify_tiers(_population([50, 50, 50, 50, 50]), config)
        assert tier_counts(tiers) == {"High": 2, "Medium": 1, "Low": 2}
