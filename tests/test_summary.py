"""Tests for the campaign-level rollups."""

from models.engagement_models import IntentTier, LogRecord
from scripts.engagement.engine import build_visitors
from scripts.engagement.summary import (
    analyze_attributes,
    summarize_campaign,
    summarize_geography,
)


class TestSummarizeCampaign:
    def test_counts(self, make_record, make_visitor):
        records = [
            make_record(action="show_qr_code", is_ar_compatible=False),
            make_record(action="show_qr_code", qr_scanned=True, success=True),
            make_record(success=True, ar_engagement_duration_seconds=29, is_ar_compatible=True),
            make_record(success=True, ar_engagement_duration_seconds=30, error_message="lost tracking"),
            make_record(success=True, ar_engagement_duration_seconds=60,
                        additional_metadata={"email": "a@b.co"}),
            make_record(success=False, ar_engagement_duration_seconds=120),
        ]
        visitors = [
            make_visitor(id="x", intent_tier=IntentTier.HIGH, cta_click_count=2),
            make_visitor(id="y", intent_tier=IntentTier.LOW),
        ]
        summary = summarize_campaign(records, visitors)

        assert summary["total_views"] == 6
        assert summary["successful_ar_views"] == 4
        assert summary["ar_success_rate"] == 66.67
        assert summary["qr_code_shown"] == 2
        assert summary["qr_scanned"] == 1
        assert summary["qr_conversion_rate"] == 50.0
        assert summary["errors"] == 3
        assert summary["ar_compatible_devices"] == 1
        assert summary["non_ar_compatible_devices"] == 1
        assert summary["views_with_additional_metadata"] == 1
        assert summary["engaged_records"] == 4
        assert summary["avg_engagement_seconds"] == 59.75
        assert summary["engagement_distribution"] == {
            "short": 1, "medium": 1, "long": 1, "very_long": 1,
        }
        assert summary["cta_clicks"] == 2
        assert summary["tier_counts"] == {"High": 1, "Medium": 0, "Low": 1}

    def test_identified_visitors(self, make_record):
        records = [
            make_record(session_id="s1"),
            make_record(session_id="s2", persistent_user_id="U1"),
            make_record(session_id="s3", additional_metadata={"name": "Ana"}),
        ]
        summary = summarize_campaign(records, build_visitors(records))
        assert summary["unique_visitors"] == 3
        assert summary["identified_visitors"] == 2

    def test_empty(self):
        summary = summarize_campaign([], [])
        assert summary["total_views"] == 0
        assert summary["ar_success_rate"] == 0
        assert summary["qr_conversion_rate"] == 0
        assert summary["avg_engagement_seconds"] == 0
        assert summary["tier_counts"] == {"High": 0, "Medium": 0, "Low": 0}


class TestAnalyzeAttributes:
    def test_breakdown(self, make_record):
        records = [
            make_record(success=True, additional_metadata={"utm_source": "mail", "u": 7}),
            make_record(success=False, additional_metadata={"utm_source": "mail"}),
            make_record(success=True, additional_metadata={"utm_source": "ads"}),
            make_record(),
        ]
        result = analyze_attributes(records)
        assert [entry["parameter_name"] for entry in result] == ["u", "utm_source"]

        utm = result[1]
        assert utm["unique_values_count"] == 2
        assert utm["total_occurrences"] == 3
        assert utm["values_breakdown"]["mail"] == {"count": 2, "successful_ar_views": 1}
        assert utm["values_breakdown"]["ads"] == {"count": 1, "successful_ar_views": 1}
        assert result[0]["values_breakdown"] == {"7": {"count": 1, "successful_ar_views": 1}}

    def test_no_metadata(self, make_record):
        assert analyze_attributes([make_record()]) == []


class TestSummarizeGeography:
    def test_rollup(self, make_record):
        records = [
            make_record(session_id="a", latitude=40.7128, longitude=-74.006),
            make_record(session_id="b", latitude=40.7128, longitude=-74.006),
            make_record(session_id="c", latitude=51.5074, longitude=-0.1278),
            make_record(session_id="d"),
        ]
        geo = summarize_geography(records, build_visitors(records))
        assert geo["located_records"] == 3
        assert geo["located_visitors"] == 3
        assert geo["top_location"] == "40.7128, -74.0060"
        assert geo["locations"] == {"40.7128, -74.0060": 2, "51.5074, -0.1278": 1}

    def test_nothing_located(self):
        record = LogRecord.model_validate({"session_id": "s", "timestamp": "2024-06-01T00:00:00Z"})
        geo = summarize_geography([record], [])
        assert geo["top_location"] is None
        assert geo["locations"] == {}
