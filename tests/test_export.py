"""Tests for the flat exports and report writing."""

import csv
import json

from models.engagement_models import IntentTier
from scripts.engagement.engine import run_engagement_analysis
from scripts.engagement.export import (
    ACTIVITY_COLUMNS,
    VISITOR_COLUMNS,
    activity_rows,
    format_attributes,
    visitor_rows,
    write_report,
)


def _read_csv(path):
    with open(path, newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))


class TestFormatAttributes:
    def test_skips_blank_values(self):
        assert format_attributes({"name": "Ana", "u": "  ", "email": None, "n": 0}) == "name: Ana; n: 0"

    def test_empty(self):
        assert format_attributes({}) == ""


class TestVisitorRows:
    def test_rank_and_derived_fields(self, make_visitor):
        rows = visitor_rows([
            make_visitor(id="a", intent_score=80, intent_tier=IntentTier.HIGH,
                         total_views=8, successful_ar_views=1,
                         merged_attributes={"name": "Ana"}),
            make_visitor(id="b"),
        ])
        assert [r["rank"] for r in rows] == [1, 2]
        assert rows[0]["intent_tier"] == "High"
        assert rows[0]["ar_success_rate_pct"] == 13
        assert rows[0]["attributes"] == "name: Ana"
        assert rows[1]["intent_tier"] == ""
        assert rows[1]["location"] == "Unknown"
        assert set(rows[0]) == set(VISITOR_COLUMNS)


class TestActivityRows:
    def test_row_per_record(self, make_record):
        rows = activity_rows([
            make_record(session_id="s1", additional_metadata={"email": "a@b.co", "b": 1}),
            make_record(session_id="s2", ar_engagement_duration_seconds=12),
        ])
        assert [r["visitor_id"] for r in rows] == ["a@b.co", "s2"]
        assert rows[0]["auxiliary_attributes"] == '{"b": 1, "email": "a@b.co"}'
        assert rows[0]["ar_engagement_seconds"] == ""
        assert rows[1]["ar_engagement_seconds"] == 12
        assert set(rows[0]) == set(ACTIVITY_COLUMNS)

    def test_consistent_with_visitor_rows(self, make_row, now):
        rows = [
            make_row(persistent_user_id="U1", ar_engagement_duration_seconds=45),
            make_row(persistent_user_id="U1", session_id="s2", ar_engagement_duration_seconds=15),
            make_row(session_id="s3", additional_metadata={"email": "x@y.z"}),
            make_row(session_id="s4", ar_engagement_duration_seconds="n/a"),
        ]
        report = run_engagement_analysis(rows, now)
        people = visitor_rows(report.visitors)
        audit = activity_rows(report.records)

        assert sum(p["total_views"] for p in people) == len(audit)
        assert sum(p["total_ar_seconds"] for p in people) == sum(
            a["ar_engagement_seconds"] or 0 for a in audit
        )
        assert {a["visitor_id"] for a in audit} == {p["visitor_id"] for p in people}


class TestWriteReport:
    def test_writes_all_exports(self, make_row, now, tmp_path):
        report = run_engagement_analysis(
            [make_row(persistent_user_id="U1", cta_clicked=True)], now,
        )
        written = write_report(report, tmp_path)
        assert set(written) == {"metrics", "visitors", "activity"}

        metrics = json.loads((tmp_path / "engagement_metrics.json").read_text(encoding="utf-8"))
        assert metrics["visitors"][0]["id"] == "U1"
        assert "records" not in metrics
        assert metrics["thresholds"]["mode"] == "percentile"

        assert _read_csv(tmp_path / "visitors.csv")[0]["display_label"] == "U1"
        assert _read_csv(tmp_path / "activity_log.csv")[0]["cta_clicked"] == "True"

    def test_empty_report_writes_headers(self, now, tmp_path):
        write_report(run_engagement_analysis([], now), tmp_path)
        with open(tmp_path / "visitors.csv", newline="", encoding="utf-8") as fh:
            assert next(csv.reader(fh)) == VISITOR_COLUMNS
        assert _read_csv(tmp_path / "activity_log.csv") == []
