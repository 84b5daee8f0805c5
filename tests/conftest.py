"""Shared fixtures for the engagement tests."""

from datetime import datetime, timezone

import pytest

from models.engagement_models import LogRecord, Visitor

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def build_row(**overrides):
    """A minimal valid raw log row using the backend's column names."""
    row = {"session_id": "s1", "timestamp": "2024-06-01T12:00:00Z"}
    row.update(overrides)
    return row


def build_visitor(**overrides):
    fields = {
        "id": "v1",
        "display_label": "v1",
        "first_seen": NOW,
        "last_seen": NOW,
    }
    fields.update(overrides)
    return Visitor(**fields)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_row():
    return build_row


@pytest.fixture
def make_record():
    return lambda **overrides: LogRecord.model_validate(build_row(**overrides))


@pytest.fixture
def make_visitor():
    return build_visitor
