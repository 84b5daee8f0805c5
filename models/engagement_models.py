"""
AR Engagement — Pydantic Models
=================================

Raw interaction-log records as exported by the campaign backend, the per-visitor
rollup built from them, and the report envelope returned by the engine.

LogRecord accepts both its own field names and the backend's raw column names
(``persistent_user_id``, ``session_id``, ``additional_metadata`` ...). Optional
fields are coerced leniently: garbage in a numeric or boolean column becomes
None/False instead of rejecting the row. Only a missing or unparseable
``timestamp`` / ``session_id`` makes a row invalid.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


class ArEngagementState(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    RECOVERED = "recovered"
    OTHER = "other"


# States that count as real AR engagement when the attempt succeeded
ENGAGED_STATES = frozenset({
    ArEngagementState.ACTIVE,
    ArEngagementState.COMPLETED,
    ArEngagementState.RECOVERED,
})


class IntentTier(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class IdentitySource(str, Enum):
    VISITOR_HINT = "visitor_hint"
    EMAIL = "email"
    NAME = "name"
    SHORT_CODE = "u"
    SESSION = "session"


# ─── Coercion helpers ───────────────────────────────────────

_TRUE_STRINGS = {"true", "1", "yes", "y", "on"}
_FALSE_STRINGS = {"false", "0", "no", "n", "off", ""}


def _coerce_flag(value: Any) -> bool:
    """Lenient bool: missing or unrecognised values are False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _coerce_optional_flag(value: Any) -> Optional[bool]:
    """Like _coerce_flag but keeps 'unknown' distinct from False."""
    if value is None:
        return None
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        return None
    return _coerce_flag(value)


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


_CTA_DETAIL_KEYS = (
    "cta_timestamp", "cta_click_timestamp",
    "cta_target_url", "cta_url",
    "cta_label", "cta_title",
)


# ─── Raw log record ─────────────────────────────────────────

class LogRecord(BaseModel):
    """One interaction event: page view, AR attempt, QR scan or CTA click."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    visitor_hint: Optional[str] = Field(None, alias="persistent_user_id")
    auxiliary_attributes: Dict[str, Any] = Field(
        default_factory=dict, alias="additional_metadata",
    )
    session_token: str = Field(..., alias="session_id")
    timestamp: datetime
    ar_engagement_seconds: Optional[float] = Field(
        None, alias="ar_engagement_duration_seconds",
    )
    succeeded: bool = Field(False, alias="success")
    ar_engagement_state: Optional[ArEngagementState] = Field(
        None, alias="ar_engagement_status",
    )
    qr_was_scanned: bool = Field(False, alias="qr_scanned")
    cta_clicked: bool = False
    cta_timestamp: Optional[datetime] = Field(None, alias="cta_click_timestamp")
    cta_target_url: Optional[str] = Field(None, alias="cta_url")
    cta_label: Optional[str] = Field(None, alias="cta_title")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    action: Optional[str] = None
    is_ar_compatible: Optional[bool] = None
    error_message: Optional[str] = None
    referer: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_cta_details_without_click(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and not _coerce_flag(data.get("cta_clicked")):
            data = {k: v for k, v in data.items() if k not in _CTA_DETAIL_KEYS}
        return data

    @field_validator("visitor_hint", mode="before")
    @classmethod
    def _hint(cls, v: Any) -> Optional[str]:
        # Whitespace-only hints are real ids; only absent/empty ones are dropped
        if v is None or v == "" or isinstance(v, bool):
            return None
        return str(v)

    @field_validator("session_token", mode="before")
    @classmethod
    def _session_token(cls, v: Any) -> str:
        text = _coerce_text(v)
        if text is None:
            raise ValueError("session_id is required")
        return text

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_present(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("timestamp is required")
        return v

    @field_validator("timestamp", "cta_timestamp", mode="after")
    @classmethod
    def _timestamp_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @field_validator("cta_timestamp", mode="before")
    @classmethod
    def _cta_timestamp(cls, v: Any) -> Any:
        if v is None or isinstance(v, datetime):
            return v
        try:
            return datetime.fromisoformat(str(v).strip().replace("Z", "+00:00"))
        except ValueError:
            return None

    @field_validator("auxiliary_attributes", mode="before")
    @classmethod
    def _attributes(cls, v: Any) -> Dict[str, Any]:
        if not isinstance(v, Mapping):
            return {}
        return {str(k): val for k, val in v.items()}

    @field_validator("ar_engagement_seconds", mode="before")
    @classmethod
    def _seconds(cls, v: Any) -> Optional[float]:
        number = _coerce_number(v)
        if number is None or number < 0:
            return None
        return number

    @field_validator("succeeded", "qr_was_scanned", "cta_clicked", mode="before")
    @classmethod
    def _flags(cls, v: Any) -> bool:
        return _coerce_flag(v)

    @field_validator("is_ar_compatible", mode="before")
    @classmethod
    def _optional_flag(cls, v: Any) -> Optional[bool]:
        return _coerce_optional_flag(v)

    @field_validator("ar_engagement_state", mode="before")
    @classmethod
    def _state(cls, v: Any) -> Optional[ArEngagementState]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if isinstance(v, ArEngagementState):
            return v
        try:
            return ArEngagementState(str(v).strip().lower())
        except ValueError:
            return ArEngagementState.OTHER

    @field_validator("latitude", mode="before")
    @classmethod
    def _latitude(cls, v: Any) -> Optional[float]:
        number = _coerce_number(v)
        return number if number is not None and -90 <= number <= 90 else None

    @field_validator("longitude", mode="before")
    @classmethod
    def _longitude(cls, v: Any) -> Optional[float]:
        number = _coerce_number(v)
        return number if number is not None and -180 <= number <= 180 else None

    @field_validator(
        "cta_target_url", "cta_label", "action", "error_message", "referer",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _coerce_text(v)

    @property
    def engaged_ar(self) -> bool:
        """True when this record shows actual AR engagement, not just an attempt."""
        if (self.ar_engagement_seconds or 0) > 0:
            return True
        return self.succeeded and self.ar_engagement_state in ENGAGED_STATES

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


# ─── Visitor rollup ─────────────────────────────────────────

class Visitor(BaseModel):
    """All of one resolved identity's records folded into counters."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_label: str
    identity_source: IdentitySource = IdentitySource.SESSION
    total_ar_seconds: float = 0.0
    session_count: int = 0
    ar_session_count: int = 0
    unique_day_count: int = 0
    had_qr_handoff: bool = False
    cta_click_count: int = 0
    first_seen: datetime
    last_seen: datetime
    merged_attributes: Dict[str, Any] = Field(default_factory=dict)
    total_views: int = 0
    successful_ar_views: int = 0
    avg_ar_engagement_seconds: float = 0.0
    visit_count: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_label: str = "Unknown"
    intent_score: int = 0
    intent_tier: Optional[IntentTier] = None

    @computed_field
    @property
    def ar_success_rate(self) -> float:
        """Share of views with a successful AR outcome, as a percentage."""
        if self.total_views == 0:
            return 0.0
        return self.successful_ar_views / self.total_views * 100


# ─── Report envelope ────────────────────────────────────────

class TierThresholds(BaseModel):
    """Distribution statistics the tier classifier derived from one batch."""
    mode: Literal["score", "percentile", "empty"] = "empty"
    mean: float = 0.0
    stddev: float = 0.0
    q1: float = 0.0
    median: float = 0.0
    q3: float = 0.0
    high_threshold: float = 0.0
    low_threshold: float = 0.0


class EngagementReport(BaseModel):
    """Everything one analysis run produces."""
    generated_at: datetime
    sort_by: str = "intent_score"
    descending: bool = True
    record_count: int = 0
    rejected_records: int = 0
    visitors: List[Visitor] = Field(default_factory=list)
    records: List[LogRecord] = Field(default_factory=list, exclude=True)
    thresholds: TierThresholds = Field(default_factory=TierThresholds)
    summary: Dict[str, Any] = Field(default_factory=dict)
