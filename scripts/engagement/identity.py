"""
Visitor identity resolution.

A record maps to exactly one visitor key via a fixed priority chain:

    1. visitor_hint (persisted cross-session user id), used verbatim
    2. auxiliary_attributes, checked in IDENTITY_ATTRIBUTES order
    3. session_token, which every valid record carries

The same function is used both to group records and to decide whether a
record belongs to an already-built visitor, so the two can never disagree.
"""
from __future__ import annotations

from typing import Any, Dict, NamedTuple, Optional, Tuple

from models.engagement_models import IdentitySource, LogRecord

HINT_LABEL_LENGTH = 20
SESSION_LABEL_LENGTH = 12

# (attribute key, source tag, must be non-blank after trimming)
IDENTITY_ATTRIBUTES: Tuple[Tuple[str, IdentitySource, bool], ...] = (
    ("email", IdentitySource.EMAIL, False),
    ("name", IdentitySource.NAME, False),
    ("u", IdentitySource.SHORT_CODE, True),
)


class Identity(NamedTuple):
    key: str
    label: str
    source: IdentitySource


def _attribute_identity(attributes: Dict[str, Any]) -> Optional[Identity]:
    for attr, source, needs_trim in IDENTITY_ATTRIBUTES:
        value = attributes.get(attr)
        if not value or isinstance(value, bool):
            continue
        text = str(value)
        if not text or (needs_trim and not text.strip()):
            continue
        return Identity(text, text, source)
    return None


def resolve_identity(record: LogRecord) -> Identity:
    """Return the stable visitor key, display label and which rule matched."""
    if record.visitor_hint:
        return Identity(
            record.visitor_hint,
            record.visitor_hint[:HINT_LABEL_LENGTH],
            IdentitySource.VISITOR_HINT,
        )

    if record.auxiliary_attributes:
        found = _attribute_identity(record.auxiliary_attributes)
        if found is not None:
            return found

    token = record.session_token
    return Identity(
        token,
        f"Session {token[:SESSION_LABEL_LENGTH]}",
        IdentitySource.SESSION,
    )


def belongs_to(record: LogRecord, visitor_key: str) -> bool:
    """True if *record* resolves to *visitor_key* under the same rule."""
    return resolve_identity(record).key == visitor_key
