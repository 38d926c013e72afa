"""State machine for link moderation status.

Links start ``pending``. Reports, community votes and moderators move them
towards ``verified`` or ``scam``; a new report can reopen a verified link
and an appeal can send a scam link back to review.
"""

from __future__ import annotations

from enum import Enum

from linktory.exceptions import LinkStateError


class LinkStatus(str, Enum):
    PENDING = "pending"
    REPORTED = "reported"
    UNDER_REVIEW = "under_review"
    VERIFIED = "verified"
    SCAM = "scam"


# Older bot builds wrote these values
_LEGACY_ALIASES: dict[str, LinkStatus] = {
    "legit": LinkStatus.VERIFIED,
}

# Map of current_status → list of (target_status, trigger_reason)
VALID_TRANSITIONS: dict[str, list[tuple[str, str]]] = {
    "pending": [
        ("reported", "report_filed"),
        ("under_review", "report_threshold"),
        ("verified", "link_verified"),
        ("scam", "link_marked_scam"),
    ],
    "reported": [
        ("under_review", "report_threshold"),
        ("verified", "link_verified"),
        ("scam", "link_marked_scam"),
    ],
    "under_review": [
        ("verified", "link_verified"),
        ("scam", "link_marked_scam"),
    ],
    "verified": [
        ("reported", "report_filed"),
    ],
    "scam": [
        ("under_review", "appeal"),
    ],
}


def normalize_status(value: str | LinkStatus) -> LinkStatus:
    """Map a stored status string onto LinkStatus."""
    if isinstance(value, LinkStatus):
        return value
    if value in _LEGACY_ALIASES:
        return _LEGACY_ALIASES[value]
    return LinkStatus(value)


def can_transition(current: str, target: str) -> bool:
    """Check whether a transition from current to target is valid."""
    allowed = VALID_TRANSITIONS.get(current, [])
    return any(t == target for t, _ in allowed)


def validate_transition(current: str, target: str) -> None:
    """Validate a state transition, raising LinkStateError if invalid."""
    if not can_transition(current, target):
        raise LinkStateError(current, target)
