"""Points, trust and badge engine — stateless, deterministic.

Every user-facing reward in Linktory goes through the tables below. Points
are participation rewards and never go negative; trust is the moderation
signal and is clamped to [TRUST_MIN, TRUST_MAX].
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from linktory.exceptions import UnknownActionError


class Action(str, Enum):
    """Events that drive a scoring update."""

    ADD_LINK = "add_link"
    REPORT_LINK = "report_link"
    COMMENT_LINK = "comment_link"
    DAILY_BONUS = "daily_bonus"
    REFERRAL = "referral"
    APPROVED_LINK = "approved_link"
    VALID_REPORT = "valid_report"
    FALSE_REPORT = "false_report"
    SPAM_LINK = "spam_link"
    CHEAT = "cheat"


class BadgeTier(str, Enum):
    ELITE = "Elite"
    GOLD = "Gold"
    SILVER = "Silver"
    BRONZE = "Bronze"
    LOW_CREDIBILITY = "Low Credibility"
    NEWBIE = "Newbie"


TRUST_MIN: Final[int] = 0
TRUST_MAX: Final[int] = 200

POINTS_TABLE: Final[dict[Action, int]] = {
    Action.ADD_LINK: 2,
    Action.REPORT_LINK: 3,
    Action.COMMENT_LINK: 1,
    Action.DAILY_BONUS: 1,
    Action.REFERRAL: 5,
}

TRUST_TABLE: Final[dict[Action, int]] = {
    Action.APPROVED_LINK: 2,
    Action.VALID_REPORT: 5,
    Action.FALSE_REPORT: -10,
    Action.SPAM_LINK: -20,
    Action.CHEAT: -50,
}

BADGE_EMOJI: Final[dict[BadgeTier, str]] = {
    BadgeTier.ELITE: "👑",
    BadgeTier.GOLD: "🥇",
    BadgeTier.SILVER: "🥈",
    BadgeTier.BRONZE: "🥉",
    BadgeTier.LOW_CREDIBILITY: "⚠️",
    BadgeTier.NEWBIE: "🌱",
}


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """Outcome of applying one action to a (trust, points) pair.

    trust_delta is the change actually applied, after clamping.
    """

    action: Action
    points_delta: int
    trust_delta: int
    points: int
    trust: int
    badge: BadgeTier


def parse_action(action: Action | str) -> Action:
    """Coerce a tag to Action, raising UnknownActionError for anything else."""
    if isinstance(action, Action):
        return action
    try:
        return Action(action)
    except ValueError:
        raise UnknownActionError(str(action)) from None


def points_for(action: Action | str) -> int:
    """Points awarded for an action. Known actions without a reward give 0."""
    return POINTS_TABLE.get(parse_action(action), 0)


def trust_delta(action: Action | str) -> int:
    """Trust adjustment for an action. Known actions without one give 0."""
    return TRUST_TABLE.get(parse_action(action), 0)


def apply_trust(current: int, delta: int) -> int:
    """Add delta to current trust, saturating at the trust bounds."""
    return max(TRUST_MIN, min(TRUST_MAX, current + delta))


def badge_for(trust: int, points: int) -> BadgeTier:
    """Badge tier for a trust/points pair. First matching rule wins.

    Trust in [50, 80) falls through to NEWBIE, not LOW_CREDIBILITY.
    """
    if trust >= 150 and points >= 1000:
        return BadgeTier.ELITE
    if trust >= 120:
        return BadgeTier.GOLD
    if trust >= 100:
        return BadgeTier.SILVER
    if trust >= 80:
        return BadgeTier.BRONZE
    if trust < 50:
        return BadgeTier.LOW_CREDIBILITY
    return BadgeTier.NEWBIE


def badge_label(badge: BadgeTier) -> str:
    """Badge with its emoji prefix, as shown in bot replies."""
    return f"{BADGE_EMOJI[badge]} {badge.value}"


def score(action: Action | str, trust: int, points: int) -> ScoreResult:
    """Apply one action to a user's current trust and points."""
    parsed = parse_action(action)
    gained = points_for(parsed)
    change = trust_delta(parsed)
    new_points = points + gained
    new_trust = apply_trust(trust, change)
    return ScoreResult(
        action=parsed,
        points_delta=gained,
        trust_delta=new_trust - trust,
        points=new_points,
        trust=new_trust,
        badge=badge_for(new_trust, new_points),
    )
