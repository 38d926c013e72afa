"""User service — registration, referrals, daily bonus, profiles, leaderboards."""

import secrets
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linktory.config import get_settings
from linktory.exceptions import (
    DailyBonusClaimedError,
    LinktoryError,
    UserNotFoundError,
)
from linktory.logging_config import get_logger
from linktory.models import Link, Report, User
from linktory.services.reputation_service import award_action
from linktory.services.scoring import Action, BadgeTier, ScoreResult, badge_for, parse_action

logger = get_logger(__name__)

PENALTY_ACTIONS = frozenset({Action.FALSE_REPORT, Action.SPAM_LINK, Action.CHEAT})


@dataclass
class Registration:
    user: User
    created: bool
    referrer: User | None = None


@dataclass
class Profile:
    user: User
    badge: BadgeTier
    links_added: int
    reports_made: int
    friends_invited: int


def new_referral_code() -> str:
    return secrets.token_hex(3)


async def get_user(db: AsyncSession, telegram_id: int, for_update: bool = False) -> User | None:
    query = select(User).where(User.telegram_id == telegram_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, telegram_id: int, for_update: bool = False) -> User:
    """Fetch a user or raise UserNotFoundError."""
    user = await get_user(db, telegram_id, for_update=for_update)
    if user is None:
        raise UserNotFoundError(telegram_id)
    return user


async def ensure_user(
    db: AsyncSession,
    telegram_id: int,
    username: str | None,
    referral_code: str | None = None,
    for_update: bool = False,
) -> Registration:
    """
    Return the user for a Telegram id, registering them on first contact.

    A referral code only counts on first registration; the referrer is
    awarded the referral action.
    """
    user = await get_user(db, telegram_id, for_update=for_update)
    if user is not None:
        if username and user.username != username:
            user.username = username
        return Registration(user=user, created=False)

    referrer = None
    if referral_code:
        result = await db.execute(
            select(User).where(User.referral_code == referral_code).with_for_update()
        )
        referrer = result.scalar_one_or_none()

    user = User(
        telegram_id=telegram_id,
        username=username or f"user{telegram_id}",
        points=0,
        trust_score=get_settings().initial_trust,
        referral_code=new_referral_code(),
        referrer_id=referrer.telegram_id if referrer else None,
    )
    db.add(user)
    await db.flush()

    if referrer is not None:
        await award_action(db, referrer, Action.REFERRAL)

    logger.info(
        "user_registered",
        telegram_id=telegram_id,
        referrer_id=referrer.telegram_id if referrer else None,
    )
    return Registration(user=user, created=True, referrer=referrer)


async def claim_daily(
    db: AsyncSession, user: User, today: date | None = None
) -> ScoreResult:
    """Award the daily bonus once per UTC calendar day."""
    today = today or datetime.now(timezone.utc).date()
    if user.last_daily == today:
        raise DailyBonusClaimedError()
    user.last_daily = today
    return await award_action(db, user, Action.DAILY_BONUS)


async def penalize(db: AsyncSession, user: User, action: Action | str) -> ScoreResult:
    """Apply a moderator penalty. Only trust-reducing actions are accepted."""
    parsed = parse_action(action)
    if parsed not in PENALTY_ACTIONS:
        raise LinktoryError(
            f"'{parsed.value}' is not a penalty", "invalid_penalty"
        )
    return await award_action(db, user, parsed)


async def get_profile(db: AsyncSession, telegram_id: int) -> Profile:
    user = await require_user(db, telegram_id)

    links_added = (
        await db.execute(
            select(func.count()).select_from(Link).where(Link.submitted_by == telegram_id)
        )
    ).scalar() or 0
    reports_made = (
        await db.execute(
            select(func.count()).select_from(Report).where(Report.reported_by == telegram_id)
        )
    ).scalar() or 0
    friends_invited = (
        await db.execute(
            select(func.count()).select_from(User).where(User.referrer_id == telegram_id)
        )
    ).scalar() or 0

    return Profile(
        user=user,
        badge=badge_for(user.trust_score, user.points),
        links_added=links_added,
        reports_made=reports_made,
        friends_invited=friends_invited,
    )


async def top_by_points(db: AsyncSession, limit: int) -> list[User]:
    result = await db.execute(
        select(User).order_by(User.points.desc(), User.created_at).limit(limit)
    )
    return list(result.scalars().all())


async def top_by_trust(db: AsyncSession, limit: int) -> list[User]:
    result = await db.execute(
        select(User).order_by(User.trust_score.desc(), User.points.desc()).limit(limit)
    )
    return list(result.scalars().all())
