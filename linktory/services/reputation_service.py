"""Reputation service — apply scoring actions to stored users."""

from sqlalchemy.ext.asyncio import AsyncSession

from linktory.logging_config import get_logger
from linktory.models import ScoreLog, User
from linktory.services.scoring import Action, ScoreResult, score

logger = get_logger(__name__)


async def award_action(
    db: AsyncSession,
    user: User,
    action: Action | str,
    link_id: int | None = None,
) -> ScoreResult:
    """
    Apply an action's points and trust change to a user and log it.

    The caller owns the transaction; this only mutates ``user`` and adds a
    ScoreLog row to the session.

    Raises:
        UnknownActionError: if ``action`` is not a known Action tag.
    """
    result = score(action, user.trust_score, user.points)

    user.points = result.points
    user.trust_score = result.trust

    db.add(
        ScoreLog(
            user_id=user.telegram_id,
            action=result.action.value,
            points_delta=result.points_delta,
            trust_delta=result.trust_delta,
            trust_after=result.trust,
            link_id=link_id,
        )
    )

    logger.info(
        "reputation_awarded",
        telegram_id=user.telegram_id,
        action=result.action.value,
        points_delta=result.points_delta,
        trust_delta=result.trust_delta,
        trust=result.trust,
        badge=result.badge.value,
    )
    return result
