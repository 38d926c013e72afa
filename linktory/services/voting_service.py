"""Community voting on links — legit/scam votes with quorum resolution."""

from dataclasses import dataclass

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linktory.config import get_settings
from linktory.exceptions import DuplicateVoteError, LinktoryError, PermissionDeniedError
from linktory.logging_config import get_logger
from linktory.models import Link, LinkVote, User
from linktory.services.link_service import moderate_link
from linktory.services.link_state import LinkStatus, can_transition, normalize_status

logger = get_logger(__name__)

VOTE_CHOICES = ("legit", "scam")

OPEN_STATUSES = frozenset({LinkStatus.PENDING, LinkStatus.REPORTED, LinkStatus.UNDER_REVIEW})


@dataclass
class VoteOutcome:
    link: Link
    vote: str
    resolution: LinkStatus | None = None


def _current_round(query: Select, link: Link) -> Select:
    """Restrict a LinkVote query to votes cast since the link was last settled."""
    if link.settled_at is not None:
        query = query.where(LinkVote.created_at > link.settled_at)
    return query


def resolve_votes(
    legit: int, scam: int, quorum: int, threshold: float
) -> LinkStatus | None:
    """
    Decide a link's fate from its vote tallies.

    Returns VERIFIED or SCAM once at least ``quorum`` votes are in and one
    side holds a ``threshold`` share of them, otherwise None.
    """
    total = legit + scam
    if total < max(1, quorum):
        return None
    if legit / total >= threshold:
        return LinkStatus.VERIFIED
    if scam / total >= threshold:
        return LinkStatus.SCAM
    return None


async def cast_vote(db: AsyncSession, user: User, link: Link, vote: str) -> VoteOutcome:
    """Record a user's vote and apply the resolution if it settles the link."""
    settings = get_settings()

    vote = vote.strip().lower()
    if vote not in VOTE_CHOICES:
        raise LinktoryError("⚠️ Vote must be 'legit' or 'scam'.", "invalid_vote")

    status = normalize_status(link.status)
    if status not in OPEN_STATUSES:
        raise LinktoryError(
            f"🔒 Voting is closed, this link is already {status.value}.",
            "voting_closed",
        )
    if link.submitted_by == user.telegram_id:
        raise PermissionDeniedError("vote on your own link")

    existing = await db.execute(
        _current_round(
            select(LinkVote.id).where(
                LinkVote.link_id == link.id, LinkVote.user_id == user.telegram_id
            ),
            link,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateVoteError()

    db.add(LinkVote(link_id=link.id, user_id=user.telegram_id, vote=vote))
    await db.flush()

    tallies = await db.execute(
        _current_round(
            select(LinkVote.vote, func.count())
            .where(LinkVote.link_id == link.id)
            .group_by(LinkVote.vote),
            link,
        )
    )
    counts = dict(tallies.all())
    link.votes_legit = counts.get("legit", 0)
    link.votes_scam = counts.get("scam", 0)

    outcome = VoteOutcome(link=link, vote=vote)
    resolution = resolve_votes(
        link.votes_legit, link.votes_scam, settings.vote_quorum, settings.vote_threshold
    )
    if resolution is not None and can_transition(status.value, resolution.value):
        await moderate_link(db, link, resolution)
        outcome.resolution = resolution

    logger.info(
        "vote_cast",
        link_id=link.id,
        telegram_id=user.telegram_id,
        vote=vote,
        legit=link.votes_legit,
        scam=link.votes_scam,
        resolution=resolution.value if resolution else None,
    )
    return outcome
