"""Link service — submit, check, report, comment and moderate links."""

import secrets
from datetime import datetime, timezone
from urllib.parse import urlsplit

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linktory.config import get_settings
from linktory.exceptions import (
    CommentLimitError,
    DuplicateReportError,
    InvalidUrlError,
    LinkExistsError,
    LinkNotFoundError,
    SelfReportError,
)
from linktory.logging_config import get_logger
from linktory.models import Comment, Link, Report, User
from linktory.services.link_state import LinkStatus, normalize_status, validate_transition
from linktory.services.reputation_service import award_action
from linktory.services.scoring import Action, ScoreResult

logger = get_logger(__name__)

DEFAULT_REPORT_REASON = "No reason"

SETTLED_STATUSES = frozenset({LinkStatus.VERIFIED, LinkStatus.SCAM})


def normalize_url(url: str) -> str:
    """Strip whitespace and require an http(s) URL with a host."""
    candidate = (url or "").strip()
    parts = urlsplit(candidate)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise InvalidUrlError(candidate)
    return candidate


def new_public_id() -> str:
    return secrets.token_hex(4)


async def get_link_by_url(db: AsyncSession, url: str, for_update: bool = False) -> Link | None:
    query = select(Link).where(Link.url == url)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_link_by_public_id(
    db: AsyncSession, public_id: str, for_update: bool = False
) -> Link:
    query = select(Link).where(Link.public_id == public_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    link = result.scalar_one_or_none()
    if link is None:
        raise LinkNotFoundError(public_id)
    return link


async def require_link(db: AsyncSession, url: str, for_update: bool = False) -> Link:
    link = await get_link_by_url(db, normalize_url(url), for_update=for_update)
    if link is None:
        raise LinkNotFoundError(url)
    return link


async def check_link(db: AsyncSession, url: str) -> Link | None:
    """Look up a link by URL. Returns None when it has never been submitted."""
    return await get_link_by_url(db, normalize_url(url))


async def search_links(db: AsyncSession, query: str, limit: int | None = None) -> list[Link]:
    """Case-insensitive substring search over submitted URLs."""
    limit = limit or get_settings().search_limit
    result = await db.execute(
        select(Link)
        .where(Link.url.ilike(f"%{query.strip()}%"))
        .order_by(Link.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def add_link(db: AsyncSession, user: User, url: str) -> tuple[Link, ScoreResult]:
    """Submit a new link as pending and reward the submitter."""
    url = normalize_url(url)
    if await get_link_by_url(db, url) is not None:
        raise LinkExistsError(url)

    link = Link(
        public_id=new_public_id(),
        url=url,
        submitted_by=user.telegram_id,
        status=LinkStatus.PENDING.value,
        votes_legit=0,
        votes_scam=0,
    )
    db.add(link)
    await db.flush()

    result = await award_action(db, user, Action.ADD_LINK, link_id=link.id)
    logger.info("link_added", link_id=link.id, public_id=link.public_id, telegram_id=user.telegram_id)
    return link, result


def _set_status(link: Link, target: LinkStatus) -> None:
    current = normalize_status(link.status)
    validate_transition(current.value, target.value)
    previous = link.status
    link.status = target.value
    # Reopening a settled link starts a new voting round
    if current in SETTLED_STATUSES and target not in SETTLED_STATUSES:
        link.votes_legit = 0
        link.votes_scam = 0
    link.updated_at = datetime.now(timezone.utc)
    logger.info("link_status_changed", link_id=link.id, previous=previous, status=target.value)


async def report_link(
    db: AsyncSession, user: User, url: str, reason: str | None = None
) -> tuple[Link, ScoreResult]:
    """
    File a scam report against a link.

    Unknown URLs are recorded on the spot with status ``reported``. Once a
    link collects ``report_review_threshold`` reports it goes to review.
    """
    settings = get_settings()
    url = normalize_url(url)
    link = await get_link_by_url(db, url, for_update=True)

    if link is None:
        link = Link(
            public_id=new_public_id(),
            url=url,
            submitted_by=None,
            status=LinkStatus.REPORTED.value,
            votes_legit=0,
            votes_scam=0,
        )
        db.add(link)
        await db.flush()
    else:
        if link.submitted_by == user.telegram_id:
            raise SelfReportError()
        existing = await db.execute(
            select(Report.id).where(
                Report.link_id == link.id, Report.reported_by == user.telegram_id
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateReportError()

    db.add(
        Report(
            link_id=link.id,
            reported_by=user.telegram_id,
            reason=(reason or "").strip() or DEFAULT_REPORT_REASON,
        )
    )
    await db.flush()

    status = normalize_status(link.status)
    if status in (LinkStatus.PENDING, LinkStatus.VERIFIED):
        _set_status(link, LinkStatus.REPORTED)
        status = LinkStatus.REPORTED

    if status == LinkStatus.REPORTED:
        count_query = select(func.count()).select_from(Report).where(Report.link_id == link.id)
        if link.settled_at is not None:
            count_query = count_query.where(Report.created_at > link.settled_at)
        report_count = (await db.execute(count_query)).scalar() or 0
        if report_count >= settings.report_review_threshold:
            _set_status(link, LinkStatus.UNDER_REVIEW)

    result = await award_action(db, user, Action.REPORT_LINK, link_id=link.id)
    logger.info("link_reported", link_id=link.id, telegram_id=user.telegram_id, status=link.status)
    return link, result


async def comment_link(
    db: AsyncSession, user: User, url: str, body: str
) -> tuple[Comment, ScoreResult]:
    """Comment on an existing link, up to max_comments_per_link per user."""
    limit = get_settings().max_comments_per_link
    link = await require_link(db, url)

    count = (
        await db.execute(
            select(func.count())
            .select_from(Comment)
            .where(Comment.link_id == link.id, Comment.user_id == user.telegram_id)
        )
    ).scalar() or 0
    if count >= limit:
        raise CommentLimitError(limit)

    comment = Comment(link_id=link.id, user_id=user.telegram_id, body=body.strip())
    db.add(comment)
    await db.flush()

    result = await award_action(db, user, Action.COMMENT_LINK, link_id=link.id)
    return comment, result


async def moderate_link(
    db: AsyncSession, link: Link, target: LinkStatus | str
) -> list[ScoreResult]:
    """
    Move a link to a new status and settle reputation for final decisions.

    ``verified`` rewards the submitter and penalizes reporters for false
    reports; ``scam`` does the opposite. Only reports filed since the last
    settlement are counted.
    """
    target = normalize_status(target)
    _set_status(link, target)

    if target not in (LinkStatus.VERIFIED, LinkStatus.SCAM):
        return []

    if target == LinkStatus.VERIFIED:
        submitter_action, reporter_action = Action.APPROVED_LINK, Action.FALSE_REPORT
    else:
        submitter_action, reporter_action = Action.SPAM_LINK, Action.VALID_REPORT

    results: list[ScoreResult] = []

    if link.submitted_by is not None:
        submitter = (
            await db.execute(
                select(User).where(User.telegram_id == link.submitted_by).with_for_update()
            )
        ).scalar_one_or_none()
        if submitter is not None:
            results.append(await award_action(db, submitter, submitter_action, link_id=link.id))

    reporters_query = (
        select(User)
        .join(Report, Report.reported_by == User.telegram_id)
        .where(Report.link_id == link.id)
    )
    if link.settled_at is not None:
        reporters_query = reporters_query.where(Report.created_at > link.settled_at)
    reporters = (await db.execute(reporters_query.with_for_update(of=User))).scalars().all()
    for reporter in reporters:
        results.append(await award_action(db, reporter, reporter_action, link_id=link.id))

    link.settled_at = datetime.now(timezone.utc)
    logger.info(
        "link_settled",
        link_id=link.id,
        status=target.value,
        reporters=len(reporters),
    )
    return results


async def recent_links(db: AsyncSession, limit: int = 20) -> list[Link]:
    result = await db.execute(select(Link).order_by(Link.id.desc()).limit(limit))
    return list(result.scalars().all())


async def recent_reports(db: AsyncSession, limit: int = 20) -> list[tuple[Report, str]]:
    """Latest reports with the URL they target."""
    result = await db.execute(
        select(Report, Link.url)
        .join(Link, Link.id == Report.link_id)
        .order_by(Report.id.desc())
        .limit(limit)
    )
    return [(row[0], row[1]) for row in result.all()]
