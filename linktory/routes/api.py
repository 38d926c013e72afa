"""Mini-app API — register, submit, check, report, vote, leaderboards."""

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linktory.config import get_settings
from linktory.database import get_db
from linktory.exceptions import LinktoryError, raise_http_exception
from linktory.logging_config import get_logger
from linktory.schemas import (
    AddLinkRequest,
    AddLinkResponse,
    CheckLinkRequest,
    CheckLinkResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    LinkResponse,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    ReportRequest,
    ReportResponse,
    ReportSubmittedResponse,
    StatusChangeRequest,
    UserResponse,
    VoteRequest,
    VoteTallyResponse,
)
from linktory.services import link_service, user_service, voting_service

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["api"])


@router.post("/register", response_model=UserResponse)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Register the mini-app user on first open. Idempotent."""
    registration = await user_service.ensure_user(
        db, body.telegram_id, body.username, referral_code=body.referral_code
    )
    await db.commit()
    return UserResponse.model_validate(registration.user)


@router.post("/addLink", response_model=AddLinkResponse, status_code=201)
async def add_link(body: AddLinkRequest, db: AsyncSession = Depends(get_db)):
    try:
        user = await user_service.require_user(db, body.telegram_id, for_update=True)
        link, result = await link_service.add_link(db, user, body.url)
    except LinktoryError as e:
        raise_http_exception(e)
    await db.commit()
    return AddLinkResponse(
        message="Link added successfully!",
        link=LinkResponse.model_validate(link),
        points_earned=result.points_delta,
    )


@router.post("/checkLink", response_model=CheckLinkResponse)
async def check_link(body: CheckLinkRequest, db: AsyncSession = Depends(get_db)):
    try:
        link = await link_service.check_link(db, body.url)
    except LinktoryError as e:
        raise_http_exception(e)
    if link is None:
        return CheckLinkResponse(exists=False)
    return CheckLinkResponse(exists=True, link=LinkResponse.model_validate(link))


@router.post("/report", response_model=ReportSubmittedResponse, status_code=201)
async def report(body: ReportRequest, db: AsyncSession = Depends(get_db)):
    try:
        user = await user_service.require_user(db, body.telegram_id, for_update=True)
        link, result = await link_service.report_link(db, user, body.url, body.reason)
    except LinktoryError as e:
        raise_http_exception(e)
    await db.commit()
    return ReportSubmittedResponse(
        message="Reported!",
        link=LinkResponse.model_validate(link),
        points_earned=result.points_delta,
    )


@router.post("/links/{public_id}/vote", response_model=VoteTallyResponse)
async def vote(public_id: str, body: VoteRequest, db: AsyncSession = Depends(get_db)):
    try:
        user = await user_service.require_user(db, body.telegram_id)
        link = await link_service.get_link_by_public_id(db, public_id, for_update=True)
        outcome = await voting_service.cast_vote(db, user, link, body.vote)
    except LinktoryError as e:
        raise_http_exception(e)
    await db.commit()
    return VoteTallyResponse(
        public_id=link.public_id,
        legit=link.votes_legit,
        scam=link.votes_scam,
        status=link.status,
        resolved=outcome.resolution.value if outcome.resolution else None,
    )


@router.get("/recent", response_model=list[LinkResponse])
async def recent(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    links = await link_service.recent_links(db, limit=limit)
    return [LinkResponse.model_validate(link) for link in links]


@router.get("/links", response_model=list[LinkResponse])
async def list_links(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    links = await link_service.recent_links(db, limit=limit)
    return [LinkResponse.model_validate(link) for link in links]


@router.get("/reports", response_model=list[ReportResponse])
async def list_reports(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    rows = await link_service.recent_reports(db, limit=limit)
    return [
        ReportResponse(
            id=report.id,
            link_id=report.link_id,
            url=url,
            reported_by=report.reported_by,
            reason=report.reason,
            created_at=report.created_at,
        )
        for report, url in rows
    ]


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(db: AsyncSession = Depends(get_db)):
    users = await user_service.top_by_points(db, get_settings().api_leaderboard_size)
    return LeaderboardResponse(rows=[LeaderboardEntry.model_validate(u) for u in users])


@router.get("/trustboard", response_model=LeaderboardResponse)
async def trustboard(db: AsyncSession = Depends(get_db)):
    users = await user_service.top_by_trust(db, get_settings().api_leaderboard_size)
    return LeaderboardResponse(rows=[LeaderboardEntry.model_validate(u) for u in users])


@router.get("/profile/{telegram_id}", response_model=ProfileResponse)
async def profile(telegram_id: int, db: AsyncSession = Depends(get_db)):
    try:
        data = await user_service.get_profile(db, telegram_id)
    except LinktoryError as e:
        raise_http_exception(e)
    return ProfileResponse(
        user=UserResponse.model_validate(data.user),
        badge=data.badge.value,
        links_added=data.links_added,
        reports_made=data.reports_made,
        friends_invited=data.friends_invited,
    )


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


def require_admin_token(x_admin_token: str | None = Header(default=None)) -> None:
    expected = get_settings().admin_token
    if not expected or x_admin_token != expected:
        raise HTTPException(status_code=401, detail="Invalid admin token")


@router.post(
    "/admin/links/{public_id}/status",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin_token)],
)
async def set_link_status(
    public_id: str,
    body: StatusChangeRequest,
    db: AsyncSession = Depends(get_db),
):
    """Moderator decision on a link; verified/scam settle reporter and submitter trust."""
    try:
        link = await link_service.get_link_by_public_id(db, public_id, for_update=True)
        settled = await link_service.moderate_link(db, link, body.status)
    except LinktoryError as e:
        raise_http_exception(e)
    await db.commit()
    logger.info("link_moderated", public_id=public_id, status=body.status, settled=len(settled))
    return MessageResponse(message=f"Link {public_id} is now {body.status}")
