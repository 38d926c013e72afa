"""Pydantic v2 request/response schemas for the mini-app API."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    telegram_id: int
    username: str | None = Field(default=None, max_length=64)
    referral_code: str | None = Field(default=None, max_length=16)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    telegram_id: int
    username: str
    points: int
    trust_score: int
    referral_code: str
    created_at: datetime


class ProfileResponse(BaseModel):
    ok: bool = True
    user: UserResponse
    badge: str
    links_added: int
    reports_made: int
    friends_invited: int


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str
    points: int
    trust_score: int


class LeaderboardResponse(BaseModel):
    ok: bool = True
    rows: list[LeaderboardEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


class LinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    url: str
    status: str
    submitted_by: int | None
    votes_legit: int
    votes_scam: int
    created_at: datetime


class AddLinkRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    telegram_id: int


class AddLinkResponse(BaseModel):
    ok: bool = True
    message: str
    link: LinkResponse
    points_earned: int


class CheckLinkRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)


class CheckLinkResponse(BaseModel):
    ok: bool = True
    exists: bool
    link: LinkResponse | None = None


class ReportRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    telegram_id: int
    reason: str | None = Field(default=None, max_length=500)


class ReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    link_id: int
    url: str
    reported_by: int
    reason: str
    created_at: datetime


class ReportSubmittedResponse(BaseModel):
    ok: bool = True
    message: str
    link: LinkResponse
    points_earned: int


class VoteRequest(BaseModel):
    telegram_id: int
    vote: str = Field(..., pattern=r"^(legit|scam)$")


class VoteTallyResponse(BaseModel):
    ok: bool = True
    public_id: str
    legit: int = 0
    scam: int = 0
    status: str
    resolved: str | None = None


class StatusChangeRequest(BaseModel):
    status: str = Field(..., pattern=r"^(reported|under_review|verified|scam)$")


class MessageResponse(BaseModel):
    ok: bool = True
    message: str
