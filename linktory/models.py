"""SQLAlchemy ORM models for users, links and their moderation trail."""

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import Date, DateTime, Integer


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_points", "points"),
        Index("idx_users_trust", "trust_score"),
        CheckConstraint("points >= 0", name="ck_user_points"),
        CheckConstraint(
            "trust_score BETWEEN 0 AND 200", name="ck_user_trust_range"
        ),
    )

    telegram_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    trust_score: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("100")
    )
    referral_code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    referrer_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.telegram_id", ondelete="SET NULL")
    )
    last_daily: Mapped[date | None] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )

    links: Mapped[list["Link"]] = relationship(back_populates="submitter")


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


class Link(Base):
    __tablename__ = "links"
    __table_args__ = (
        Index("idx_links_status", "status"),
        Index("idx_links_submitted_by", "submitted_by"),
        CheckConstraint(
            "status IN ('pending','reported','under_review','verified','scam')",
            name="ck_link_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    public_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    submitted_by: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.telegram_id", ondelete="SET NULL")
    )
    status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("'pending'")
    )
    votes_legit: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    votes_scam: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    # Last time reports were settled by a verified/scam decision
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )

    submitter: Mapped[User | None] = relationship(back_populates="links")
    reports: Mapped[list["Report"]] = relationship(back_populates="link")


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        UniqueConstraint("link_id", "reported_by", name="uq_report_link_user"),
        Index("idx_reports_link", "link_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    link_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("links.id", ondelete="CASCADE"), nullable=False
    )
    reported_by: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.telegram_id"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )

    link: Mapped[Link] = relationship(back_populates="reports")


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (Index("idx_comments_link_user", "link_id", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    link_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("links.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.telegram_id"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


class LinkVote(Base):
    __tablename__ = "link_votes"
    __table_args__ = (
        # One vote per user per voting round, checked against settled_at
        Index("idx_link_votes_link_user", "link_id", "user_id"),
        CheckConstraint("vote IN ('legit','scam')", name="ck_link_vote"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    link_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("links.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.telegram_id"), nullable=False
    )
    vote: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Score log (append-only)
# ---------------------------------------------------------------------------


class ScoreLog(Base):
    __tablename__ = "score_log"
    __table_args__ = (Index("idx_score_log_user", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.telegram_id"), nullable=False
    )
    action: Mapped[str] = mapped_column(Text, nullable=False)
    points_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    trust_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    trust_after: Mapped[int] = mapped_column(Integer, nullable=False)
    link_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("links.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
