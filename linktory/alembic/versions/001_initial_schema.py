"""Initial schema: users, links, reports, comments, votes and score log.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("telegram_id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("trust_score", sa.Integer(), nullable=False, server_default=sa.text("100")),
        sa.Column("referral_code", sa.Text(), nullable=False, unique=True),
        sa.Column("referrer_id", sa.BigInteger(), sa.ForeignKey("users.telegram_id", ondelete="SET NULL")),
        sa.Column("last_daily", sa.Date()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("points >= 0", name="ck_user_points"),
        sa.CheckConstraint("trust_score BETWEEN 0 AND 200", name="ck_user_trust_range"),
    )
    op.create_index("idx_users_points", "users", ["points"])
    op.create_index("idx_users_trust", "users", ["trust_score"])

    # --- Links ---
    op.create_table(
        "links",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("public_id", sa.Text(), nullable=False, unique=True),
        sa.Column("url", sa.Text(), nullable=False, unique=True),
        sa.Column("submitted_by", sa.BigInteger(), sa.ForeignKey("users.telegram_id", ondelete="SET NULL")),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("votes_legit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("votes_scam", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("settled_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('pending','reported','under_review','verified','scam')",
            name="ck_link_status",
        ),
    )
    op.create_index("idx_links_status", "links", ["status"])
    op.create_index("idx_links_submitted_by", "links", ["submitted_by"])

    # --- Reports ---
    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("link_id", sa.Integer(), sa.ForeignKey("links.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reported_by", sa.BigInteger(), sa.ForeignKey("users.telegram_id"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("link_id", "reported_by", name="uq_report_link_user"),
    )
    op.create_index("idx_reports_link", "reports", ["link_id"])

    # --- Comments ---
    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("link_id", sa.Integer(), sa.ForeignKey("links.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.telegram_id"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_comments_link_user", "comments", ["link_id", "user_id"])

    # --- Community votes ---
    op.create_table(
        "link_votes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("link_id", sa.Integer(), sa.ForeignKey("links.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.telegram_id"), nullable=False),
        sa.Column("vote", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("vote IN ('legit','scam')", name="ck_link_vote"),
    )
    op.create_index("idx_link_votes_link_user", "link_votes", ["link_id", "user_id"])

    # --- Score log ---
    op.create_table(
        "score_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.telegram_id"), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("points_delta", sa.Integer(), nullable=False),
        sa.Column("trust_delta", sa.Integer(), nullable=False),
        sa.Column("trust_after", sa.Integer(), nullable=False),
        sa.Column("link_id", sa.Integer(), sa.ForeignKey("links.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_score_log_user", "score_log", ["user_id"])


def downgrade() -> None:
    op.drop_index("idx_score_log_user", table_name="score_log")
    op.drop_table("score_log")
    op.drop_index("idx_link_votes_link_user", table_name="link_votes")
    op.drop_table("link_votes")
    op.drop_index("idx_comments_link_user", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_reports_link", table_name="reports")
    op.drop_table("reports")
    op.drop_index("idx_links_submitted_by", table_name="links")
    op.drop_index("idx_links_status", table_name="links")
    op.drop_table("links")
    op.drop_index("idx_users_trust", table_name="users")
    op.drop_index("idx_users_points", table_name="users")
    op.drop_table("users")
