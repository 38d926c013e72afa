"""Configuration for the Linktory bot and API."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class LinktorySettings(BaseSettings):
    """Linktory settings, read from ``LINKTORY_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="LINKTORY_", extra="ignore")

    # Telegram
    bot_token: str = ""
    webhook_url: str = ""
    webhook_secret: str = ""
    admin_ids: Annotated[list[int], NoDecode] = Field(default_factory=list)

    # Moderation HTTP endpoints
    admin_token: str = ""

    # New users
    initial_trust: int = 100

    # Links
    report_review_threshold: int = 3
    max_comments_per_link: int = 3
    search_limit: int = 5

    # Community voting
    vote_quorum: int = 5
    vote_threshold: float = 0.7

    # Leaderboards
    bot_leaderboard_size: int = 10
    api_leaderboard_size: int = 20

    # Pending bot actions
    pending_action_ttl_seconds: int = 300

    # Rate limiting (per caller, per path)
    rate_limit_requests: int = 60
    rate_limit_window_seconds: int = 60
    # Only enable behind a reverse proxy that overwrites X-Forwarded-For
    trust_forwarded_for: bool = False

    @field_validator("admin_ids", mode="before")
    @classmethod
    def _split_admin_ids(cls, value):
        # LINKTORY_ADMIN_IDS=123,456
        if isinstance(value, str):
            return [int(part) for part in value.split(",") if part.strip()]
        if isinstance(value, int):
            return [value]
        return value


@lru_cache
def get_settings() -> LinktorySettings:
    """Get cached settings instance."""
    return LinktorySettings()
