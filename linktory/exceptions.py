"""Custom exceptions for Linktory services."""

from fastapi import HTTPException, status


class LinktoryError(Exception):
    """Base exception for Linktory service errors.

    ``message`` is safe to show to end users; the bot replies with it verbatim.
    """

    def __init__(self, message: str, error_type: str = "linktory_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


class UnknownActionError(LinktoryError):
    """Raised when a scoring action tag is not part of the Action enum."""

    def __init__(self, action: str):
        super().__init__(f"Unknown action '{action}'", "unknown_action")
        self.action = action


class InvalidUrlError(LinktoryError):
    """Raised when a submitted link is not an http(s) URL."""

    def __init__(self, url: str):
        super().__init__(
            "⚠️ Please send a valid URL starting with http or https.",
            "invalid_url",
        )
        self.url = url


class LinkExistsError(LinktoryError):
    def __init__(self, url: str):
        super().__init__("❌ This link already exists in Linktory.", "link_exists")
        self.url = url


class LinkNotFoundError(LinktoryError):
    def __init__(self, identifier: str):
        super().__init__("❌ Link not found.", "link_not_found")
        self.identifier = identifier


class UserNotFoundError(LinktoryError):
    def __init__(self, telegram_id: int):
        super().__init__(
            "❌ You are not registered yet. Use /start to begin.",
            "user_not_found",
        )
        self.telegram_id = telegram_id


class SelfReportError(LinktoryError):
    def __init__(self):
        super().__init__("⛔ You can't report your own link!", "self_report")


class DuplicateReportError(LinktoryError):
    def __init__(self):
        super().__init__("⚠️ You already reported this link.", "duplicate_report")


class DuplicateVoteError(LinktoryError):
    def __init__(self):
        super().__init__("⚠️ You already voted on this link.", "duplicate_vote")


class CommentLimitError(LinktoryError):
    """Raised when a user exceeds the per-link comment allowance."""

    def __init__(self, limit: int):
        super().__init__(
            f"⚠️ You already commented {limit} times on this link.",
            "comment_limit",
        )
        self.limit = limit


class DailyBonusClaimedError(LinktoryError):
    def __init__(self):
        super().__init__("⏳ Already claimed today.", "daily_bonus_claimed")


class LinkStateError(LinktoryError):
    """Raised when an invalid link status transition is attempted."""

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            f"Invalid status transition: '{current_status}' → '{target_status}'",
            "link_state_error",
        )
        self.current_status = current_status
        self.target_status = target_status


class PermissionDeniedError(LinktoryError):
    def __init__(self, action: str):
        super().__init__(f"⛔ You are not allowed to {action}.", "permission_denied")
        self.action = action


def raise_http_exception(error: LinktoryError) -> None:
    """Convert LinktoryError to HTTPException."""
    status_map = {
        "unknown_action": status.HTTP_400_BAD_REQUEST,
        "invalid_url": status.HTTP_400_BAD_REQUEST,
        "link_exists": status.HTTP_409_CONFLICT,
        "link_not_found": status.HTTP_404_NOT_FOUND,
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "self_report": status.HTTP_403_FORBIDDEN,
        "duplicate_report": status.HTTP_409_CONFLICT,
        "duplicate_vote": status.HTTP_409_CONFLICT,
        "comment_limit": status.HTTP_429_TOO_MANY_REQUESTS,
        "daily_bonus_claimed": status.HTTP_409_CONFLICT,
        "link_state_error": status.HTTP_409_CONFLICT,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "invalid_penalty": status.HTTP_400_BAD_REQUEST,
        "invalid_vote": status.HTTP_400_BAD_REQUEST,
        "voting_closed": status.HTTP_409_CONFLICT,
        "linktory_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    code = status_map.get(error.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)

    raise HTTPException(
        status_code=code,
        detail={
            "type": error.error_type,
            "title": error.error_type.replace("_", " ").title(),
            "status": code,
            "detail": error.message,
        },
    )
