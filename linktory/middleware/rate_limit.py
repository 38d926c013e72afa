"""Redis-based sliding window rate limiting middleware."""

import secrets
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from linktory.logging_config import get_logger

logger = get_logger(__name__)

# Telegram retries webhooks on 429, so the webhook is never throttled
SKIP_PATHS = {"/", "/health", "/webhook", "/docs", "/redoc", "/openapi.json"}

DEFAULT_LIMIT = 60
DEFAULT_WINDOW = 60  # seconds


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-caller, per-path sliding window (ZADD + ZREMRANGEBYSCORE)."""

    def __init__(
        self,
        app,
        redis_getter,
        limit: int = DEFAULT_LIMIT,
        window: int = DEFAULT_WINDOW,
        admin_token: str = "",
        trust_forwarded_for: bool = False,
    ):
        super().__init__(app)
        self._redis_getter = redis_getter
        self._limit = limit
        self._window = window
        self._admin_token = admin_token
        self._trust_forwarded_for = trust_forwarded_for

    def caller_id(self, request: Request) -> str:
        """Bucket key for a request: the admin bucket for a valid token, else the client address."""
        token = request.headers.get("X-Admin-Token", "")
        if self._admin_token and token and secrets.compare_digest(
            token.encode(), self._admin_token.encode()
        ):
            return "admin"
        if self._trust_forwarded_for:
            forwarded = request.headers.get("X-Forwarded-For", "")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        identifier = self.caller_id(request)
        key = f"ratelimit:{identifier}:{request.url.path}"

        try:
            redis = self._redis_getter()
            now = time.time()

            pipe = redis.pipeline()
            pipe.zremrangebyscore(key, 0, now - self._window)
            pipe.zadd(key, {str(now): now})
            pipe.zcard(key)
            pipe.expire(key, self._window + 1)
            results = await pipe.execute()
            request_count = results[2]
        except Exception as e:
            # Redis down: let the request through
            logger.warning("rate_limit_redis_error", error=str(e))
            return await call_next(request)

        if request_count > self._limit:
            logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                path=request.url.path,
                count=request_count,
                limit=self._limit,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "detail": f"Rate limit exceeded: {self._limit} requests per {self._window}s",
                    "retry_after": self._window,
                },
                headers={"Retry-After": str(self._window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self._limit - request_count))
        return response
