"""Linktory FastAPI application: mini-app API, dashboard and Telegram webhook."""

import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from linktory.bot.application import build_application
from linktory.config import get_settings
from linktory.database import close_db, get_db, init_db
from linktory.logging_config import configure_logging, get_logger
from linktory.middleware.rate_limit import RateLimitMiddleware
from linktory.redis import close_redis, get_redis, init_redis
from linktory.routes.api import router as api_router
from linktory.routes.dashboard import router as dashboard_router
from linktory.routes.webhook import router as webhook_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Init DB, Redis and the bot on startup; tear them down on shutdown."""
    log_level = os.getenv("LOG_LEVEL", "INFO")
    json_format = os.getenv("LOG_FORMAT", "json") == "json"
    configure_logging(level=log_level, json_format=json_format)
    settings = get_settings()

    logger.info("starting_database_init")
    await init_db()

    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    await init_redis(redis_url)
    logger.info("redis_connected", url=redis_url)

    bot_app = build_application(settings.bot_token)
    app.state.bot = bot_app
    async with bot_app:
        if settings.webhook_url:
            await bot_app.bot.set_webhook(
                url=f"{settings.webhook_url.rstrip('/')}/webhook",
                secret_token=settings.webhook_secret or None,
            )
            logger.info("webhook_registered", url=settings.webhook_url)
        await bot_app.start()
        logger.info("application_started")
        yield

        logger.info("shutting_down")
        await bot_app.stop()

    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title="Linktory",
    description="Community link verification bot with points, trust and badges",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    RateLimitMiddleware,
    redis_getter=get_redis,
    limit=get_settings().rate_limit_requests,
    window=get_settings().rate_limit_window_seconds,
    admin_token=get_settings().admin_token,
    trust_forwarded_for=get_settings().trust_forwarded_for,
)

app.include_router(api_router)
app.include_router(dashboard_router)
app.include_router(webhook_router)


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "✅ Linktory bot is running!"


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check with a database round-trip."""
    try:
        result = await db.execute(text("SELECT now()"))
        db_time = result.scalar()
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        return JSONResponse(
            status_code=503,
            content={"status": "error", "service": "linktory", "database": "unavailable"},
        )
    return {"status": "ok", "service": "linktory", "time": str(db_time)}
