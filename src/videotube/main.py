"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from videotube.auth.router import router as auth_router
from videotube.config import get_settings
from videotube.database import close_db, init_db
from videotube.health.router import router as health_router
from videotube.middleware import setup_middleware
from videotube.otp.router import router as otp_router
from videotube.redis_client import close_redis, init_redis
from videotube.subscriptions.router import router as subscriptions_router
from videotube.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("app_started", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    await close_redis()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="VideoTube API",
        description="Accounts, channels, subscriptions and watch history for VideoTube",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(otp_router)
    app.include_router(subscriptions_router)

    return app


app = create_app()
