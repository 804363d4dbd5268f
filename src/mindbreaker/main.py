"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mindbreaker.admin_requests.router import router as admin_requests_router
from mindbreaker.catalog.router import router as catalog_router
from mindbreaker.config import get_settings
from mindbreaker.database import close_db, init_db
from mindbreaker.gamification.router import router as gamification_router
from mindbreaker.health.router import router as health_router
from mindbreaker.matching.router import router as matching_router
from mindbreaker.middleware import setup_middleware
from mindbreaker.notifications.router import router as notifications_router
from mindbreaker.progress.router import router as progress_router
from mindbreaker.redis_client import close_redis, init_redis
from mindbreaker.submissions.router import router as submissions_router
from mindbreaker.validation.router import router as validation_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="MindBreaker API",
        description="Backend API for MindBreaker, a gamified learning platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(validation_router)
    app.include_router(gamification_router)
    app.include_router(progress_router)
    app.include_router(catalog_router)
    app.include_router(matching_router)
    app.include_router(notifications_router)
    app.include_router(admin_requests_router)
    app.include_router(submissions_router)

    return app


app = create_app()
