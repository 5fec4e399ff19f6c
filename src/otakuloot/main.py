"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from otakuloot.config import get_settings
from otakuloot.database import close_db, init_db
from otakuloot.health.router import router as health_router
from otakuloot.middleware import setup_middleware
from otakuloot.progression.router import router as progression_router
from otakuloot.redis_client import close_redis, init_redis
from otakuloot.shop.router import router as shop_router
from otakuloot.unlocks.router import router as unlocks_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="OtakuLoot API",
        description="Progression, checkout and unlock backend for the OtakuLoot storefront",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progression_router)
    app.include_router(shop_router)
    app.include_router(unlocks_router)

    return app


app = create_app()
