"""Application factory; serve with ``uvicorn app.main:create_app --factory``."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from app.api import router
from app.web import router as web_router
from cache.store import build_default_cache
from logging_config import configure_logging
from services.dashboard import build_default_dashboard
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    dashboard = build_default_dashboard()
    try:
        yield
    finally:
        dashboard.close()
        build_default_dashboard.cache_clear()
        build_default_cache.cache_clear()


def create_app() -> FastAPI:
    # Raises ConfigError before anything is served when PRODUCT_ID, API_KEY
    # or API_URL is missing.
    settings = get_settings()
    configure_logging()
    app = FastAPI(
        title="Air Quality Egg",
        description="Dashboard API over the egg feeds hosted on the telemetry platform.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        https_only=settings.is_production,
    )
    app.include_router(router)
    app.include_router(web_router)
    return app
