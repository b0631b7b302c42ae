"""Точка сборки FastAPI-приложения. Подключает роутеры, middleware и lifecycle-хуки."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from . import __version__
from .config import Settings, get_settings
from .db import check_connection, close_pool, init_pool, initialize_database
from .errors import UnhandledErrorMiddleware, setup_exception_handlers
from .rate_limiter import RateLimitMiddleware, SlidingWindowLimiter
from .routers import auth, health, telegram, user
from .services.sessions import run_cleanup_loop

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s — %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown хуки."""
    settings: Settings = app.state.settings

    await init_pool(settings)
    if not await check_connection():
        await close_pool()
        raise RuntimeError("Failed to connect to database")
    if not await initialize_database():
        await close_pool()
        raise RuntimeError("Failed to initialize database schema")

    cleanup_task = asyncio.create_task(run_cleanup_loop(settings.session_cleanup_interval))
    logger.info(
        "Application initialized: env=%s bot=%s health=http://%s:%s/health",
        settings.env, settings.bot_username or "-", settings.api_host, settings.api_port,
    )
    try:
        yield
    finally:
        cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await cleanup_task
        await close_pool()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = SlidingWindowLimiter(
        window=settings.rate_limit_window,
        max_requests=settings.rate_limit_max,
    )

    # Порядок: последний добавленный — внешний. CORS снаружи, перехват 500 внутри
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    # --- Роутеры ---
    app.include_router(health.router)
    app.include_router(telegram.router)
    app.include_router(auth.router)
    app.include_router(user.router)

    # Статика Mini App (если собрана рядом)
    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")

    return app


configure_logging(get_settings())
app = create_app()
