"""FastAPI application entry point.

MirrorBot - anonymous confessions and blind chat for a campus community.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from mirrorbot.api.routes import health, metrics, telegram
from mirrorbot.config import get_settings
from mirrorbot.core.application import BotApplication
from mirrorbot.db.session import close_db, init_db
from mirrorbot.logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup:
    - Initialize logging
    - Initialize database
    - Start the bot (polling or webhook)

    Shutdown:
    - Stop the bot and drain voice jobs
    - Close database connections
    """
    settings = get_settings()

    # Startup
    setup_logging(
        level=settings.log_level,
        enable_file=settings.is_production,
    )

    # Only auto-create tables in development
    # Production should use: python scripts/init_db.py
    if not settings.is_production:
        await init_db()

    bot: BotApplication | None = None
    if settings.bot_enabled:
        bot = BotApplication(settings)
        await bot.start()
    app.state.bot = bot

    yield

    # Shutdown
    if bot is not None:
        await bot.stop()
    app.state.bot = None

    # Close database
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="MirrorBot API",
        description="Anonymous confessions and blind chat bot",
        version="0.1.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.bot = None

    # Health check routes
    app.include_router(health.router, tags=["Health"])

    # Telegram webhook
    app.include_router(telegram.router)

    # Metrics endpoint for Prometheus scraping
    app.include_router(metrics.router, tags=["Observability"])

    return app


# Application instance
app = create_app()
