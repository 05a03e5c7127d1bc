import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.accessgrant.api.dependencies import DBSession
from src.accessgrant.api.middlewares import setup_middlewares
from src.accessgrant.api.v1.router import api_router
from src.accessgrant.core.config import get_settings
from src.accessgrant.core.db import dispose_engine
from src.accessgrant.core.exceptions import setup_exception_handlers
from src.accessgrant.core.logging import get_logger, setup_logging
from src.accessgrant.services.expiry_sweep import run_expiry_sweeper

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    sweeper: asyncio.Task[None] | None = None
    if settings.invite_expiry_sweep_interval_minutes > 0:
        sweeper = asyncio.create_task(
            run_expiry_sweeper(settings.invite_expiry_sweep_interval_minutes * 60)
        )

    yield

    logger.info("Closing connections...")
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "invites", "description": "Tenant invitations: issue, validate, accept"},
    {"name": "members", "description": "Tenant membership management"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Invitation-based access grants for multi-tenant teams and nonprofit portals",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
    )

    setup_exception_handlers(app)
    setup_middlewares(app, settings)
    app.include_router(api_router)

    @app.get("/health")
    async def health(session: DBSession) -> JSONResponse:
        """Health check with database validation."""
        health_status = {"status": "healthy", "database": "healthy"}
        try:
            await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error("Health check database failure", error_type=type(e).__name__)
            health_status = {"status": "unhealthy", "database": "unhealthy"}

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    return app


app = create_app()
