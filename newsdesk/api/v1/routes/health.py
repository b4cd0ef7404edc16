"""Health check endpoints — used by the platform healthcheck and monitoring."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from newsdesk.core.config import get_settings
from newsdesk.core.logging import get_logger
from newsdesk.models.database import engine
from newsdesk.schemas.schemas import HealthResponse

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/healthz/", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    settings = get_settings()
    database = "connected"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("health_db_unreachable", error=str(e))
        database = "unreachable"
    return HealthResponse(
        status="healthy" if database == "connected" else "degraded",
        environment=settings.app_env,
        database=database,
    )
