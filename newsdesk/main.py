"""
FastAPI application entry point.

Configures middleware, lifespan events, and mounts all routers.
Run locally: uvicorn newsdesk.main:app --reload
Production:  gunicorn newsdesk.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from newsdesk.api.v1.routes import (
    aggregate_steps,
    articles,
    digest_steps,
    exports,
    health,
    runs,
    source_text,
)
from newsdesk.core.config import get_settings
from newsdesk.core.errors import SourceLimitError
from newsdesk.core.logging import get_logger, setup_logging
from newsdesk.core.security import limiter
from newsdesk.models.database import engine, init_db

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown events."""
    setup_logging()
    logger.info(
        "app_starting",
        environment=settings.app_env,
        database=settings.database_url[:30] + "...",
        models={
            "extractor": settings.model_extractor,
            "writer": settings.model_writer,
            "structurer": settings.model_structurer,
        },
    )
    if settings.api_key == "change-me":
        logger.warning("default_api_key_in_use")
    if settings.is_sqlite:
        await init_db()

    yield

    await engine.dispose()
    logger.info("app_shutting_down")


app = FastAPI(
    title="Newsdesk",
    description="LangGraph pipeline that turns source articles into edited, color-coded news copy",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.app_env != "production" else None,
    redoc_url="/redoc" if settings.app_env != "production" else None,
)

# ── Middleware ──────────────────────────────────────────────
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Rate limiting ──────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ── Domain errors that escape a route ──────────────────────
@app.exception_handler(SourceLimitError)
async def source_limit_handler(request: Request, exc: SourceLimitError) -> JSONResponse:
    logger.warning("source_limit_rejected", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# ── Routes ─────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(digest_steps.router, prefix="/api/v1")
app.include_router(aggregate_steps.router, prefix="/api/v1")
app.include_router(runs.router, prefix="/api/v1")
app.include_router(articles.router, prefix="/api/v1")
app.include_router(exports.router, prefix="/api/v1")
app.include_router(source_text.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "service": "Newsdesk",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/healthz/",
    }
