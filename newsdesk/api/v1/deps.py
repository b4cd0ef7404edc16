"""
Shared FastAPI dependencies for v1 API routes.
"""

from __future__ import annotations

import uuid
from typing import Annotated

import structlog
from asgi_correlation_id import correlation_id
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsdesk.core.config import Settings, get_settings
from newsdesk.core.logging import bind_run_logger
from newsdesk.core.security import verify_api_key
from newsdesk.models.database import async_session, get_db
from newsdesk.services.article_store import ArticleStore
from newsdesk.services.llm_client import LLMClient


def get_llm_client() -> LLMClient:
    """Overridden in tests with a client backed by a fake chat model."""
    return LLMClient()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for background tasks, which outlive the request session."""
    return async_session


def get_step_logger() -> structlog.stdlib.BoundLogger:
    """Per-request logger, keyed by the correlation id when one is set."""
    return bind_run_logger(correlation_id.get() or str(uuid.uuid4()), "step")


async def get_article_store(session: Annotated[AsyncSession, Depends(get_db)]) -> ArticleStore:
    return ArticleStore(session)


# Re-export for convenience in route files
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
AppSettings = Annotated[Settings, Depends(get_settings)]
LLM = Annotated[LLMClient, Depends(get_llm_client)]
StepLogger = Annotated[structlog.stdlib.BoundLogger, Depends(get_step_logger)]
Store = Annotated[ArticleStore, Depends(get_article_store)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
