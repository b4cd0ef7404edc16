"""
Pipeline trigger and status endpoints.

POST /api/v1/runs/digest     — single-source run (background task)
POST /api/v1/runs/aggregate  — multi-source run (background task)
GET  /api/v1/runs/{run_id}   — poll run status
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsdesk.agents.graph import PipelineResult, run_aggregate_pipeline, run_digest_pipeline
from newsdesk.api.v1.deps import LLM, AppSettings, AuthenticatedUser, SessionFactory, Store
from newsdesk.core.config import get_settings
from newsdesk.core.logging import get_logger
from newsdesk.core.security import limiter
from newsdesk.models.models import ArticleStatus, RunType, SourceType
from newsdesk.schemas.schemas import (
    AggregateRunRequest,
    DigestRunRequest,
    RunStatusResponse,
    RunTriggerResponse,
)
from newsdesk.services.article_store import ArticleStore
from newsdesk.services.email_service import EmailService
from newsdesk.services.llm_client import LLMClient

router = APIRouter(prefix="/runs", tags=["runs"])
logger = get_logger(__name__)

Sessions = async_sessionmaker[AsyncSession]


def _status_recorder(sessions: Sessions, article_id: str, run_id: str) -> Callable[[str], Awaitable[None]]:
    async def on_status(status: str) -> None:
        async with sessions() as session:
            store = ArticleStore(session)
            await store.update_status(article_id, status)
            await store.update_run(run_id, status=status)
            await session.commit()

    return on_status


async def _record_result(
    sessions: Sessions, article_id: str, run_id: str, result: PipelineResult
) -> None:
    status = ArticleStatus.COMPLETED if result.success else ArticleStatus.FAILED
    async with sessions() as session:
        store = ArticleStore(session)
        await store.save_results(
            article_id,
            status=status,
            headline=result.headline,
            blobs=result.blobs,
            content=result.content,
            rich_content=result.rich_content,
        )
        await store.update_run(
            run_id,
            status=status,
            total_tokens=result.total_tokens,
            cost_usd=result.cost_usd,
            failed_step=result.failed_step,
            error_log="\n".join(result.error_log) or None,
        )
        await session.commit()


async def _notify(created_by: str, slug: str, version: int, result: PipelineResult) -> None:
    """Completion email is best-effort and only goes to an address-like creator."""
    settings = get_settings()
    if not settings.email_enabled or "@" not in (created_by or ""):
        return
    try:
        await asyncio.to_thread(
            EmailService(settings).send_completion_email,
            created_by,
            slug=slug,
            version=version,
            headline=result.headline,
            status="completed" if result.success else "failed",
        )
    except Exception as e:
        logger.warning("completion_email_skipped", slug=slug, error=str(e))


async def execute_run(
    run_type: RunType,
    request: DigestRunRequest | AggregateRunRequest,
    *,
    run_id: str,
    article_id: str,
    version: int,
    llm: LLMClient,
    sessions: Sessions,
) -> None:
    """Background task: execute the pipeline graph and persist its result."""
    on_status = _status_recorder(sessions, article_id, run_id)
    try:
        if run_type == RunType.DIGEST:
            result = await run_digest_pipeline(request, llm=llm, run_id=run_id, on_status=on_status)
        else:
            result = await run_aggregate_pipeline(request, llm=llm, run_id=run_id, on_status=on_status)
    except Exception as e:
        logger.error("pipeline_failed", run_id=run_id, error=str(e))
        result = PipelineResult(run_id=run_id, success=False, error_log=[f"Pipeline error: {e}"])

    await _record_result(sessions, article_id, run_id, result)
    await _notify(request.created_by, request.slug, version, result)
    logger.info("pipeline_run_recorded", run_id=run_id, success=result.success)


@router.post("/digest", response_model=RunTriggerResponse)
@limiter.limit(lambda: get_settings().run_rate_limit)
async def trigger_digest(
    request: Request,
    body: DigestRunRequest,
    background_tasks: BackgroundTasks,
    store: Store,
    llm: LLM,
    sessions: SessionFactory,
    _api_key: AuthenticatedUser,
) -> RunTriggerResponse:
    """Create the next article version and start a digest run. Returns immediately."""
    article = await store.create_version(
        org_id=body.org_id,
        slug=body.slug,
        sources=[body.source.model_dump()],
        source_type=SourceType.SINGLE,
        created_by=body.created_by or None,
        preset_instructions=body.instructions,
        preset_blobs=body.blobs,
        preset_length=body.length,
    )
    run = await store.create_run(article.id, RunType.DIGEST)
    await store.session.commit()

    background_tasks.add_task(
        execute_run,
        RunType.DIGEST,
        body,
        run_id=run.id,
        article_id=article.id,
        version=article.version,
        llm=llm,
        sessions=sessions,
    )
    logger.info("pipeline_triggered", run_id=run.id, mode="digest", slug=body.slug)
    return RunTriggerResponse(
        run_id=run.id, article_id=article.id, slug=article.slug, version=article.version
    )


@router.post("/aggregate", response_model=RunTriggerResponse)
@limiter.limit(lambda: get_settings().run_rate_limit)
async def trigger_aggregate(
    request: Request,
    body: AggregateRunRequest,
    background_tasks: BackgroundTasks,
    store: Store,
    llm: LLM,
    sessions: SessionFactory,
    settings: AppSettings,
    _api_key: AuthenticatedUser,
) -> RunTriggerResponse:
    """Create the next article version and start an aggregate run. Returns immediately."""
    # SourceLimitError becomes a 400 via the app-level handler
    article = await store.create_version(
        org_id=body.org_id,
        slug=body.slug,
        sources=[s.model_dump() for s in body.sources],
        source_type=SourceType.MULTI,
        created_by=body.created_by or None,
        preset_instructions=body.instructions,
        preset_blobs=body.blobs,
        preset_length=body.length,
        max_sources=settings.max_sources,
    )
    run = await store.create_run(article.id, RunType.AGGREGATE)
    await store.session.commit()

    background_tasks.add_task(
        execute_run,
        RunType.AGGREGATE,
        body,
        run_id=run.id,
        article_id=article.id,
        version=article.version,
        llm=llm,
        sessions=sessions,
    )
    logger.info(
        "pipeline_triggered", run_id=run.id, mode="aggregate", slug=body.slug, sources=len(body.sources)
    )
    return RunTriggerResponse(
        run_id=run.id, article_id=article.id, slug=article.slug, version=article.version
    )


@router.get("/{run_id}", response_model=RunStatusResponse)
async def get_run_status(run_id: str, store: Store, _api_key: AuthenticatedUser) -> RunStatusResponse:
    """Get the current status of a pipeline run."""
    run = await store.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return RunStatusResponse.model_validate(run)
