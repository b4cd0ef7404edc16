"""
Article persistence — versioned articles, presets and pipeline runs.

Every save creates a new version row: version = max(version) + 1 for the
(org_id, slug) pair, so earlier drafts are never overwritten.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.core.errors import SourceLimitError
from newsdesk.core.logging import get_logger
from newsdesk.models.models import (
    Article,
    ArticleStatus,
    PipelineRun,
    Preset,
    RunType,
    SourceType,
)

logger = get_logger(__name__)

MAX_SOURCES = 6


class ArticleStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ── Articles ────────────────────────────────────────────
    async def next_version(self, org_id: str, slug: str) -> int:
        current = await self.session.scalar(
            select(func.max(Article.version)).where(Article.org_id == org_id, Article.slug == slug)
        )
        return (current or 0) + 1

    async def create_version(
        self,
        *,
        org_id: str,
        slug: str,
        sources: list[dict],
        source_type: SourceType,
        created_by: str | None = None,
        preset_instructions: str = "",
        preset_blobs: str = "1",
        preset_length: str = "700-850",
        max_sources: int = MAX_SOURCES,
    ) -> Article:
        if not 1 <= len(sources) <= max_sources:
            raise SourceLimitError(f"An article needs 1-{max_sources} sources, got {len(sources)}")

        version = await self.next_version(org_id, slug)
        article = Article(
            org_id=org_id,
            slug=slug,
            version=version,
            version_decimal=f"{version}.0",
            sources=sources,
            source_type=source_type,
            created_by=created_by,
            preset_instructions=preset_instructions,
            preset_blobs=preset_blobs,
            preset_length=preset_length,
            status=ArticleStatus.STARTED,
        )
        self.session.add(article)
        await self.session.flush()
        logger.info("article_version_created", slug=slug, version=version, org_id=org_id)
        return article

    async def get(self, article_id: str) -> Article | None:
        return await self.session.get(Article, article_id)

    async def get_version(self, org_id: str, slug: str, version: int | None = None) -> Article | None:
        """Specific version, or the latest one when ``version`` is None."""
        stmt = select(Article).where(Article.org_id == org_id, Article.slug == slug)
        if version is None:
            stmt = stmt.order_by(Article.version.desc()).limit(1)
        else:
            stmt = stmt.where(Article.version == version)
        return await self.session.scalar(stmt)

    async def list_versions(self, org_id: str, slug: str) -> list[Article]:
        result = await self.session.scalars(
            select(Article)
            .where(Article.org_id == org_id, Article.slug == slug)
            .order_by(Article.version.desc())
        )
        return list(result)

    async def update_status(self, article_id: str, status: ArticleStatus | str) -> None:
        article = await self.session.get(Article, article_id)
        if article is None:
            return
        article.status = ArticleStatus(status)
        await self.session.flush()

    async def save_results(
        self,
        article_id: str,
        *,
        status: ArticleStatus | str,
        headline: str = "",
        blobs: list[str] | None = None,
        content: str = "",
        rich_content: str = "",
    ) -> Article | None:
        """Completed runs store their output; failed runs clear any partial output."""
        article = await self.session.get(Article, article_id)
        if article is None:
            return None

        article.status = ArticleStatus(status)
        if article.status == ArticleStatus.COMPLETED:
            article.headline = headline
            article.blob = "\n".join(blobs or [])
            article.content = content
            article.rich_content = rich_content
        elif article.status == ArticleStatus.FAILED:
            article.headline = None
            article.blob = None
            article.content = None
            article.rich_content = None
        await self.session.flush()
        return article

    async def archive(self, org_id: str, slug: str) -> int:
        """Archive every version of a slug; returns the number of rows touched."""
        versions = await self.list_versions(org_id, slug)
        for article in versions:
            article.status = ArticleStatus.ARCHIVED
        await self.session.flush()
        return len(versions)

    # ── Pipeline runs ───────────────────────────────────────
    async def create_run(self, article_id: str, run_type: RunType) -> PipelineRun:
        run = PipelineRun(article_id=article_id, run_type=run_type, status=ArticleStatus.STARTED)
        self.session.add(run)
        await self.session.flush()
        return run

    async def get_run(self, run_id: str) -> PipelineRun | None:
        return await self.session.get(PipelineRun, run_id)

    async def update_run(
        self,
        run_id: str,
        *,
        status: ArticleStatus | str,
        total_tokens: int | None = None,
        cost_usd: float | None = None,
        failed_step: str | None = None,
        error_log: str | None = None,
    ) -> None:
        run = await self.session.get(PipelineRun, run_id)
        if run is None:
            return
        run.status = ArticleStatus(status)
        if total_tokens is not None:
            run.total_tokens = total_tokens
        if cost_usd is not None:
            run.cost_usd = cost_usd
        if failed_step is not None:
            run.failed_step = failed_step
        if error_log is not None:
            run.error_log = error_log
        if run.status in (ArticleStatus.COMPLETED, ArticleStatus.FAILED):
            run.completed_at = datetime.now(UTC)
        await self.session.flush()

    # ── Presets ─────────────────────────────────────────────
    async def create_preset(
        self,
        *,
        name: str,
        instructions: str = "",
        blobs: str = "1",
        length: str = "700-850",
        org_id: str = "default",
    ) -> Preset:
        preset = Preset(name=name, instructions=instructions, blobs=blobs, length=length, org_id=org_id)
        self.session.add(preset)
        await self.session.flush()
        return preset

    async def get_preset_by_name(self, name: str) -> Preset | None:
        return await self.session.scalar(select(Preset).where(Preset.name == name))

    async def list_presets(self, org_id: str | None = None) -> list[Preset]:
        stmt = select(Preset).order_by(Preset.name)
        if org_id is not None:
            stmt = stmt.where(Preset.org_id == org_id)
        return list(await self.session.scalars(stmt))
