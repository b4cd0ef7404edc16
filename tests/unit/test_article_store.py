"""Persistence tests against an in-memory SQLite database."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from newsdesk.core.errors import SourceLimitError
from newsdesk.models.models import ArticleStatus, Base, RunType, SourceType
from newsdesk.services.article_store import ArticleStore


@pytest.fixture
async def store():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield ArticleStore(session)
    await engine.dispose()


async def _create(store: ArticleStore, slug: str = "council-budget", org_id: str = "metro", **kwargs):
    return await store.create_version(
        org_id=org_id,
        slug=slug,
        sources=kwargs.pop("sources", [{"text": "source"}]),
        source_type=kwargs.pop("source_type", SourceType.SINGLE),
        **kwargs,
    )


class TestVersioning:
    async def test_versions_increment_per_slug(self, store):
        first = await _create(store)
        second = await _create(store)
        other = await _create(store, slug="other-story")
        third = await _create(store)

        assert [first.version, second.version, third.version] == [1, 2, 3]
        assert third.version_decimal == "3.0"
        assert other.version == 1

    async def test_versions_are_scoped_to_org(self, store):
        await _create(store, org_id="metro")
        article = await _create(store, org_id="sports")
        assert article.version == 1

    async def test_latest_version_by_default(self, store):
        await _create(store)
        await _create(store)
        latest = await store.get_version("metro", "council-budget")
        first = await store.get_version("metro", "council-budget", 1)
        assert latest.version == 2
        assert first.version == 1
        assert await store.get_version("metro", "council-budget", 9) is None

    async def test_list_versions_newest_first(self, store):
        for _ in range(3):
            await _create(store)
        versions = await store.list_versions("metro", "council-budget")
        assert [a.version for a in versions] == [3, 2, 1]

    @pytest.mark.parametrize("count", [0, 7])
    async def test_source_count_is_enforced(self, store, count):
        with pytest.raises(SourceLimitError):
            await _create(store, sources=[{"text": str(n)} for n in range(count)])

    async def test_six_sources_allowed(self, store):
        article = await _create(
            store, sources=[{"text": str(n)} for n in range(6)], source_type=SourceType.MULTI
        )
        assert len(article.sources) == 6
        assert article.status == ArticleStatus.STARTED


class TestResults:
    async def test_completed_run_stores_output(self, store):
        article = await _create(store)
        saved = await store.save_results(
            article.id,
            status=ArticleStatus.COMPLETED,
            headline="Council passes budget",
            blobs=["Mayor hails vote", "Transit left short"],
            content="Body",
            rich_content='{"root": {}}',
        )
        assert saved.status == ArticleStatus.COMPLETED
        assert saved.blob == "Mayor hails vote\nTransit left short"
        assert saved.content == "Body"

    async def test_failed_run_clears_output(self, store):
        article = await _create(store)
        await store.save_results(article.id, status="completed", headline="H", content="Body")
        saved = await store.save_results(article.id, status="failed")
        assert saved.status == ArticleStatus.FAILED
        assert saved.headline is None
        assert saved.content is None

    async def test_progress_status_round_trips(self, store):
        article = await _create(store)
        await store.update_status(article.id, "25%")
        assert (await store.get(article.id)).status == ArticleStatus.PCT_25

    async def test_unknown_article_is_ignored(self, store):
        assert await store.save_results("missing", status="completed") is None

    async def test_archive_touches_every_version(self, store):
        await _create(store)
        await _create(store)
        assert await store.archive("metro", "council-budget") == 2
        versions = await store.list_versions("metro", "council-budget")
        assert {a.status for a in versions} == {ArticleStatus.ARCHIVED}


class TestRuns:
    async def test_run_lifecycle(self, store):
        article = await _create(store)
        run = await store.create_run(article.id, RunType.DIGEST)
        assert run.status == ArticleStatus.STARTED
        assert run.completed_at is None

        await store.update_run(run.id, status="50%")
        assert (await store.get_run(run.id)).completed_at is None

        await store.update_run(
            run.id, status="failed", total_tokens=120, cost_usd=0.01, failed_step="write", error_log="boom"
        )
        finished = await store.get_run(run.id)
        assert finished.status == ArticleStatus.FAILED
        assert finished.failed_step == "write"
        assert finished.total_tokens == 120
        assert finished.completed_at is not None


class TestPresets:
    async def test_create_and_find(self, store):
        await store.create_preset(name="Breaking", instructions="Short and punchy", blobs="2")
        await store.create_preset(name="Analysis", length="1000-1200", org_id="metro")

        preset = await store.get_preset_by_name("Breaking")
        assert preset.blobs == "2"
        assert [p.name for p in await store.list_presets()] == ["Analysis", "Breaking"]
        assert [p.name for p in await store.list_presets("metro")] == ["Analysis"]
        assert await store.get_preset_by_name("missing") is None
