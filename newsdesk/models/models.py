"""
SQLAlchemy 2.0 ORM models.

Three entities: Article (one row per version), Preset, PipelineRun.
Uses mapped_column (SQLAlchemy 2.0 style) for type safety.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


# ── Enums ───────────────────────────────────────────────────
class ArticleStatus(str, enum.Enum):
    PENDING = "pending"
    STARTED = "started"
    PCT_10 = "10%"
    PCT_25 = "25%"
    PCT_50 = "50%"
    PCT_75 = "75%"
    PCT_90 = "90%"
    FAILED = "failed"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class SourceType(str, enum.Enum):
    SINGLE = "single"
    MULTI = "multi"


class RunType(str, enum.Enum):
    DIGEST = "digest"
    AGGREGATE = "aggregate"


# Stored by value so progress strings like "25%" round-trip unchanged
_enum_values = dict(values_callable=lambda e: [member.value for member in e])


# ── Models ──────────────────────────────────────────────────
class Article(Base):
    __tablename__ = "articles"
    __table_args__ = (UniqueConstraint("org_id", "slug", "version", name="uq_article_version"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    org_id: Mapped[str] = mapped_column(String(64), index=True)
    slug: Mapped[str] = mapped_column(String(200), index=True)
    version: Mapped[int] = mapped_column(Integer)
    version_decimal: Mapped[str] = mapped_column(String(20))

    headline: Mapped[str | None] = mapped_column(String(500), nullable=True)
    blob: Mapped[str | None] = mapped_column(Text, nullable=True)  # blobs joined by "\n"
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    rich_content: Mapped[str | None] = mapped_column(Text, nullable=True)

    sources: Mapped[list] = mapped_column(JSON, default=list)
    preset_instructions: Mapped[str] = mapped_column(Text, default="")
    preset_blobs: Mapped[str] = mapped_column(String(2), default="1")
    preset_length: Mapped[str] = mapped_column(String(20), default="700-850")

    status: Mapped[ArticleStatus] = mapped_column(
        Enum(ArticleStatus, **_enum_values), default=ArticleStatus.PENDING
    )
    source_type: Mapped[SourceType] = mapped_column(Enum(SourceType, **_enum_values))
    created_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now
    )

    runs: Mapped[list[PipelineRun]] = relationship(
        back_populates="article", cascade="all, delete-orphan"
    )


class Preset(Base):
    __tablename__ = "presets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), unique=True)
    instructions: Mapped[str] = mapped_column(Text, default="")
    blobs: Mapped[str] = mapped_column(String(2), default="1")
    length: Mapped[str] = mapped_column(String(20), default="700-850")
    org_id: Mapped[str] = mapped_column(String(64), default="default")


class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    article_id: Mapped[str] = mapped_column(ForeignKey("articles.id"))
    run_type: Mapped[RunType] = mapped_column(Enum(RunType, **_enum_values))
    status: Mapped[ArticleStatus] = mapped_column(
        Enum(ArticleStatus, **_enum_values), default=ArticleStatus.STARTED
    )
    total_tokens: Mapped[int] = mapped_column(Integer, default=0)
    cost_usd: Mapped[float] = mapped_column(Float, default=0.0)
    failed_step: Mapped[str | None] = mapped_column(String(100), nullable=True)
    error_log: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    article: Mapped[Article] = relationship(back_populates="runs")
