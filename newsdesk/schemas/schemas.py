"""
Pydantic v2 schemas for the non-step API surface: runs, articles, presets,
exports, source text and health.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import ConfigDict, Field

from newsdesk.models.models import ArticleStatus, RunType, SourceType
from newsdesk.schemas.aggregate import Source
from newsdesk.schemas.common import BlobsCount, CamelModel, LengthRange


# ── Pipeline triggers ───────────────────────────────────────
class DigestSource(CamelModel):
    accredit: str = ""
    description: str = ""
    text: str = Field(min_length=1)
    url: str | None = None
    use_verbatim: bool = False
    is_primary_source: bool = False


class DigestRunRequest(CamelModel):
    slug: str = Field(min_length=1, max_length=200)
    org_id: str = "default"
    created_by: str = ""
    source: DigestSource
    instructions: str = ""
    blobs: BlobsCount = "1"
    length: LengthRange = "700-850"
    headline: str | None = None


class AggregateRunRequest(CamelModel):
    slug: str = Field(min_length=1, max_length=200)
    org_id: str = "default"
    created_by: str = ""
    sources: list[Source] = Field(min_length=1)
    instructions: str = ""
    blobs: BlobsCount = "1"
    length: LengthRange = "700-850"
    headline_suggestion: str | None = None
    allow_partial: bool = False


class RunTriggerResponse(CamelModel):
    run_id: str
    article_id: str
    slug: str
    version: int
    status: str = "started"


# ── Run status ──────────────────────────────────────────────
class RunStatusResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    run_id: str = Field(validation_alias="id")
    article_id: str
    run_type: RunType
    status: ArticleStatus
    total_tokens: int = 0
    cost_usd: float = 0.0
    failed_step: str | None = None
    error_log: str | None = None
    started_at: datetime
    completed_at: datetime | None = None


# ── Articles ────────────────────────────────────────────────
class ArticleVersionResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    slug: str
    version: int
    version_decimal: str
    headline: str | None = None
    blob: str | None = None
    content: str | None = None
    rich_content: str | None = None
    status: ArticleStatus
    source_type: SourceType
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


# ── Presets ─────────────────────────────────────────────────
class PresetCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    instructions: str = ""
    blobs: BlobsCount = "1"
    length: LengthRange = "700-850"
    org_id: str = "default"


class PresetResponse(PresetCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str


# ── Export ──────────────────────────────────────────────────
class ExportDocument(CamelModel):
    headline: str = ""
    blob: str = ""  # newline-separated blobs
    content: str | None = None
    rich_content: str | None = None
    slug: str = ""
    version: int | None = None
    version_decimal: str | None = None
    org_name: str | None = None
    exported_on: str | None = None  # ISO date, defaults to today

    @property
    def version_label(self) -> str:
        if self.version_decimal:
            return self.version_decimal
        return f"{self.version}.0" if self.version is not None else ""


class EmailExportRequest(ExportDocument):
    to: list[str] = []
    subject: str | None = None


class EmailExportResponse(CamelModel):
    sent: bool
    recipients: list[str] = []


# ── Source text ─────────────────────────────────────────────
class SourceTextRequest(CamelModel):
    url: str


class SourceTextResponse(CamelModel):
    success: bool
    text: str = ""


# ── Health check ────────────────────────────────────────────
class HealthResponse(CamelModel):
    status: str = "healthy"
    version: str = "0.1.0"
    environment: str
    database: str = "connected"
