"""
Aggregate-mode (multi-source) step requests and responses.

A ``Source`` travels through every step; steps 1 and 2 attach
``factsBitSplitting1`` / ``factsBitSplitting2`` and later steps read them
back through ``{{sources.N.*}}`` prompt paths. ``ArticleStepOutputs`` is the
accumulating bag of text each later step threads forward.
"""

from __future__ import annotations

from pydantic import Field

from newsdesk.schemas.common import CamelModel, StepResponse


class Source(CamelModel):
    number: int = 1
    accredit: str = ""
    text: str = ""
    description: str = ""
    use_verbatim: bool = False
    is_primary_source: bool = False
    is_base_source: bool = False
    facts_bit_splitting1: str = ""
    facts_bit_splitting2: str = ""


class HeadlineBlobs(CamelModel):
    headline: str = ""
    blobs: list[str] = []


class TextOutput(CamelModel):
    text: str = ""


class ArticleStepOutputs(CamelModel):
    headlines_blobs: HeadlineBlobs | None = None
    write_article_outline: TextOutput | None = None
    write_article: TextOutput | None = None
    rewrite_article: TextOutput | None = None
    rewrite_article2: TextOutput | None = None

    def text_of(self, name: str) -> str:
        output = getattr(self, name)
        return output.text if output is not None else ""


class SourceFailure(CamelModel):
    number: int
    error: str


# ── Steps 01 / 02: facts bit splitting ─────────────────────
class FactsBitSplittingRequest(CamelModel):
    sources: list[Source] = []
    allow_partial: bool = False


class FactsBitSplittingResponse(StepResponse):
    sources: list[Source] = []
    failed_sources: list[SourceFailure] = []


# ── Step 03: headlines and blobs ───────────────────────────
class HeadlinesBlobsRequest(CamelModel):
    no_of_blobs: int = 1
    headline_suggestion: str | None = None
    instructions: str = ""
    sources: list[Source] = []


class HeadlinesBlobsResponse(StepResponse):
    headline: str = ""
    blobs: list[str] = []


# ── Steps 04–08: share the sources + step outputs shape ────
class ArticleStepRequest(CamelModel):
    instructions: str = ""
    length: str = "700-850"
    sources: list[Source] = []
    article_step_outputs: ArticleStepOutputs = Field(default_factory=ArticleStepOutputs)


class OutlineResponse(StepResponse):
    outline: str = ""


class ArticleResponse(StepResponse):
    article: str = ""


class RewrittenArticleResponse(StepResponse):
    rewritten_article: str = ""


class ColorCodeResponse(StepResponse):
    color_coded_article: str = ""
    rich_content: str = ""
