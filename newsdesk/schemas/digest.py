"""
Digest-mode (single source) step requests and responses.

Every text field defaults to "" so a request with a missing field still parses
and the step handler can answer 400 with its empty payload.
"""

from __future__ import annotations

from pydantic import Field

from newsdesk.schemas.common import CamelModel, StepResponse


# ── Step 01: extract fact quotes ───────────────────────────
class ExtractFactQuotesRequest(CamelModel):
    source_accredit: str = ""
    source_description: str = ""
    source_text: str = ""


class ExtractFactQuotesResponse(StepResponse):
    quotes: str = ""


# ── Step 02: summarize facts ───────────────────────────────
class SummarizeFactsRequest(CamelModel):
    source_accredit: str = ""
    source_description: str = ""
    source_text: str = ""
    instructions: str = ""


class SummarizeFactsResponse(StepResponse):
    summary: str = ""


# ── Step 03: headline and blobs ────────────────────────────
class WriteHeadlineAndBlobsRequest(CamelModel):
    blobs: int = Field(default=1, ge=0, le=6)
    headline: str | None = None  # editor headline, overrides the generated one
    instructions: str = ""
    source_accredit: str = ""
    source_description: str = ""
    source_text: str = ""
    summarize_facts: str = ""
    extract_fact_quotes: str = ""


class WriteHeadlineAndBlobsResponse(StepResponse):
    headline: str = ""
    blobs: list[str] = []


# ── Step 04: article outline ───────────────────────────────
class WriteArticleOutlineRequest(CamelModel):
    source_accredit: str = ""
    source_description: str = ""
    source_text: str = ""
    instructions: str = ""
    summarize_facts_text: str = ""
    extract_fact_quotes_text: str = ""
    headline_and_blobs_text: str = ""


class WriteArticleOutlineResponse(StepResponse):
    outline: list[str] = []


class OutlineOutput(CamelModel):
    outline: list[str] = Field(
        description="Key points for the article outline, in order, each a complete sentence"
    )


# ── Step 05: write article ─────────────────────────────────
class WriteArticleRequest(CamelModel):
    length: str = "700-850"
    source_accredit: str = ""
    source_description: str = ""
    source_text: str = ""
    is_primary_source: bool = False
    instructions: str = ""
    headline_and_blobs_text: str = ""
    summarize_facts_text: str = ""
    article_outline_text: str = ""


class WriteArticleResponse(StepResponse):
    article: str = ""


class ArticleOutput(CamelModel):
    article: str = Field(description="The complete article text, expertly reported and thorough")


# ── Step 06: paraphrase article ────────────────────────────
class ParaphraseArticleRequest(CamelModel):
    source_accredit: str = ""
    source_description: str = ""
    source_text: str = ""
    article_text: str = ""


class ParaphraseArticleResponse(StepResponse):
    paraphrased_article: str = ""


class ParaphrasedArticleOutput(CamelModel):
    paraphrased_article: str = Field(
        description="The paraphrased article with improved flow, keeping every source tag"
    )


# ── Step 07 / verbatim: one sentence per line ──────────────
class SentencePerLineRequest(CamelModel):
    paraphrased_article: str = ""


class VerbatimRequest(CamelModel):
    source_text: str = ""


class FormattedArticleResponse(StepResponse):
    formatted_article: str = ""
