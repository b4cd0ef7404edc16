"""
Digest-mode step handlers (one long source → one article).

Each handler validates its required input, renders its mustache prompts and
calls the model through ``LLMClient``. Handlers are plain async functions so
the HTTP routes and the langgraph pipeline can share them.
"""

from __future__ import annotations

import structlog

from newsdesk.agents.headline import generate_headline_and_blobs
from newsdesk.agents.prompts import digest as prompts
from newsdesk.agents.steps.base import (
    StepOutcome,
    complete,
    complete_structured,
    is_blank,
    run_step,
    strip_tags,
)
from newsdesk.core.templating import build_prompts, sentence_guidance, word_target
from newsdesk.schemas.digest import (
    ArticleOutput,
    ExtractFactQuotesRequest,
    ExtractFactQuotesResponse,
    FormattedArticleResponse,
    OutlineOutput,
    ParaphraseArticleRequest,
    ParaphraseArticleResponse,
    ParaphrasedArticleOutput,
    SentencePerLineRequest,
    SummarizeFactsRequest,
    SummarizeFactsResponse,
    VerbatimRequest,
    WriteArticleOutlineRequest,
    WriteArticleOutlineResponse,
    WriteArticleRequest,
    WriteArticleResponse,
    WriteHeadlineAndBlobsRequest,
    WriteHeadlineAndBlobsResponse,
)
from newsdesk.services.llm_client import LLMClient

Logger = structlog.stdlib.BoundLogger


def _source(request) -> dict:
    return {
        "accredit": request.source_accredit,
        "description": request.source_description,
        "text": request.source_text,
    }


# ═══════════════════════════════════════════════════════════════
# Step 01: extract fact quotes
# ═══════════════════════════════════════════════════════════════
async def extract_fact_quotes(
    request: ExtractFactQuotesRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[ExtractFactQuotesResponse]:
    step = "digest_01_extract_fact_quotes"
    empty = ExtractFactQuotesResponse(quotes="")
    if is_blank(request.source_text):
        return StepOutcome(empty, 400)

    async def body() -> ExtractFactQuotesResponse:
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_extractor,
            system=prompts.EXTRACT_QUOTES_SYSTEM,
            user=prompts.EXTRACT_QUOTES_USER,
            assistant=prompts.EXTRACT_QUOTES_ASSISTANT,
            data={"source": _source(request)},
            temperature=0.3,
            max_tokens=2500,
        )
        return ExtractFactQuotesResponse(
            quotes=strip_tags(completion.text, "quote-list"), usage=[completion.usage]
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 02: summarize facts
# ═══════════════════════════════════════════════════════════════
async def summarize_facts(
    request: SummarizeFactsRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[SummarizeFactsResponse]:
    step = "digest_02_summarize_facts"
    empty = SummarizeFactsResponse(summary="")
    if is_blank(request.source_text):
        return StepOutcome(empty, 400)

    async def body() -> SummarizeFactsResponse:
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_writer,
            system=prompts.SUMMARIZE_SYSTEM,
            user=prompts.SUMMARIZE_USER,
            assistant=None,
            data={"source": _source(request), "instructions": request.instructions},
            temperature=0.3,
            max_tokens=3000,
        )
        return SummarizeFactsResponse(
            summary=strip_tags(completion.text, "summary"), usage=[completion.usage]
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 03: headline and blobs
# ═══════════════════════════════════════════════════════════════
async def write_headline_and_blobs(
    request: WriteHeadlineAndBlobsRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[WriteHeadlineAndBlobsResponse]:
    step = "digest_03_write_headline_and_blobs"
    empty = WriteHeadlineAndBlobsResponse(headline="", blobs=[])
    if request.blobs < 1 or is_blank(request.summarize_facts):
        return StepOutcome(empty, 400)

    async def body() -> WriteHeadlineAndBlobsResponse:
        data = {
            "numBlobs": request.blobs,
            "instructions": request.instructions,
            "source": _source(request),
            "summarizeFacts": request.summarize_facts,
            "extractFactQuotes": request.extract_fact_quotes,
        }
        result = await generate_headline_and_blobs(
            llm,
            build_prompts(prompts.HEADLINE_SYSTEM, prompts.HEADLINE_USER, None, data),
            logger=logger,
            step=step,
            temperature=0.5,
            max_tokens=500,
            override=request.headline,
            max_blobs=request.blobs,
        )
        return WriteHeadlineAndBlobsResponse(
            headline=result.headline, blobs=result.blobs, usage=result.usage
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 04: article outline
# ═══════════════════════════════════════════════════════════════
async def write_article_outline(
    request: WriteArticleOutlineRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[WriteArticleOutlineResponse]:
    step = "digest_04_write_article_outline"
    empty = WriteArticleOutlineResponse(outline=[])
    if is_blank(request.source_text):
        return StepOutcome(empty, 400)

    async def body() -> WriteArticleOutlineResponse:
        output, usage = await complete_structured(
            llm,
            logger,
            step,
            OutlineOutput,
            model=llm.settings.model_writer,
            system=prompts.OUTLINE_SYSTEM,
            user=prompts.OUTLINE_USER,
            data={
                "source": _source(request),
                "instructions": request.instructions,
                "summarizeFacts": request.summarize_facts_text,
                "extractFactQuotes": request.extract_fact_quotes_text,
                "headlineAndBlobs": request.headline_and_blobs_text,
            },
            temperature=0.6,
            max_tokens=3000,
        )
        outline = [point.strip() for point in output.outline if point.strip()]
        return WriteArticleOutlineResponse(outline=outline, usage=[usage])

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 05: write article
# ═══════════════════════════════════════════════════════════════
async def write_article(
    request: WriteArticleRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[WriteArticleResponse]:
    step = "digest_05_write_article"
    empty = WriteArticleResponse(article="")
    if is_blank(request.source_text):
        return StepOutcome(empty, 400)

    async def body() -> WriteArticleResponse:
        target = word_target(request.length)
        output, usage = await complete_structured(
            llm,
            logger,
            step,
            ArticleOutput,
            model=llm.settings.model_writer,
            system=prompts.WRITE_ARTICLE_SYSTEM,
            user=prompts.WRITE_ARTICLE_USER,
            data={
                "source": _source(request),
                "wordTarget": target,
                "sentenceGuidance": sentence_guidance(target),
                "instructions": request.instructions,
                "isPrimarySource": request.is_primary_source,
                "headlineAndBlobs": request.headline_and_blobs_text,
                "articleOutline": request.article_outline_text,
                "summarizeFacts": request.summarize_facts_text,
            },
            temperature=0.7,
            max_tokens=4000,
        )
        return WriteArticleResponse(article=output.article.strip(), usage=[usage])

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 06: paraphrase article
# ═══════════════════════════════════════════════════════════════
async def paraphrase_article(
    request: ParaphraseArticleRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[ParaphraseArticleResponse]:
    step = "digest_06_paraphrase_article"
    empty = ParaphraseArticleResponse(paraphrased_article="")
    if is_blank(request.source_text, request.article_text):
        return StepOutcome(empty, 400)

    async def body() -> ParaphraseArticleResponse:
        output, usage = await complete_structured(
            llm,
            logger,
            step,
            ParaphrasedArticleOutput,
            model=llm.settings.model_writer,
            system=prompts.PARAPHRASE_SYSTEM,
            user=prompts.PARAPHRASE_USER,
            data={"source": _source(request), "article": request.article_text},
            temperature=0.5,
            max_tokens=4000,
        )
        return ParaphraseArticleResponse(
            paraphrased_article=output.paraphrased_article.strip(), usage=[usage]
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 07: one sentence per line, source tags removed
# ═══════════════════════════════════════════════════════════════
async def sentence_per_line_attribution(
    request: SentencePerLineRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[FormattedArticleResponse]:
    step = "digest_07_sentence_per_line_attribution"
    empty = FormattedArticleResponse(formatted_article="")
    if is_blank(request.paraphrased_article):
        return StepOutcome(empty, 400)

    async def body() -> FormattedArticleResponse:
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_extractor,
            system=prompts.SENTENCE_PER_LINE_SYSTEM,
            user=prompts.SENTENCE_PER_LINE_USER,
            assistant=prompts.SENTENCE_PER_LINE_ASSISTANT,
            data={"article": request.paraphrased_article},
            temperature=0.2,
            max_tokens=3700,
        )
        return FormattedArticleResponse(
            formatted_article=strip_tags(completion.text, "output"), usage=[completion.usage]
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Verbatim: editor-written text, spelling fixes only
# ═══════════════════════════════════════════════════════════════
async def digest_verbatim(
    request: VerbatimRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[FormattedArticleResponse]:
    step = "digest_verbatim"
    empty = FormattedArticleResponse(formatted_article="")
    if is_blank(request.source_text):
        return StepOutcome(empty, 400)

    async def body() -> FormattedArticleResponse:
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_extractor,
            system=prompts.VERBATIM_SYSTEM,
            user=prompts.VERBATIM_USER,
            assistant=prompts.VERBATIM_ASSISTANT,
            data={"sourceText": request.source_text},
            temperature=0.2,
            max_tokens=4000,
        )
        return FormattedArticleResponse(
            formatted_article=strip_tags(completion.text, "output"), usage=[completion.usage]
        )

    return await run_step(step, empty, logger, body)
