"""
Aggregate-mode step handlers (up to six sources → one color-coded article).

Steps 1 and 2 fan out across sources; steps 3–8 work on the combined
``sources`` list plus the ``articleStepOutputs`` bag threaded forward by the
caller. Prompt data always exposes sources in camelCase (``sources.0.useVerbatim``).
"""

from __future__ import annotations

import structlog

from newsdesk.agents.fanout import check_source_count, fan_out
from newsdesk.agents.headline import generate_headline_and_blobs
from newsdesk.agents.prompts import aggregate as prompts
from newsdesk.agents.steps.base import StepOutcome, complete, is_blank, run_step, strip_tags
from newsdesk.core.templating import (
    build_prompts,
    current_date,
    key_point_instructions,
    sentence_guidance,
    word_target,
)
from newsdesk.schemas.aggregate import (
    ArticleResponse,
    ArticleStepRequest,
    ColorCodeResponse,
    FactsBitSplittingRequest,
    FactsBitSplittingResponse,
    HeadlinesBlobsRequest,
    HeadlinesBlobsResponse,
    OutlineResponse,
    RewrittenArticleResponse,
    Source,
)
from newsdesk.schemas.common import TokenUsage
from newsdesk.services.llm_client import LLMClient
from newsdesk.services.rich_content import (
    SOURCE_PALETTE,
    dump_rich_content,
    html_to_rich_content,
)

Logger = structlog.stdlib.BoundLogger

_SPLIT_WRAPPERS = (r"source(?:-\d+)?-content", "first-half", "second-half")


def _sources_data(sources: list[Source]) -> list[dict]:
    return [source.to_wire() for source in sources]


def _headline_data(request: ArticleStepRequest) -> dict:
    headline_blobs = request.article_step_outputs.headlines_blobs
    return {
        "headline": headline_blobs.headline if headline_blobs else "",
        "blobs": "\n".join(headline_blobs.blobs) if headline_blobs else "",
    }


def _split_prompts(source: Source) -> tuple[str, str, str]:
    """Primary wins over verbatim; everything else is paraphrased into facts."""
    if source.is_primary_source:
        return prompts.SPLIT_PRIMARY_SYSTEM, prompts.SPLIT_PRIMARY_USER, prompts.SPLIT_PRIMARY_ASSISTANT
    if source.use_verbatim:
        return (
            prompts.SPLIT_VERBATIM_SYSTEM,
            prompts.SPLIT_VERBATIM_USER,
            prompts.SPLIT_VERBATIM_ASSISTANT,
        )
    return prompts.SPLIT_DEFAULT_SYSTEM, prompts.SPLIT_DEFAULT_USER, prompts.SPLIT_DEFAULT_ASSISTANT


# ═══════════════════════════════════════════════════════════════
# Step 01: facts bit splitting (fan-out)
# ═══════════════════════════════════════════════════════════════
async def facts_bit_splitting(
    request: FactsBitSplittingRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[FactsBitSplittingResponse]:
    step = "aggregate_01_facts_bit_splitting"
    empty = FactsBitSplittingResponse(sources=[])
    if not request.sources:
        return StepOutcome(empty, 400)

    async def process(source: Source) -> tuple[str, list[TokenUsage]]:
        system, user, assistant = _split_prompts(source)
        completion = await complete(
            llm,
            logger.bind(source_number=source.number),
            step,
            model=llm.settings.model_extractor,
            system=system,
            user=user,
            assistant=assistant,
            data={"date": current_date(), "source": source.to_wire()},
            temperature=0.8,
            max_tokens=4000,
        )
        return strip_tags(completion.text, *_SPLIT_WRAPPERS), [completion.usage]

    async def body() -> FactsBitSplittingResponse:
        check_source_count(request.sources, llm.settings.max_sources)
        result = await fan_out(
            request.sources,
            process,
            output_field="facts_bit_splitting1",
            partial=request.allow_partial,
        )
        for failure in result.failures:
            logger.warning("source_failed", step=step, source_number=failure.number, error=failure.error)
        return FactsBitSplittingResponse(
            sources=result.sources, failed_sources=result.failures, usage=result.usage
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 02: second half of primary sources
# ═══════════════════════════════════════════════════════════════
async def facts_bit_splitting_2(
    request: FactsBitSplittingRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[FactsBitSplittingResponse]:
    step = "aggregate_02_facts_bit_splitting_2"
    empty = FactsBitSplittingResponse(sources=[])
    if not request.sources:
        return StepOutcome(empty, 400)

    async def process(source: Source) -> tuple[str, list[TokenUsage]]:
        if not source.is_primary_source:
            return "", []
        completion = await complete(
            llm,
            logger.bind(source_number=source.number),
            step,
            model=llm.settings.model_extractor,
            system=prompts.SPLIT_PRIMARY_SYSTEM,
            user=prompts.SPLIT_SECOND_HALF_USER,
            assistant=prompts.SPLIT_SECOND_HALF_ASSISTANT,
            data={"date": current_date(), "source": source.to_wire()},
            temperature=0.8,
            max_tokens=4000,
        )
        return strip_tags(completion.text, *_SPLIT_WRAPPERS), [completion.usage]

    async def body() -> FactsBitSplittingResponse:
        check_source_count(request.sources, llm.settings.max_sources)
        result = await fan_out(
            request.sources,
            process,
            output_field="facts_bit_splitting2",
            partial=request.allow_partial,
        )
        for failure in result.failures:
            logger.warning("source_failed", step=step, source_number=failure.number, error=failure.error)
        return FactsBitSplittingResponse(
            sources=result.sources, failed_sources=result.failures, usage=result.usage
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 03: headlines and blobs
# ═══════════════════════════════════════════════════════════════
async def headlines_blobs(
    request: HeadlinesBlobsRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[HeadlinesBlobsResponse]:
    step = "aggregate_03_headlines_blobs"
    empty = HeadlinesBlobsResponse(headline="", blobs=[])
    if request.no_of_blobs < 1 or not request.sources:
        return StepOutcome(empty, 400)

    async def body() -> HeadlinesBlobsResponse:
        check_source_count(request.sources, llm.settings.max_sources)
        data = {
            "noOfBlobs": request.no_of_blobs,
            "headlineSuggestion": request.headline_suggestion or "",
            "instructions": request.instructions,
            "sources": _sources_data(request.sources),
        }
        result = await generate_headline_and_blobs(
            llm,
            build_prompts(
                prompts.HEADLINES_SYSTEM, prompts.HEADLINES_USER, prompts.HEADLINES_ASSISTANT, data
            ),
            logger=logger,
            step=step,
            temperature=0.4,
            max_tokens=500,
            override=request.headline_suggestion,
            max_blobs=request.no_of_blobs,
        )
        return HeadlinesBlobsResponse(headline=result.headline, blobs=result.blobs, usage=result.usage)

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 04: article outline
# ═══════════════════════════════════════════════════════════════
async def write_article_outline(
    request: ArticleStepRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[OutlineResponse]:
    step = "aggregate_04_write_article_outline"
    empty = OutlineResponse(outline="")
    if not request.sources:
        return StepOutcome(empty, 400)

    async def body() -> OutlineResponse:
        check_source_count(request.sources, llm.settings.max_sources)
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_writer,
            system=prompts.OUTLINE_SYSTEM,
            user=prompts.OUTLINE_USER,
            assistant=None,
            data={
                **_headline_data(request),
                "instructions": request.instructions,
                "keyPointInstructions": key_point_instructions(len(request.sources)),
                "sources": _sources_data(request.sources),
            },
            temperature=0.6,
            max_tokens=3000,
        )
        return OutlineResponse(outline=completion.text.strip(), usage=[completion.usage])

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 05: write article
# ═══════════════════════════════════════════════════════════════
async def write_article(
    request: ArticleStepRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[ArticleResponse]:
    step = "aggregate_05_write_article"
    empty = ArticleResponse(article="")
    outline = request.article_step_outputs.text_of("write_article_outline")
    if not request.sources or is_blank(outline):
        return StepOutcome(empty, 400)

    async def body() -> ArticleResponse:
        check_source_count(request.sources, llm.settings.max_sources)
        target = word_target(request.length)
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_writer,
            system=prompts.WRITE_ARTICLE_SYSTEM,
            user=prompts.WRITE_ARTICLE_USER,
            assistant=None,
            data={
                **_headline_data(request),
                "date": current_date(),
                "wordTarget": target,
                "sentenceGuidance": sentence_guidance(target),
                "instructions": request.instructions,
                "articleOutline": outline,
                "sources": _sources_data(request.sources),
            },
            temperature=0.7,
            max_tokens=3000,
        )
        return ArticleResponse(article=completion.text.strip(), usage=[completion.usage])

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 06: rewrite article
# ═══════════════════════════════════════════════════════════════
async def rewrite_article(
    request: ArticleStepRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[RewrittenArticleResponse]:
    step = "aggregate_06_rewrite_article"
    empty = RewrittenArticleResponse(rewritten_article="")
    article = request.article_step_outputs.text_of("write_article")
    if is_blank(article):
        return StepOutcome(empty, 400)

    async def body() -> RewrittenArticleResponse:
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_writer,
            system=prompts.REWRITE_SYSTEM,
            user=prompts.REWRITE_USER,
            assistant=None,
            data={"article": article, "sources": _sources_data(request.sources)},
            temperature=0.5,
            max_tokens=3700,
        )
        return RewrittenArticleResponse(
            rewritten_article=strip_tags(completion.text, "article"), usage=[completion.usage]
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 07: rewrite article 2 (attribution pass)
# ═══════════════════════════════════════════════════════════════
async def rewrite_article_2(
    request: ArticleStepRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[RewrittenArticleResponse]:
    step = "aggregate_07_rewrite_article_2"
    empty = RewrittenArticleResponse(rewritten_article="")
    rewritten = request.article_step_outputs.text_of("rewrite_article")
    if is_blank(rewritten):
        return StepOutcome(empty, 400)

    async def body() -> RewrittenArticleResponse:
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_extractor,
            system=prompts.REWRITE_2_SYSTEM,
            user=prompts.REWRITE_2_USER,
            assistant=None,
            data={"rewrittenArticle": rewritten, "sources": _sources_data(request.sources)},
            temperature=0.2,
            max_tokens=3700,
        )
        return RewrittenArticleResponse(
            rewritten_article=strip_tags(completion.text, "article"), usage=[completion.usage]
        )

    return await run_step(step, empty, logger, body)


# ═══════════════════════════════════════════════════════════════
# Step 08: color code + RichJSON
# ═══════════════════════════════════════════════════════════════
async def color_code(
    request: ArticleStepRequest, *, llm: LLMClient, logger: Logger
) -> StepOutcome[ColorCodeResponse]:
    step = "aggregate_08_color_code"
    empty = ColorCodeResponse(color_coded_article="", rich_content="")
    rewritten = request.article_step_outputs.text_of("rewrite_article2")
    if is_blank(rewritten):
        return StepOutcome(empty, 400)

    async def body() -> ColorCodeResponse:
        palette = [
            {"number": number, "color": color}
            for number, color in enumerate(SOURCE_PALETTE, start=1)
        ]
        completion = await complete(
            llm,
            logger,
            step,
            model=llm.settings.model_writer,
            system=prompts.COLOR_CODE_SYSTEM,
            user=prompts.COLOR_CODE_USER,
            assistant=prompts.COLOR_CODE_ASSISTANT,
            data={
                "palette": palette,
                "rewrittenArticle": rewritten,
                "sources": _sources_data(request.sources),
            },
            temperature=0.7,
            max_tokens=3000,
        )
        article_html = strip_tags(completion.text, "final-draft")
        return ColorCodeResponse(
            color_coded_article=article_html,
            rich_content=dump_rich_content(html_to_rich_content(article_html)),
            usage=[completion.usage],
        )

    return await run_step(step, empty, logger, body)
