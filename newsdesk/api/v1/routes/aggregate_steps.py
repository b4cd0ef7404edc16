"""
Aggregate-mode step endpoints (multi-source).

POST /api/v1/aggregate-steps/01-facts-bit-splitting
POST /api/v1/aggregate-steps/02-facts-bit-splitting-2
POST /api/v1/aggregate-steps/03-headlines-blobs
POST /api/v1/aggregate-steps/04-write-article-outline
POST /api/v1/aggregate-steps/05-write-article
POST /api/v1/aggregate-steps/06-rewrite-article
POST /api/v1/aggregate-steps/07-rewrite-article-2
POST /api/v1/aggregate-steps/08-color-code
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from newsdesk.agents.steps import aggregate as steps
from newsdesk.api.v1.deps import LLM, AuthenticatedUser, StepLogger
from newsdesk.api.v1.routes.digest_steps import to_response
from newsdesk.schemas.aggregate import (
    ArticleStepRequest,
    FactsBitSplittingRequest,
    HeadlinesBlobsRequest,
)

router = APIRouter(prefix="/aggregate-steps", tags=["aggregate-steps"])


@router.post("/01-facts-bit-splitting")
async def facts_bit_splitting(
    body: FactsBitSplittingRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.facts_bit_splitting(body, llm=llm, logger=logger))


@router.post("/02-facts-bit-splitting-2")
async def facts_bit_splitting_2(
    body: FactsBitSplittingRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.facts_bit_splitting_2(body, llm=llm, logger=logger))


@router.post("/03-headlines-blobs")
async def headlines_blobs(
    body: HeadlinesBlobsRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.headlines_blobs(body, llm=llm, logger=logger))


@router.post("/04-write-article-outline")
async def write_article_outline(
    body: ArticleStepRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.write_article_outline(body, llm=llm, logger=logger))


@router.post("/05-write-article")
async def write_article(
    body: ArticleStepRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.write_article(body, llm=llm, logger=logger))


@router.post("/06-rewrite-article")
async def rewrite_article(
    body: ArticleStepRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.rewrite_article(body, llm=llm, logger=logger))


@router.post("/07-rewrite-article-2")
async def rewrite_article_2(
    body: ArticleStepRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.rewrite_article_2(body, llm=llm, logger=logger))


@router.post("/08-color-code")
async def color_code(
    body: ArticleStepRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.color_code(body, llm=llm, logger=logger))
