"""
Digest-mode step endpoints — one POST per pipeline stage.

The editor UI drives these one at a time; each answers with the stage's typed
payload and the status code its handler chose (200 / 400 / 500).

POST /api/v1/steps/01-extract-fact-quotes
POST /api/v1/steps/02-summarize-facts
POST /api/v1/steps/03-write-headline-and-blobs
POST /api/v1/steps/04-write-article-outline
POST /api/v1/steps/05-write-article
POST /api/v1/steps/06-paraphrase-article
POST /api/v1/steps/07-sentence-per-line-attribution
POST /api/v1/steps/digest-verbatim
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from newsdesk.agents.steps import digest as steps
from newsdesk.agents.steps.base import StepOutcome
from newsdesk.api.v1.deps import LLM, AuthenticatedUser, StepLogger
from newsdesk.schemas.digest import (
    ExtractFactQuotesRequest,
    ParaphraseArticleRequest,
    SentencePerLineRequest,
    SummarizeFactsRequest,
    VerbatimRequest,
    WriteArticleOutlineRequest,
    WriteArticleRequest,
    WriteHeadlineAndBlobsRequest,
)

router = APIRouter(prefix="/steps", tags=["digest-steps"])


def to_response(outcome: StepOutcome) -> JSONResponse:
    return JSONResponse(status_code=outcome.status_code, content=outcome.payload.to_wire())


@router.post("/01-extract-fact-quotes")
async def extract_fact_quotes(
    body: ExtractFactQuotesRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.extract_fact_quotes(body, llm=llm, logger=logger))


@router.post("/02-summarize-facts")
async def summarize_facts(
    body: SummarizeFactsRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.summarize_facts(body, llm=llm, logger=logger))


@router.post("/03-write-headline-and-blobs")
async def write_headline_and_blobs(
    body: WriteHeadlineAndBlobsRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.write_headline_and_blobs(body, llm=llm, logger=logger))


@router.post("/04-write-article-outline")
async def write_article_outline(
    body: WriteArticleOutlineRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.write_article_outline(body, llm=llm, logger=logger))


@router.post("/05-write-article")
async def write_article(
    body: WriteArticleRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.write_article(body, llm=llm, logger=logger))


@router.post("/06-paraphrase-article")
async def paraphrase_article(
    body: ParaphraseArticleRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.paraphrase_article(body, llm=llm, logger=logger))


@router.post("/07-sentence-per-line-attribution")
async def sentence_per_line_attribution(
    body: SentencePerLineRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.sentence_per_line_attribution(body, llm=llm, logger=logger))


@router.post("/digest-verbatim")
async def digest_verbatim(
    body: VerbatimRequest, llm: LLM, logger: StepLogger, _api_key: AuthenticatedUser
) -> JSONResponse:
    return to_response(await steps.digest_verbatim(body, llm=llm, logger=logger))
