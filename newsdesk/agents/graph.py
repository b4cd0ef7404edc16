"""
Pipeline orchestration — one LangGraph StateGraph per mode.

Digest flow (single source):
  START → extract_quotes → summarize → headline → outline → write
        → paraphrase → sentence_per_line → finalize → END
  (verbatim sources: ... → headline → verbatim → finalize)

Aggregate flow (up to six sources):
  START → split_facts → split_facts_2 → headlines → outline → write
        → rewrite → rewrite_2 → color_code → finalize → END

Each node calls the same step handler the HTTP step routes use. A non-200
outcome (or a blown cost guardrail) records ``failed_step`` and every
conditional edge then routes straight to ``finalize``: a run stops at its
first failure.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog
from langgraph.checkpoint.memory import InMemorySaver
from langgraph.graph import END, START, StateGraph

from newsdesk.agents.state import AggregateState, DigestState
from newsdesk.agents.steps import aggregate as aggregate_steps
from newsdesk.agents.steps import digest as digest_steps
from newsdesk.agents.steps.base import StepOutcome
from newsdesk.core.config import Settings
from newsdesk.core.errors import PipelineBudgetExceeded
from newsdesk.core.logging import bind_run_logger
from newsdesk.schemas.aggregate import (
    ArticleStepOutputs,
    ArticleStepRequest,
    FactsBitSplittingRequest,
    HeadlineBlobs,
    HeadlinesBlobsRequest,
    Source,
    TextOutput,
)
from newsdesk.schemas.common import TokenUsage
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
from newsdesk.schemas.schemas import AggregateRunRequest, DigestRunRequest
from newsdesk.services.llm_client import LLMClient, estimate_cost
from newsdesk.services.rich_content import dump_rich_content, plain_text_to_rich_content

StatusCallback = Callable[[str], Awaitable[None]]
Logger = structlog.stdlib.BoundLogger

# Progress reported after each of these nodes completes
DIGEST_PROGRESS = {
    "extract_quotes": "10%",
    "headline": "25%",
    "write": "50%",
    "paraphrase": "75%",
    "sentence_per_line": "90%",
    "verbatim": "90%",
}
AGGREGATE_PROGRESS = {
    "split_facts": "10%",
    "headlines": "25%",
    "write": "50%",
    "rewrite": "75%",
    "rewrite_2": "90%",
}


@dataclass
class PipelineResult:
    run_id: str
    success: bool
    headline: str = ""
    blobs: list[str] = field(default_factory=list)
    content: str = ""
    rich_content: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    failed_step: str | None = None
    failed_sources: list[dict] = field(default_factory=list)
    error_log: list[str] = field(default_factory=list)
    outputs: dict[str, Any] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


# ═══════════════════════════════════════════════════════════════
# Shared node plumbing
# ═══════════════════════════════════════════════════════════════
def check_budget(usage: list[dict], settings: Settings) -> None:
    """Raise once accumulated tokens or estimated cost cross the per-run guardrail."""
    usages = [TokenUsage.model_validate(u) for u in usage]
    tokens = sum(u.total_tokens for u in usages)
    if tokens > settings.max_tokens_per_run:
        raise PipelineBudgetExceeded(
            f"Token budget exceeded: {tokens} > {settings.max_tokens_per_run}"
        )
    cost = estimate_cost(usages, settings)
    if cost > settings.max_cost_per_run:
        raise PipelineBudgetExceeded(
            f"Cost budget exceeded: ${cost:.4f} > ${settings.max_cost_per_run:.2f}"
        )


async def report_status(on_status: StatusCallback | None, status: str, logger: Logger) -> None:
    """Progress reporting is best-effort; a failing callback never fails the run."""
    logger.info("pipeline_status", status=status)
    if on_status is None:
        return
    try:
        await on_status(status)
    except Exception as e:
        logger.warning("status_callback_failed", status=status, error=str(e))


class _StepRunner:
    def __init__(
        self,
        llm: LLMClient,
        logger: Logger,
        on_status: StatusCallback | None,
        progress: dict[str, str],
    ) -> None:
        self.llm = llm
        self.logger = logger
        self.on_status = on_status
        self.progress = progress

    async def __call__(
        self,
        name: str,
        state: dict,
        outcome: StepOutcome,
        extract: Callable[[Any], dict],
    ) -> dict:
        usage = [u.model_dump() for u in getattr(outcome.payload, "usage", [])]
        if not outcome.ok:
            self.logger.warning("pipeline_step_failed", step=name, status_code=outcome.status_code)
            return {
                "usage": usage,
                "failed_step": name,
                "error_log": [f"{name}: step returned {outcome.status_code}"],
                "current_step": name,
            }

        update = {**extract(outcome.payload), "usage": usage, "current_step": name}
        try:
            check_budget([*state.get("usage", []), *usage], self.llm.settings)
        except PipelineBudgetExceeded as e:
            self.logger.warning("pipeline_budget_exceeded", step=name, error=str(e))
            return {**update, "failed_step": name, "error_log": [str(e)]}

        self.logger.info("pipeline_step_complete", step=name)
        if name in self.progress:
            await report_status(self.on_status, self.progress[name], self.logger)
        return update


def _continue(next_node: str) -> Callable[[dict], str]:
    def route(state: dict) -> str:
        return "finalize" if state.get("failed_step") else next_node

    return route


def _chain(workflow: StateGraph, nodes: list[str]) -> None:
    """Wire nodes in order; every hop can short-circuit to finalize."""
    for current, following in zip(nodes, nodes[1:]):
        if following == "finalize":
            workflow.add_edge(current, "finalize")
        else:
            workflow.add_conditional_edges(current, _continue(following), [following, "finalize"])


def _headline_text(state: dict) -> str:
    blobs = "\n".join(f"Blob: {blob}" for blob in state.get("blob_list", []))
    return f"Headline: {state.get('headline', '')}\n{blobs}".strip()


# ═══════════════════════════════════════════════════════════════
# Digest graph
# ═══════════════════════════════════════════════════════════════
def build_digest_graph(
    llm: LLMClient,
    logger: Logger,
    on_status: StatusCallback | None = None,
    checkpointer=None,
):
    run = _StepRunner(llm, logger, on_status, DIGEST_PROGRESS)

    def source_fields(state: DigestState) -> dict:
        source = state["source"]
        return {
            "source_accredit": source.get("accredit", ""),
            "source_description": source.get("description", ""),
            "source_text": source.get("text", ""),
        }

    async def extract_quotes(state: DigestState) -> dict:
        outcome = await digest_steps.extract_fact_quotes(
            ExtractFactQuotesRequest(**source_fields(state)), llm=llm, logger=logger
        )
        return await run("extract_quotes", state, outcome, lambda p: {"quotes": p.quotes})

    async def summarize(state: DigestState) -> dict:
        outcome = await digest_steps.summarize_facts(
            SummarizeFactsRequest(**source_fields(state), instructions=state["instructions"]),
            llm=llm,
            logger=logger,
        )
        return await run("summarize", state, outcome, lambda p: {"summary": p.summary})

    async def headline(state: DigestState) -> dict:
        outcome = await digest_steps.write_headline_and_blobs(
            WriteHeadlineAndBlobsRequest(
                **source_fields(state),
                blobs=state["blobs"],
                headline=state.get("headline_override"),
                instructions=state["instructions"],
                summarize_facts=state.get("summary", ""),
                extract_fact_quotes=state.get("quotes", ""),
            ),
            llm=llm,
            logger=logger,
        )
        return await run(
            "headline", state, outcome, lambda p: {"headline": p.headline, "blob_list": p.blobs}
        )

    async def outline(state: DigestState) -> dict:
        outcome = await digest_steps.write_article_outline(
            WriteArticleOutlineRequest(
                **source_fields(state),
                instructions=state["instructions"],
                summarize_facts_text=state.get("summary", ""),
                extract_fact_quotes_text=state.get("quotes", ""),
                headline_and_blobs_text=_headline_text(state),
            ),
            llm=llm,
            logger=logger,
        )
        return await run("outline", state, outcome, lambda p: {"outline": p.outline})

    async def write(state: DigestState) -> dict:
        outcome = await digest_steps.write_article(
            WriteArticleRequest(
                **source_fields(state),
                length=state["length"],
                is_primary_source=state["source"].get("is_primary_source", False),
                instructions=state["instructions"],
                headline_and_blobs_text=_headline_text(state),
                summarize_facts_text=state.get("summary", ""),
                article_outline_text="\n".join(state.get("outline", [])),
            ),
            llm=llm,
            logger=logger,
        )
        return await run("write", state, outcome, lambda p: {"article": p.article})

    async def paraphrase(state: DigestState) -> dict:
        outcome = await digest_steps.paraphrase_article(
            ParaphraseArticleRequest(**source_fields(state), article_text=state.get("article", "")),
            llm=llm,
            logger=logger,
        )
        return await run(
            "paraphrase", state, outcome, lambda p: {"paraphrased_article": p.paraphrased_article}
        )

    async def sentence_per_line(state: DigestState) -> dict:
        outcome = await digest_steps.sentence_per_line_attribution(
            SentencePerLineRequest(paraphrased_article=state.get("paraphrased_article", "")),
            llm=llm,
            logger=logger,
        )
        return await run(
            "sentence_per_line", state, outcome, lambda p: {"formatted_article": p.formatted_article}
        )

    async def verbatim(state: DigestState) -> dict:
        outcome = await digest_steps.digest_verbatim(
            VerbatimRequest(source_text=state["source"].get("text", "")), llm=llm, logger=logger
        )
        return await run(
            "verbatim", state, outcome, lambda p: {"formatted_article": p.formatted_article}
        )

    async def finalize(state: DigestState) -> dict:
        return {"current_step": "finalized"}

    def route_after_headline(state: DigestState) -> str:
        if state.get("failed_step"):
            return "finalize"
        return "verbatim" if state["source"].get("use_verbatim") else "outline"

    workflow = StateGraph(DigestState)
    for name, node in (
        ("extract_quotes", extract_quotes),
        ("summarize", summarize),
        ("headline", headline),
        ("outline", outline),
        ("write", write),
        ("paraphrase", paraphrase),
        ("sentence_per_line", sentence_per_line),
        ("verbatim", verbatim),
        ("finalize", finalize),
    ):
        workflow.add_node(name, node)

    workflow.add_edge(START, "extract_quotes")
    _chain(workflow, ["extract_quotes", "summarize", "headline"])
    workflow.add_conditional_edges(
        "headline", route_after_headline, ["outline", "verbatim", "finalize"]
    )
    _chain(workflow, ["outline", "write", "paraphrase", "sentence_per_line", "finalize"])
    workflow.add_edge("verbatim", "finalize")
    workflow.add_edge("finalize", END)

    app = workflow.compile(checkpointer=checkpointer or InMemorySaver())
    logger.debug("digest_graph_compiled", node_count=len(workflow.nodes))
    return app


# ═══════════════════════════════════════════════════════════════
# Aggregate graph
# ═══════════════════════════════════════════════════════════════
def _sources(state: AggregateState) -> list[Source]:
    return [Source.model_validate(s) for s in state["sources"]]


def _step_outputs(state: AggregateState) -> ArticleStepOutputs:
    def text(key: str) -> TextOutput | None:
        return TextOutput(text=state[key]) if state.get(key) else None

    return ArticleStepOutputs(
        headlines_blobs=HeadlineBlobs(
            headline=state.get("headline", ""), blobs=state.get("blob_list", [])
        ),
        write_article_outline=text("outline"),
        write_article=text("article"),
        rewrite_article=text("rewritten_article"),
        rewrite_article2=text("rewritten_article_2"),
    )


def build_aggregate_graph(
    llm: LLMClient,
    logger: Logger,
    on_status: StatusCallback | None = None,
    checkpointer=None,
):
    run = _StepRunner(llm, logger, on_status, AGGREGATE_PROGRESS)

    def article_request(state: AggregateState) -> ArticleStepRequest:
        return ArticleStepRequest(
            instructions=state["instructions"],
            length=state["length"],
            sources=_sources(state),
            article_step_outputs=_step_outputs(state),
        )

    def splitting_update(payload) -> dict:
        return {
            "sources": [s.model_dump() for s in payload.sources],
            "failed_sources": [f.model_dump() for f in payload.failed_sources],
        }

    async def split_facts(state: AggregateState) -> dict:
        outcome = await aggregate_steps.facts_bit_splitting(
            FactsBitSplittingRequest(sources=_sources(state), allow_partial=state["allow_partial"]),
            llm=llm,
            logger=logger,
        )
        return await run("split_facts", state, outcome, splitting_update)

    async def split_facts_2(state: AggregateState) -> dict:
        outcome = await aggregate_steps.facts_bit_splitting_2(
            FactsBitSplittingRequest(sources=_sources(state), allow_partial=state["allow_partial"]),
            llm=llm,
            logger=logger,
        )
        return await run("split_facts_2", state, outcome, splitting_update)

    async def headlines(state: AggregateState) -> dict:
        outcome = await aggregate_steps.headlines_blobs(
            HeadlinesBlobsRequest(
                no_of_blobs=state["blobs"],
                headline_suggestion=state.get("headline_suggestion"),
                instructions=state["instructions"],
                sources=_sources(state),
            ),
            llm=llm,
            logger=logger,
        )
        return await run(
            "headlines", state, outcome, lambda p: {"headline": p.headline, "blob_list": p.blobs}
        )

    async def outline(state: AggregateState) -> dict:
        outcome = await aggregate_steps.write_article_outline(
            article_request(state), llm=llm, logger=logger
        )
        return await run("outline", state, outcome, lambda p: {"outline": p.outline})

    async def write(state: AggregateState) -> dict:
        outcome = await aggregate_steps.write_article(article_request(state), llm=llm, logger=logger)
        return await run("write", state, outcome, lambda p: {"article": p.article})

    async def rewrite(state: AggregateState) -> dict:
        outcome = await aggregate_steps.rewrite_article(
            article_request(state), llm=llm, logger=logger
        )
        return await run(
            "rewrite", state, outcome, lambda p: {"rewritten_article": p.rewritten_article}
        )

    async def rewrite_2(state: AggregateState) -> dict:
        outcome = await aggregate_steps.rewrite_article_2(
            article_request(state), llm=llm, logger=logger
        )
        return await run(
            "rewrite_2", state, outcome, lambda p: {"rewritten_article_2": p.rewritten_article}
        )

    async def color_code(state: AggregateState) -> dict:
        outcome = await aggregate_steps.color_code(article_request(state), llm=llm, logger=logger)
        return await run(
            "color_code",
            state,
            outcome,
            lambda p: {"color_coded_article": p.color_coded_article, "rich_content": p.rich_content},
        )

    async def finalize(state: AggregateState) -> dict:
        return {"current_step": "finalized"}

    nodes = [
        ("split_facts", split_facts),
        ("split_facts_2", split_facts_2),
        ("headlines", headlines),
        ("outline", outline),
        ("write", write),
        ("rewrite", rewrite),
        ("rewrite_2", rewrite_2),
        ("color_code", color_code),
        ("finalize", finalize),
    ]
    workflow = StateGraph(AggregateState)
    for name, node in nodes:
        workflow.add_node(name, node)

    workflow.add_edge(START, "split_facts")
    _chain(workflow, [name for name, _ in nodes])
    workflow.add_edge("finalize", END)

    app = workflow.compile(checkpointer=checkpointer or InMemorySaver())
    logger.debug("aggregate_graph_compiled", node_count=len(workflow.nodes))
    return app


# ═══════════════════════════════════════════════════════════════
# Entry points
# ═══════════════════════════════════════════════════════════════
def _usage_totals(usage: list[dict], settings: Settings) -> tuple[int, int, float]:
    usages = [TokenUsage.model_validate(u) for u in usage]
    return (
        sum(u.input_tokens for u in usages),
        sum(u.output_tokens for u in usages),
        estimate_cost(usages, settings),
    )


async def run_digest_pipeline(
    request: DigestRunRequest,
    *,
    llm: LLMClient,
    run_id: str | None = None,
    on_status: StatusCallback | None = None,
) -> PipelineResult:
    run_id = run_id or str(uuid.uuid4())
    logger = bind_run_logger(run_id, "digest", slug=request.slug)
    await report_status(on_status, "started", logger)

    initial: DigestState = {
        "run_id": run_id,
        "instructions": request.instructions,
        "blobs": int(request.blobs),
        "length": request.length,
        "headline": "",
        "blob_list": [],
        "usage": [],
        "error_log": [],
        "failed_step": None,
        "current_step": "started",
        "source": request.source.model_dump(),
        "headline_override": request.headline,
        "quotes": "",
        "summary": "",
        "outline": [],
        "article": "",
        "paraphrased_article": "",
        "formatted_article": "",
    }
    graph = build_digest_graph(llm, logger, on_status)
    final = await graph.ainvoke(initial, config={"configurable": {"thread_id": run_id}})

    content = final.get("formatted_article", "")
    success = (
        not final.get("failed_step")
        and bool(content.strip())
        and bool(final.get("headline"))
        and bool(final.get("blob_list"))
    )
    input_tokens, output_tokens, cost = _usage_totals(final.get("usage", []), llm.settings)
    result = PipelineResult(
        run_id=run_id,
        success=success,
        headline=final.get("headline", ""),
        blobs=final.get("blob_list", []),
        content=content,
        rich_content=dump_rich_content(plain_text_to_rich_content(content)) if content else "",
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost_usd=cost,
        failed_step=final.get("failed_step"),
        error_log=final.get("error_log", []),
        outputs={
            key: final.get(key)
            for key in ("quotes", "summary", "outline", "article", "paraphrased_article")
        },
    )
    await report_status(on_status, "completed" if success else "failed", logger)
    logger.info(
        "pipeline_finished",
        success=success,
        failed_step=result.failed_step,
        total_tokens=result.total_tokens,
        cost_usd=cost,
    )
    return result


async def run_aggregate_pipeline(
    request: AggregateRunRequest,
    *,
    llm: LLMClient,
    run_id: str | None = None,
    on_status: StatusCallback | None = None,
) -> PipelineResult:
    run_id = run_id or str(uuid.uuid4())
    logger = bind_run_logger(run_id, "aggregate", slug=request.slug, sources=len(request.sources))
    await report_status(on_status, "started", logger)

    initial: AggregateState = {
        "run_id": run_id,
        "instructions": request.instructions,
        "blobs": int(request.blobs),
        "length": request.length,
        "headline": "",
        "blob_list": [],
        "usage": [],
        "error_log": [],
        "failed_step": None,
        "current_step": "started",
        "sources": [s.model_dump() for s in request.sources],
        "headline_suggestion": request.headline_suggestion,
        "allow_partial": request.allow_partial,
        "failed_sources": [],
        "outline": "",
        "article": "",
        "rewritten_article": "",
        "rewritten_article_2": "",
        "color_coded_article": "",
        "rich_content": "",
    }
    graph = build_aggregate_graph(llm, logger, on_status)
    final = await graph.ainvoke(initial, config={"configurable": {"thread_id": run_id}})

    content = final.get("color_coded_article", "")
    success = (
        not final.get("failed_step")
        and len(content) > llm.settings.min_article_chars
        and bool(final.get("headline"))
        and bool(final.get("blob_list"))
    )
    input_tokens, output_tokens, cost = _usage_totals(final.get("usage", []), llm.settings)
    result = PipelineResult(
        run_id=run_id,
        success=success,
        headline=final.get("headline", ""),
        blobs=final.get("blob_list", []),
        content=content,
        rich_content=final.get("rich_content", ""),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost_usd=cost,
        failed_step=final.get("failed_step"),
        failed_sources=final.get("failed_sources", []),
        error_log=final.get("error_log", []),
        outputs={
            key: final.get(key)
            for key in ("sources", "outline", "article", "rewritten_article", "rewritten_article_2")
        },
    )
    await report_status(on_status, "completed" if success else "failed", logger)
    logger.info(
        "pipeline_finished",
        success=success,
        failed_step=result.failed_step,
        total_tokens=result.total_tokens,
        cost_usd=cost,
    )
    return result
