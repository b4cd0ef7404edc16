"""
LangGraph pipeline state — the single source of truth flowing through every node.

Design principle: store plain text/dicts in state (checkpointer friendly) and
build each step's typed request on demand inside the node. Annotated reducers
accumulate usage and errors across nodes.
"""

from __future__ import annotations

import operator
from typing import Annotated, TypedDict


class UsageRecord(TypedDict):
    input_tokens: int
    output_tokens: int
    model: str


class _RunState(TypedDict):
    # ── Run metadata ────────────────────────────────────────
    run_id: str
    instructions: str
    blobs: int  # requested blob count
    length: str  # word-count range, e.g. "700-850"

    # ── Headline / blobs (step 3 in both modes) ─────────────
    headline: str
    blob_list: list[str]

    # ── Observability ───────────────────────────────────────
    usage: Annotated[list[UsageRecord], operator.add]
    error_log: Annotated[list[str], operator.add]
    failed_step: str | None
    current_step: str


class DigestState(_RunState):
    """State for the single-source digest graph."""

    source: dict  # accredit / description / text / use_verbatim / is_primary_source
    headline_override: str | None

    quotes: str
    summary: str
    outline: list[str]
    article: str
    paraphrased_article: str
    formatted_article: str


class AggregateState(_RunState):
    """State for the multi-source aggregate graph."""

    sources: list[dict]  # Source.model_dump(), rewritten by the splitting steps
    headline_suggestion: str | None
    allow_partial: bool
    failed_sources: Annotated[list[dict], operator.add]

    outline: str
    article: str
    rewritten_article: str
    rewritten_article_2: str
    color_coded_article: str
    rich_content: str
