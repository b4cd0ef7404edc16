"""
Two-phase headline/blobs generation shared by both pipeline modes.

Phase 1 lets the writer model produce free text (``Headline: ... / Blob: ...``)
at a creative temperature. Phase 2 hands that text to the structurer model at
temperature 0 and asks for a strict ``{headline, blobs}`` object without
touching the wording. An editor-supplied headline always wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog
from pydantic import BaseModel, Field

from newsdesk.core.logging import log_prompts
from newsdesk.schemas.common import TokenUsage
from newsdesk.services.llm_client import LLMClient

STRUCTURE_SYSTEM = """
You convert a journalist's draft headline and blobs into JSON.
Copy the headline and every blob EXACTLY as written: do not rephrase, shorten, reorder or add \
anything. Drop the "Headline:" and "Blob:" labels and any surrounding quotation marks that wrap \
the whole line.
"""

STRUCTURE_MAX_TOKENS = 500


class HeadlineBlobsOutput(BaseModel):
    headline: str = Field(description="The headline, verbatim from the draft")
    blobs: list[str] = Field(default=[], description="Each blob, verbatim, in draft order")


@dataclass
class HeadlineResult:
    headline: str
    blobs: list[str]
    usage: list[TokenUsage] = field(default_factory=list)


async def generate_headline_and_blobs(
    llm: LLMClient,
    prompts: tuple[str, str, str | None],
    *,
    logger: structlog.stdlib.BoundLogger,
    step: str,
    temperature: float,
    max_tokens: int,
    override: str | None = None,
    max_blobs: int | None = None,
) -> HeadlineResult:
    """Run the creative pass on already-rendered ``prompts``, then structure its output."""
    system, user, assistant = prompts
    log_prompts(logger, step, system, user, assistant)

    draft = await llm.generate_text(
        model=llm.settings.model_writer,
        system=system,
        user=user,
        assistant=assistant,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    logger.debug("headline_draft", step=step, draft=draft.text)

    structured, structure_usage = await llm.generate_structured(
        HeadlineBlobsOutput,
        model=llm.settings.model_structurer,
        system=STRUCTURE_SYSTEM,
        user=draft.text,
        temperature=0.0,
        max_tokens=STRUCTURE_MAX_TOKENS,
    )

    headline = structured.headline.strip()
    if override and override.strip():
        headline = override

    blobs = [blob.strip() for blob in structured.blobs if blob.strip()]
    if max_blobs is not None:
        blobs = blobs[:max_blobs]

    return HeadlineResult(headline=headline, blobs=blobs, usage=[draft.usage, structure_usage])
