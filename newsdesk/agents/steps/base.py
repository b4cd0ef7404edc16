"""
Shared contract for pipeline step handlers.

A step returns a ``StepOutcome``: the typed payload plus the HTTP-style status
the caller should surface. Handlers never raise to their caller:

  - 400: a required input is blank, a prompt does not render, or too many sources
  - 500: the model call (or parsing its reply) failed
  - 200: success
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel

from newsdesk.core.errors import PromptRenderError, SourceLimitError
from newsdesk.core.logging import log_prompts, log_response
from newsdesk.core.templating import build_prompts
from newsdesk.schemas.common import TokenUsage
from newsdesk.services.llm_client import Completion, LLMClient

ResponseT = TypeVar("ResponseT")
SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass
class StepOutcome(Generic[ResponseT]):
    payload: ResponseT
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def is_blank(*values: str | None) -> bool:
    """True when any of the values is None or whitespace only."""
    return any(value is None or not str(value).strip() for value in values)


def strip_tags(text: str, *tags: str) -> str:
    """Remove opening/closing wrapper tags (``<output>``, ``</final-draft>`` ...) and trim."""
    for tag in tags:
        text = re.sub(rf"</?{tag}[^>]*>", "", text)
    return text.strip()


async def complete(
    llm: LLMClient,
    logger: structlog.stdlib.BoundLogger,
    step: str,
    *,
    model: str,
    system: str,
    user: str,
    assistant: str | None,
    data: dict,
    temperature: float,
    max_tokens: int,
) -> Completion:
    """Render the three prompt templates against ``data`` and run one text completion."""
    system_prompt, user_prompt, assistant_prompt = build_prompts(system, user, assistant, data)
    log_prompts(logger, step, system_prompt, user_prompt, assistant_prompt)
    return await llm.generate_text(
        model=model,
        system=system_prompt,
        user=user_prompt,
        assistant=assistant_prompt,
        temperature=temperature,
        max_tokens=max_tokens,
    )


async def complete_structured(
    llm: LLMClient,
    logger: structlog.stdlib.BoundLogger,
    step: str,
    schema: type[SchemaT],
    *,
    model: str,
    system: str,
    user: str,
    data: dict,
    temperature: float,
    max_tokens: int,
) -> tuple[SchemaT, TokenUsage]:
    """Same as ``complete`` but the reply is validated into ``schema``."""
    system_prompt, user_prompt, _ = build_prompts(system, user, None, data)
    log_prompts(logger, step, system_prompt, user_prompt)
    return await llm.generate_structured(
        schema,
        model=model,
        system=system_prompt,
        user=user_prompt,
        temperature=temperature,
        max_tokens=max_tokens,
    )


async def run_step(
    step: str,
    empty: ResponseT,
    logger: structlog.stdlib.BoundLogger,
    body: Callable[[], Awaitable[ResponseT]],
) -> StepOutcome[ResponseT]:
    """Run a step body and map its failure modes onto status codes."""
    try:
        payload = await body()
    except (PromptRenderError, SourceLimitError) as e:
        logger.warning("step_validation_failed", step=step, error=str(e))
        return StepOutcome(empty, 400)
    except Exception as e:
        logger.error("step_generation_failed", step=step, error=str(e), exc_info=True)
        return StepOutcome(empty, 500)

    log_response(logger, step, payload)
    return StepOutcome(payload, 200)
