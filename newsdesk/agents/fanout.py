"""
Concurrent per-source processing for the multi-source splitting steps.

Default semantics are all-or-nothing: the first source that raises fails the
whole batch and cancels the sources still running. With ``partial=True`` every
source is awaited, failed sources keep an empty output and are reported in
``failures`` instead.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from newsdesk.core.errors import NewsdeskError, SourceLimitError
from newsdesk.schemas.aggregate import Source, SourceFailure
from newsdesk.schemas.common import TokenUsage

# process(source) -> (generated text, usage of the calls it made)
SourceProcessor = Callable[[Source], Awaitable[tuple[str, list[TokenUsage]]]]


class FanOutFailed(NewsdeskError):
    """Every source in a partial fan-out failed."""


@dataclass
class FanOutResult:
    sources: list[Source]
    failures: list[SourceFailure] = field(default_factory=list)
    usage: list[TokenUsage] = field(default_factory=list)


def check_source_count(sources: Sequence[Source], max_sources: int) -> None:
    if not sources:
        raise SourceLimitError("At least one source is required")
    if len(sources) > max_sources:
        raise SourceLimitError(f"{len(sources)} sources supplied, at most {max_sources} allowed")


async def fan_out(
    sources: Sequence[Source],
    process: SourceProcessor,
    *,
    output_field: str,
    partial: bool = False,
) -> FanOutResult:
    """Run ``process`` for every source concurrently and write its text into ``output_field``.

    Output order always matches input order.
    """
    if not partial:
        # TaskGroup cancels the remaining sources as soon as one fails
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(process(source)) for source in sources]
        except ExceptionGroup as failed:
            raise failed.exceptions[0] from None
        results = [task.result() for task in tasks]
        usage = [u for _, calls in results for u in calls]
        updated = [
            source.model_copy(update={output_field: text})
            for source, (text, _) in zip(sources, results, strict=True)
        ]
        return FanOutResult(sources=updated, usage=usage)

    settled = await asyncio.gather(
        *(process(source) for source in sources), return_exceptions=True
    )
    result = FanOutResult(sources=[])
    for source, outcome in zip(sources, settled, strict=True):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome  # cancellation and friends are not per-source failures
            result.failures.append(SourceFailure(number=source.number, error=str(outcome)))
            result.sources.append(source.model_copy(update={output_field: ""}))
            continue
        text, calls = outcome
        result.usage.extend(calls)
        result.sources.append(source.model_copy(update={output_field: text}))

    if sources and len(result.failures) == len(sources):
        raise FanOutFailed(f"All {len(sources)} sources failed")
    return result
