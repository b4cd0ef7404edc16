"""
Structured JSON logging via structlog.

In development: coloured console output.
In production:  JSON lines for the log drain.

Pipeline code never logs through a process-wide logger: each run (or each
step request) gets its own BoundLogger from ``bind_run_logger`` and passes it
explicitly into the step handlers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from newsdesk.core.config import get_settings

_stdlib_logger = logging.getLogger(__name__)

# Event keys that carry whole prompts or model replies
_BULKY_KEYS = ("system_prompt", "user_prompt", "assistant_prompt", "response", "draft")


def _prompt_truncator(limit: int) -> structlog.types.Processor:
    """Cap prompt/response fields at ``limit`` chars; 0 disables the cap."""

    def truncate(_logger: Any, _method: str, event_dict: dict) -> dict:
        if limit <= 0:
            return event_dict
        for key in _BULKY_KEYS:
            value = event_dict.get(key)
            if isinstance(value, str) and len(value) > limit:
                event_dict[key] = f"{value[:limit]}... [{len(value) - limit} chars truncated]"
        return event_dict

    return truncate


def setup_logging() -> None:
    settings = get_settings()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _prompt_truncator(settings.log_prompt_chars),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.app_env == "production":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level.upper())

    # model SDKs and DB drivers are chatty at INFO
    for name in ("httpx", "httpcore", "urllib3", "asyncio", "aiosqlite", "google_genai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_run_logger(run_id: str, mode: str, **extra: Any) -> structlog.stdlib.BoundLogger:
    """Logger scoped to a single pipeline run or step request."""
    return structlog.get_logger("newsdesk.pipeline").bind(run_id=run_id, mode=mode, **extra)


# ── Best-effort observability helpers ───────────────────────
def log_prompts(
    logger: structlog.stdlib.BoundLogger,
    step: str,
    system: str,
    user: str,
    assistant: str | None = None,
) -> None:
    """Log rendered prompts. Never raises."""
    try:
        logger.debug(
            "step_prompts",
            step=step,
            system_prompt=system,
            user_prompt=user,
            assistant_prompt=assistant or "",
            system_chars=len(system),
            user_chars=len(user),
            assistant_chars=len(assistant or ""),
        )
    except Exception:
        _stdlib_logger.debug("prompt logging failed for %s", step, exc_info=True)


def log_response(logger: structlog.stdlib.BoundLogger, step: str, payload: Any) -> None:
    """Log a step's raw response. Never raises."""
    try:
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump(by_alias=True)
        logger.debug("step_response", step=step, response=payload)
    except Exception:
        _stdlib_logger.debug("response logging failed for %s", step, exc_info=True)
