"""Domain exceptions raised inside the pipeline and caught at step/route boundaries."""

from __future__ import annotations


class NewsdeskError(Exception):
    """Base class for all pipeline errors."""


class PromptRenderError(NewsdeskError):
    """A prompt template is malformed or references data that does not exist."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class StructuredOutputError(NewsdeskError):
    """The model's reply could not be parsed into the requested schema."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class SourceLimitError(NewsdeskError, ValueError):
    """Too many (or zero) sources were supplied for a multi-source run."""


class PipelineBudgetExceeded(NewsdeskError):
    """Accumulated tokens or cost crossed the configured per-run guardrail."""


class InvalidSourceUrl(NewsdeskError, ValueError):
    """The source URL is not an absolute http(s) URL."""


class SourceFetchError(NewsdeskError):
    """The source page could not be downloaded."""
