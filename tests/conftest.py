"""
Shared pytest fixtures for unit and integration tests.

Uses FakeListChatModel (and a small content-keyed chat model for concurrent
fan-out) for deterministic LLM mocking — no API keys needed.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

# Settings are cached on first use: point the app at a throwaway database first
_TMP_DIR = Path(tempfile.mkdtemp(prefix="newsdesk-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}")
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("APP_ENV", "development")

import pytest  # noqa: E402
from langchain_core.language_models.chat_models import BaseChatModel  # noqa: E402
from langchain_core.language_models.fake_chat_models import FakeListChatModel  # noqa: E402
from langchain_core.messages import AIMessage, BaseMessage  # noqa: E402
from langchain_core.outputs import ChatGeneration, ChatResult  # noqa: E402

from newsdesk.core.config import Settings  # noqa: E402
from newsdesk.core.logging import bind_run_logger  # noqa: E402
from newsdesk.schemas.aggregate import Source  # noqa: E402
from newsdesk.services.llm_client import LLMClient  # noqa: E402


class ScriptedChatModel(BaseChatModel):
    """Replies by matching substrings of the prompt, so call order does not matter."""

    script: list[tuple[str, Any]] = []
    default: str = ""
    calls: list[str] = []

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        prompt = "\n".join(str(m.content) for m in messages)
        self.calls.append(prompt)
        reply: Any = self.default
        for needle, candidate in self.script:
            if needle in prompt:
                reply = candidate
                break
        if isinstance(reply, Exception):
            raise reply
        message = AIMessage(
            content=reply,
            usage_metadata={"input_tokens": 10, "output_tokens": 5, "total_tokens": 15},
        )
        return ChatResult(generations=[ChatGeneration(message=message)])


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a single attempt per model call so failure tests stay fast."""
    return Settings(_env_file=None, llm_max_attempts=1, api_key="test-api-key")


@pytest.fixture
def make_llm(test_settings):
    """Build an LLMClient whose every call is answered from a FakeListChatModel."""

    def _make(responses: list[str]) -> LLMClient:
        model = FakeListChatModel(responses=responses)
        return LLMClient(model_factory=lambda *_: model, settings=test_settings)

    return _make


@pytest.fixture
def make_scripted_llm(test_settings):
    """Build an LLMClient backed by ScriptedChatModel; returns (client, model)."""

    def _make(
        script: list[tuple[str, Any]], default: str = "", settings: Settings | None = None
    ) -> tuple[LLMClient, ScriptedChatModel]:
        model = ScriptedChatModel(script=script, default=default)
        return LLMClient(model_factory=lambda *_: model, settings=settings or test_settings), model

    return _make


@pytest.fixture
def failing_llm(test_settings) -> LLMClient:
    """Every model call raises, as if the provider were down."""

    def _factory(*_args):
        raise RuntimeError("model unavailable")

    return LLMClient(model_factory=_factory, settings=test_settings)


@pytest.fixture
def logger():
    return bind_run_logger("test-run-001", "test")


@pytest.fixture
def sample_source_text() -> str:
    return (
        "The city council voted 7-2 on Tuesday to approve a $4.1 billion budget. "
        '"This budget protects the services residents rely on," Mayor Dana Ruiz said. '
        "Opponents argued the plan leaves the transit authority underfunded."
    )


@pytest.fixture
def sample_sources() -> list[Source]:
    """Three realistic sources for aggregate-mode tests."""
    return [
        Source(
            number=1,
            accredit="Reuters",
            text="The council approved the budget 7-2 on Tuesday.",
            is_base_source=True,
        ),
        Source(
            number=2,
            accredit="AP",
            text='"We protected core services," Mayor Dana Ruiz said after the vote.',
        ),
        Source(
            number=3,
            accredit="CNN",
            text="Transit advocates say the plan underfunds buses.",
            description="Reaction piece",
        ),
    ]
