"""
Hosted completion client — the pipeline's only outbound model dependency.

Wraps a LangChain chat model (Gemini via langchain-google-genai in production,
FakeListChatModel in tests) behind two calls:

  - generate_text:       system + user (+ assistant prefill) → continuation text
  - generate_structured: same, parsed into a pydantic schema

Every call goes through Runnable.with_retry, so transient API failures get a
bounded number of attempts with exponential-jitter backoff.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TypeVar

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel, ValidationError

from newsdesk.core.config import Settings, get_settings
from newsdesk.core.errors import StructuredOutputError
from newsdesk.schemas.common import TokenUsage

SchemaT = TypeVar("SchemaT", bound=BaseModel)
ChatModelFactory = Callable[[str, float, int], BaseChatModel]

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def build_chat_model(model: str, temperature: float, max_tokens: int) -> BaseChatModel:
    """Default factory: a Gemini chat model configured for one call."""
    settings = get_settings()
    return ChatGoogleGenerativeAI(
        model=model,
        temperature=temperature,
        max_output_tokens=max_tokens,
        timeout=settings.llm_timeout_seconds,
        google_api_key=settings.google_api_key,
    )


@dataclass
class Completion:
    text: str
    usage: TokenUsage


def _usage_from(message: BaseMessage, model: str) -> TokenUsage:
    meta = getattr(message, "usage_metadata", None) or {}
    return TokenUsage(
        input_tokens=int(meta.get("input_tokens", 0) or 0),
        output_tokens=int(meta.get("output_tokens", 0) or 0),
        model=model,
    )


def _content_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Gemini can return a list of content parts
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def parse_json_object(raw_text: str) -> dict:
    """Strip markdown fences and parse a JSON object, falling back to the outermost {...} block."""
    text = _FENCE_OPEN.sub("", raw_text.strip())
    text = _FENCE_CLOSE.sub("", text).strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(text)
        if not match:
            raise StructuredOutputError("Model reply contains no JSON object", raw_text) from None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise StructuredOutputError(f"Model reply is not valid JSON: {e}", raw_text) from e
    if not isinstance(parsed, dict):
        raise StructuredOutputError("Model reply is JSON but not an object", raw_text)
    return parsed


def estimate_cost(usages: Iterable[TokenUsage], settings: Settings | None = None) -> float:
    settings = settings or get_settings()
    total_in = total_out = 0
    for usage in usages:
        total_in += usage.input_tokens
        total_out += usage.output_tokens
    return round(
        total_in / 1_000_000 * settings.input_cost_per_million
        + total_out / 1_000_000 * settings.output_cost_per_million,
        6,
    )


class LLMClient:
    def __init__(
        self,
        model_factory: ChatModelFactory = build_chat_model,
        settings: Settings | None = None,
    ) -> None:
        self._factory = model_factory
        self.settings = settings or get_settings()

    async def _invoke(
        self,
        *,
        model: str,
        messages: list[BaseMessage],
        temperature: float,
        max_tokens: int,
    ) -> BaseMessage:
        llm = self._factory(model, temperature, max_tokens).with_retry(
            stop_after_attempt=self.settings.llm_max_attempts,
            wait_exponential_jitter=True,
        )
        return await llm.ainvoke(messages)

    async def generate_text(
        self,
        *,
        model: str,
        system: str,
        user: str,
        assistant: str | None = None,
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        """Return the model's continuation; an assistant prefill is sent but not echoed back."""
        messages: list[BaseMessage] = [SystemMessage(content=system), HumanMessage(content=user)]
        if assistant:
            messages.append(AIMessage(content=assistant))

        response = await self._invoke(
            model=model, messages=messages, temperature=temperature, max_tokens=max_tokens
        )
        return Completion(text=_content_text(response), usage=_usage_from(response, model))

    async def generate_structured(
        self,
        schema: type[SchemaT],
        *,
        model: str,
        system: str,
        user: str,
        temperature: float,
        max_tokens: int,
    ) -> tuple[SchemaT, TokenUsage]:
        """Ask for JSON matching ``schema`` and validate the reply."""
        schema_json = json.dumps(schema.model_json_schema())
        system_with_format = (
            f"{system}\n\nOutput ONLY a valid JSON object matching this JSON schema, "
            f"no markdown fences:\n{schema_json}"
        )
        completion = await self.generate_text(
            model=model,
            system=system_with_format,
            user=user,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        data = parse_json_object(completion.text)
        try:
            return schema.model_validate(data), completion.usage
        except ValidationError as e:
            raise StructuredOutputError(
                f"Model reply does not match {schema.__name__}: {e}", completion.text
            ) from e
