"""Unit tests for the completion client wrapper."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from newsdesk.core.errors import StructuredOutputError
from newsdesk.schemas.common import TokenUsage
from newsdesk.services.llm_client import estimate_cost, parse_json_object


class _Headline(BaseModel):
    headline: str
    blobs: list[str]


class TestGenerateText:
    async def test_prefill_is_not_echoed(self, make_scripted_llm):
        llm, model = make_scripted_llm([], default=" first quote\n</quote-list>")
        completion = await llm.generate_text(
            model="m", system="sys", user="usr", assistant="<quote-list>", temperature=0.1, max_tokens=50
        )
        assert completion.text == " first quote\n</quote-list>"
        assert "<quote-list>" in model.calls[0]

    async def test_usage_is_reported(self, make_scripted_llm):
        llm, _ = make_scripted_llm([], default="ok")
        completion = await llm.generate_text(
            model="writer", system="s", user="u", temperature=0.1, max_tokens=10
        )
        assert completion.usage.input_tokens == 10
        assert completion.usage.output_tokens == 5
        assert completion.usage.model == "writer"

    async def test_provider_error_propagates(self, failing_llm):
        with pytest.raises(RuntimeError, match="model unavailable"):
            await failing_llm.generate_text(model="m", system="s", user="u", temperature=0, max_tokens=5)


class TestGenerateStructured:
    async def test_valid_reply_is_parsed(self, make_llm):
        llm = make_llm(['```json\n{"headline": "H", "blobs": ["a", "b"]}\n```'])
        result, usage = await llm.generate_structured(
            _Headline, model="m", system="s", user="u", temperature=0, max_tokens=100
        )
        assert result.headline == "H"
        assert result.blobs == ["a", "b"]
        assert isinstance(usage, TokenUsage)

    async def test_schema_mismatch_raises(self, make_llm):
        llm = make_llm(['{"headline": "H"}'])
        with pytest.raises(StructuredOutputError):
            await llm.generate_structured(
                _Headline, model="m", system="s", user="u", temperature=0, max_tokens=100
            )


class TestParseJsonObject:
    def test_plain_object(self):
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_object(self):
        assert parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_object_embedded_in_prose(self):
        assert parse_json_object('Sure! Here it is: {"a": [1, 2]} Hope that helps.') == {"a": [1, 2]}

    def test_no_object_raises(self):
        with pytest.raises(StructuredOutputError):
            parse_json_object("no json here")

    def test_array_raises(self):
        with pytest.raises(StructuredOutputError):
            parse_json_object("[1, 2, 3]")


class TestEstimateCost:
    def test_sums_input_and_output(self, test_settings):
        usages = [
            TokenUsage(input_tokens=1_000_000, output_tokens=0),
            TokenUsage(input_tokens=0, output_tokens=100_000),
        ]
        expected = test_settings.input_cost_per_million + test_settings.output_cost_per_million / 10
        assert estimate_cost(usages, test_settings) == pytest.approx(expected)

    def test_empty_is_free(self, test_settings):
        assert estimate_cost([], test_settings) == 0
