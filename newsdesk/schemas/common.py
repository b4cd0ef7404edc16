"""
Shared Pydantic v2 building blocks.

Wire format is camelCase (the editor UI's convention); Python code uses
snake_case attributes. ``populate_by_name`` lets tests and internal callers
construct models with either spelling.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

LengthRange = Literal["100-250", "400-550", "700-850", "1000-1200"]
BlobsCount = Literal["1", "2", "3", "4", "5", "6"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class TokenUsage(CamelModel):
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class StepResponse(CamelModel):
    """Base for every step's AI response; ``usage`` lists one entry per model call."""

    usage: list[TokenUsage] = []
