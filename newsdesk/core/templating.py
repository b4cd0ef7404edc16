"""
Prompt templating — strict mustache rendering for LLM prompts.

All prompt templates use mustache syntax only:

    {{dot.path}}              interpolation (dicts, attributes, list indices)
    {{#flag}}...{{/flag}}     section (truthy / dict / non-empty list)
    {{^flag}}...{{/flag}}     inverted section (falsy / empty / missing)

Tokenization is delegated to langchain_core's mustache tokenizer; evaluation is
done here because prompts must never be HTML-escaped and an interpolation that
does not resolve must raise instead of leaking ``{{placeholder}}`` into a paid
API call. A missing path in a section tag is simply falsy.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from langchain_core.utils.mustache import ChevronError, tokenize

from newsdesk.core.errors import PromptRenderError

_MISSING = object()


# ═══════════════════════════════════════════════════════════════
# Parse: token stream → node tree
# ═══════════════════════════════════════════════════════════════
@dataclass
class _Section:
    key: str
    inverted: bool
    children: list[Any] = field(default_factory=list)


@dataclass
class _Variable:
    key: str


def _parse(template: str) -> list[Any]:
    root: list[Any] = []
    stack: list[_Section] = []
    current = root
    try:
        for tag_type, key in tokenize(template):
            if tag_type == "literal":
                current.append(key)
            elif tag_type in ("variable", "no escape"):
                current.append(_Variable(key.strip()))
            elif tag_type in ("section", "inverted section"):
                section = _Section(key.strip(), inverted=tag_type == "inverted section")
                current.append(section)
                stack.append(section)
                current = section.children
            elif tag_type == "end":
                stack.pop()
                current = stack[-1].children if stack else root
            elif tag_type == "partial":
                raise PromptRenderError(f"Partials are not supported: {{{{>{key}}}}}", key)
            # comments and delimiter changes carry no output
    except ChevronError as e:
        raise PromptRenderError(f"Malformed template: {e}") from e
    return root


# ═══════════════════════════════════════════════════════════════
# Lookup: dot paths against a context stack
# ═══════════════════════════════════════════════════════════════
def _step(value: Any, segment: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(segment, _MISSING)
    if isinstance(value, Sequence) and not isinstance(value, str):
        if segment.isdigit():
            idx = int(segment)
            return value[idx] if idx < len(value) else _MISSING
        return _MISSING
    if segment.startswith("_") or isinstance(value, (str, bytes, int, float)):
        return _MISSING
    return getattr(value, segment, _MISSING)


def _lookup(path: str, stack: list[Any]) -> Any:
    if path == ".":
        return stack[-1]

    head, *rest = path.split(".")
    value = _MISSING
    for scope in reversed(stack):
        value = _step(scope, head)
        if value is not _MISSING:
            break
    for segment in rest:
        if value is _MISSING or value is None:
            return _MISSING
        value = _step(value, segment)
    return value


def _is_truthy(value: Any) -> bool:
    if value is _MISSING or value is None:
        return False
    if isinstance(value, str):
        return value != ""
    return bool(value)


# ═══════════════════════════════════════════════════════════════
# Evaluate
# ═══════════════════════════════════════════════════════════════
def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _evaluate(nodes: list[Any], stack: list[Any], out: list[str]) -> None:
    for node in nodes:
        if isinstance(node, str):
            out.append(node)
        elif isinstance(node, _Variable):
            value = _lookup(node.key, stack)
            if value is _MISSING:
                raise PromptRenderError(f"Unresolved placeholder {{{{{node.key}}}}}", node.key)
            out.append(_stringify(value))
        else:
            value = _lookup(node.key, stack)
            truthy = _is_truthy(value)
            if node.inverted:
                if not truthy:
                    _evaluate(node.children, stack, out)
            elif truthy:
                if isinstance(value, Sequence) and not isinstance(value, str):
                    for item in value:
                        _evaluate(node.children, [*stack, item], out)
                else:
                    _evaluate(node.children, [*stack, value], out)


def render(template: str, data: Any) -> str:
    """Render a mustache template strictly against ``data``."""
    out: list[str] = []
    _evaluate(_parse(template), [data], out)
    return "".join(out)


def build_prompts(
    system: str,
    user: str,
    assistant: str | None,
    data: Any,
) -> tuple[str, str, str | None]:
    """Render the system / user / (optional) assistant prefill templates with shared data."""
    return (
        render(system, data),
        render(user, data),
        render(assistant, data) if assistant else None,
    )


# ═══════════════════════════════════════════════════════════════
# Prompt helpers
# ═══════════════════════════════════════════════════════════════
_WORD_TARGETS = {
    "100-250": 100,
    "400-550": 400,
    "700-850": 700,
    "1000-1200": 1000,
}
_SENTENCE_GUIDANCE = {
    100: "IMPORTANT: The article should be around 5 sentences long.",
    400: "IMPORTANT: The article should be around 15 sentences long.",
    1000: "IMPORTANT: The article should be around 25 sentences long.",
    1200: "IMPORTANT: The article should be around 40 sentences long.",
}


def word_target(length_range: str | None) -> int:
    """Map an editor length range to the word count the writer prompt asks for."""
    return _WORD_TARGETS.get(length_range or "", 600)


def sentence_guidance(target: int) -> str:
    return _SENTENCE_GUIDANCE.get(target, "")


def key_point_instructions(source_count: int) -> str:
    if source_count == 4:
        return "Pull 14 key points for the outline."
    if source_count == 5:
        return "Pull 16 key points for the outline."
    if source_count >= 6:
        return "Pull at least 17 key points for the outline."
    return "Pull 12 key points for the outline."


def clean_slug(text: str) -> str:
    """Lowercase, strip everything but [a-z0-9], cap at 50 chars."""
    return re.sub(r"[^a-z0-9]", "", (text or "").lower())[:50]


def current_date() -> str:
    return date.today().isoformat()
