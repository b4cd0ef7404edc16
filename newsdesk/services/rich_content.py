"""
Rich content (RichJSON) helpers.

RichJSON is the editor's node tree:

    root → paragraph | heading | quote | list → listitem → text | linebreak

Text nodes carry a ``format`` bitmask and an inline ``style`` string. The bit
layout is used everywhere in this package (HTML parsing, DOCX, HTML render):

    bold = 1, italic = 2, strikethrough = 4, underline = 8

Every converter in here is forgiving: bad input yields an empty result and a
warning, never an exception.
"""

from __future__ import annotations

import html
import json
import re
from typing import Any

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from newsdesk.core.logging import get_logger

logger = get_logger(__name__)

FORMAT_BOLD = 1
FORMAT_ITALIC = 2
FORMAT_STRIKETHROUGH = 4
FORMAT_UNDERLINE = 8

# Colour for "Source N" is SOURCE_PALETTE[N - 1]
SOURCE_PALETTE = ("black", "darkblue", "darkred", "green", "purple", "orange")

NAMED_COLORS = {
    "black": "000000",
    "darkblue": "00008B",
    "darkred": "8B0000",
    "green": "008000",
    "purple": "800080",
    "orange": "FFA500",
}

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")
_STYLE_COLOR = re.compile(r"color:\s*([^;]+)")

_TAG_FORMATS = {
    "b": FORMAT_BOLD,
    "strong": FORMAT_BOLD,
    "i": FORMAT_ITALIC,
    "em": FORMAT_ITALIC,
    "s": FORMAT_STRIKETHROUGH,
    "del": FORMAT_STRIKETHROUGH,
    "strike": FORMAT_STRIKETHROUGH,
    "u": FORMAT_UNDERLINE,
}


# ═══════════════════════════════════════════════════════════════
# Colours
# ═══════════════════════════════════════════════════════════════
def color_to_hex(value: str | None) -> str:
    """Map a CSS colour (palette name or 6-digit hex) to upper-case hex without '#'."""
    cleaned = (value or "").strip()
    match = _HEX_COLOR.match(cleaned)
    if match:
        return match.group(1).upper()
    named = NAMED_COLORS.get(cleaned.lower())
    if named:
        return named
    logger.warning("unknown_color", color=value)
    return "000000"


def style_color(style: str | None) -> str | None:
    """Extract the raw colour value from an inline style string."""
    match = _STYLE_COLOR.search(style or "")
    return match.group(1).strip() if match else None


def source_color(number: int) -> str:
    if 1 <= number <= len(SOURCE_PALETTE):
        return SOURCE_PALETTE[number - 1]
    return "black"


# ═══════════════════════════════════════════════════════════════
# Node constructors
# ═══════════════════════════════════════════════════════════════
def text_node(text: str, *, format_bits: int = 0, color: str | None = None) -> dict:
    return {
        "type": "text",
        "detail": 0,
        "format": format_bits,
        "mode": "normal",
        "style": f"color: {color}" if color else "",
        "text": text,
        "version": 1,
    }


def paragraph_node(children: list[dict]) -> dict:
    return {
        "type": "paragraph",
        "direction": "ltr",
        "format": "",
        "indent": 0,
        "version": 1,
        "children": children,
    }


def root_node(children: list[dict]) -> dict:
    return {
        "root": {
            "type": "root",
            "direction": "ltr",
            "format": "",
            "indent": 0,
            "version": 1,
            "children": children,
        }
    }


# ═══════════════════════════════════════════════════════════════
# HTML → RichJSON
# ═══════════════════════════════════════════════════════════════
def _string_style(string: NavigableString, boundary: Tag) -> tuple[int, str | None]:
    """Format bits and colour for one text string, read from its enclosing tags.

    The colour comes from the nearest enclosing span that sets one, so nested
    spans colour only their own text.
    """
    bits = 0
    color = None
    parent = string.parent
    while parent is not None:
        bits |= _TAG_FORMATS.get(parent.name or "", 0)
        if color is None and parent is not boundary and parent.name == "span":
            color = style_color(parent.get("style"))
        parent = parent.parent
    return bits, color


def _paragraph_children(p: Tag) -> list[dict]:
    """One text node per run of same-styled text, each character exactly once."""
    children: list[dict] = []
    last_style: tuple[int, str | None] | None = None
    for string in p.find_all(string=True):
        if isinstance(string, Comment):
            continue
        text = str(string)
        style = _string_style(string, p)
        bits, color = style
        if not text.strip() and color is None:
            # layout whitespace between spans
            continue
        if style == last_style:
            children[-1]["text"] += text
        else:
            children.append(text_node(text, format_bits=bits, color=color))
            last_style = style
    return children


def html_to_rich_content(markup: str) -> dict:
    """Convert color-coded ``<p><span style="color: X;">…</span></p>`` HTML to RichJSON."""
    soup = BeautifulSoup(markup or "", "html.parser")
    paragraphs: list[dict] = []

    for p in soup.find_all("p"):
        children = _paragraph_children(p)
        if children:
            paragraphs.append(paragraph_node(children))

    if not paragraphs:
        # Model skipped the <p> wrappers: fall back to one paragraph per line
        for line in soup.get_text().splitlines():
            if line.strip():
                paragraphs.append(paragraph_node([text_node(line.strip())]))

    return root_node(paragraphs)


def plain_text_to_rich_content(text: str, color: str = "black") -> dict:
    """One black paragraph per non-empty line (digest articles have no colour coding)."""
    return root_node(
        [
            paragraph_node([text_node(line.strip(), color=color)])
            for line in (text or "").splitlines()
            if line.strip()
        ]
    )


# ═══════════════════════════════════════════════════════════════
# Serialization
# ═══════════════════════════════════════════════════════════════
def dump_rich_content(tree: dict) -> str:
    return json.dumps(tree, ensure_ascii=False, separators=(",", ":"))


def parse_rich_content(raw: str | dict | None) -> dict | None:
    """Return the parsed tree, or None when ``raw`` is not RichJSON."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        tree: Any = raw
    else:
        try:
            tree = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("rich_content_parse_failed", error=str(e))
            return None
    if not isinstance(tree, dict) or not isinstance(tree.get("root"), dict):
        logger.warning("rich_content_missing_root")
        return None
    return tree


# ═══════════════════════════════════════════════════════════════
# RichJSON → HTML (PDF and email bodies)
# ═══════════════════════════════════════════════════════════════
def _text_to_html(node: dict) -> str:
    if node.get("type") == "linebreak":
        return "<br>"
    if "children" in node:
        return "".join(_text_to_html(child) for child in node.get("children") or [])

    out = html.escape(str(node.get("text", "")))
    bits = node.get("format") or 0
    if not isinstance(bits, int):
        bits = 0
    if bits & FORMAT_BOLD:
        out = f"<strong>{out}</strong>"
    if bits & FORMAT_ITALIC:
        out = f"<em>{out}</em>"
    if bits & FORMAT_STRIKETHROUGH:
        out = f"<s>{out}</s>"
    if bits & FORMAT_UNDERLINE:
        out = f"<u>{out}</u>"
    color = style_color(node.get("style"))
    if color:
        out = f'<span style="color: #{color_to_hex(color)};">{out}</span>'
    return out


def _block_to_html(node: dict) -> str:
    node_type = node.get("type")
    inner = "".join(_text_to_html(child) for child in node.get("children") or [])
    if node_type == "heading":
        tag = node.get("tag") if node.get("tag") in ("h1", "h2", "h3", "h4", "h5", "h6") else "h2"
        return f"<{tag}>{inner}</{tag}>"
    if node_type == "quote":
        return f"<blockquote>{inner}</blockquote>"
    if node_type == "list":
        tag = "ol" if node.get("listType") == "number" else "ul"
        items = "".join(
            _block_to_html(child) if child.get("type") == "list" else f"<li>{_text_to_html(child)}</li>"
            for child in node.get("children") or []
        )
        return f"<{tag}>{items}</{tag}>"
    if not inner:
        return ""
    return f"<p>{inner}</p>"


def rich_content_to_html(raw: str | dict | None) -> str:
    tree = parse_rich_content(raw)
    if tree is None:
        return ""
    try:
        return "\n".join(
            block for block in (_block_to_html(node) for node in tree["root"].get("children") or [])
            if block
        )
    except (AttributeError, TypeError) as e:
        logger.warning("rich_content_render_failed", error=str(e))
        return ""
