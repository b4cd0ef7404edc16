"""
DOCX export via python-docx.

Two layers:
  - rich_content_to_paragraphs: RichJSON → plain DocxParagraph/DocxRun specs
    (pure data, easy to test, never raises)
  - build_docx: lays out a Letter page with a metadata line, headline, blobs
    and the content paragraphs, and returns the file bytes
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import date

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor, Twips

from newsdesk.core.logging import get_logger
from newsdesk.schemas.schemas import ExportDocument
from newsdesk.services.rich_content import (
    FORMAT_BOLD,
    FORMAT_ITALIC,
    FORMAT_STRIKETHROUGH,
    FORMAT_UNDERLINE,
    color_to_hex,
    parse_rich_content,
    style_color,
)

logger = get_logger(__name__)

HEADING_SIZES = {"h1": 44, "h2": 36, "h3": 32, "h4": 28, "h5": 24, "h6": 20}  # half-points
BLOCK_INDENT = 720  # twips (0.5")


@dataclass
class DocxRun:
    text: str
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    color_hex: str | None = None
    size_half_points: int | None = None


@dataclass
class DocxParagraph:
    runs: list[DocxRun] = field(default_factory=list)
    indent_left: int = 0
    indent_right: int = 0

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


# ═══════════════════════════════════════════════════════════════
# RichJSON → paragraph specs
# ═══════════════════════════════════════════════════════════════
def _runs(
    node: dict,
    *,
    force_bold: bool = False,
    force_italic: bool = False,
    size: int | None = None,
) -> list[DocxRun]:
    runs: list[DocxRun] = []
    for child in node.get("children") or []:
        child_type = child.get("type")
        if child_type == "linebreak":
            runs.append(DocxRun(text="\n", size_half_points=size))
        elif child_type == "text":
            bits = child.get("format") or 0
            if not isinstance(bits, int):
                bits = 0
            color = style_color(child.get("style"))
            runs.append(
                DocxRun(
                    text=str(child.get("text", "")),
                    bold=force_bold or bool(bits & FORMAT_BOLD),
                    italic=force_italic or bool(bits & FORMAT_ITALIC),
                    strikethrough=bool(bits & FORMAT_STRIKETHROUGH),
                    underline=bool(bits & FORMAT_UNDERLINE),
                    color_hex=color_to_hex(color) if color else None,
                    size_half_points=size,
                )
            )
        elif "children" in child and child_type != "list":
            # inline containers such as links; nested lists become their own paragraphs
            runs.extend(_runs(child, force_bold=force_bold, force_italic=force_italic, size=size))
    return runs


def _has_text(runs: list[DocxRun]) -> bool:
    return any(run.text.strip() for run in runs)


def _list_paragraphs(node: dict, indent: int) -> list[DocxParagraph]:
    list_type = node.get("listType", "bullet")
    paragraphs: list[DocxParagraph] = []
    number = 0
    for item in node.get("children") or []:
        nested = [child for child in item.get("children") or [] if child.get("type") == "list"]
        runs = _runs(item)
        if _has_text(runs):
            number += 1
            if list_type == "number":
                prefix = f"{number}. "
            elif list_type == "check":
                prefix = "☑ " if item.get("checked") else "☐ "
            else:
                prefix = "• "
            paragraphs.append(DocxParagraph(runs=[DocxRun(text=prefix), *runs], indent_left=indent))
        for child in nested:
            paragraphs.extend(_list_paragraphs(child, indent + BLOCK_INDENT))
    return paragraphs


def _block_paragraphs(node: dict) -> list[DocxParagraph]:
    node_type = node.get("type")
    if node_type == "list":
        return _list_paragraphs(node, BLOCK_INDENT)

    if node_type == "heading":
        runs = _runs(node, force_bold=True, size=HEADING_SIZES.get(node.get("tag", ""), 32))
        paragraph = DocxParagraph(runs=runs)
    elif node_type == "quote":
        paragraph = DocxParagraph(
            runs=_runs(node, force_italic=True),
            indent_left=BLOCK_INDENT,
            indent_right=BLOCK_INDENT,
        )
    elif node_type == "listitem":
        runs = _runs(node)
        paragraph = DocxParagraph(runs=[DocxRun(text="• "), *runs], indent_left=BLOCK_INDENT)
        if not _has_text(runs):
            return []
    else:
        paragraph = DocxParagraph(runs=_runs(node))

    return [paragraph] if _has_text(paragraph.runs) else []


def rich_content_to_paragraphs(raw: str | dict | None) -> list[DocxParagraph]:
    """Convert serialized RichJSON to paragraph specs; malformed input yields []."""
    tree = parse_rich_content(raw)
    if tree is None:
        return []
    try:
        paragraphs: list[DocxParagraph] = []
        for node in tree["root"].get("children") or []:
            paragraphs.extend(_block_paragraphs(node))
        return paragraphs
    except (AttributeError, TypeError) as e:
        logger.warning("rich_content_to_docx_failed", error=str(e))
        return []


def plain_text_paragraphs(content: str | None) -> list[DocxParagraph]:
    return [
        DocxParagraph(runs=[DocxRun(text=line.strip())])
        for line in (content or "").splitlines()
        if line.strip()
    ]


# ═══════════════════════════════════════════════════════════════
# Document layout
# ═══════════════════════════════════════════════════════════════
def _add_page_number(paragraph) -> None:
    run = paragraph.add_run()
    begin = OxmlElement("w:fldChar")
    begin.set(qn("w:fldCharType"), "begin")
    instr = OxmlElement("w:instrText")
    instr.set(qn("xml:space"), "preserve")
    instr.text = " PAGE "
    end = OxmlElement("w:fldChar")
    end.set(qn("w:fldCharType"), "end")
    run._r.append(begin)
    run._r.append(instr)
    run._r.append(end)


def _write_paragraph(doc, item: DocxParagraph) -> None:
    paragraph = doc.add_paragraph()
    if item.indent_left:
        paragraph.paragraph_format.left_indent = Twips(item.indent_left)
    if item.indent_right:
        paragraph.paragraph_format.right_indent = Twips(item.indent_right)
    for source_run in item.runs:
        run = paragraph.add_run(source_run.text)
        run.bold = source_run.bold or None
        run.italic = source_run.italic or None
        run.underline = source_run.underline or None
        if source_run.strikethrough:
            run.font.strike = True
        if source_run.color_hex:
            run.font.color.rgb = RGBColor.from_string(source_run.color_hex)
        if source_run.size_half_points:
            run.font.size = Pt(source_run.size_half_points / 2)


def _metadata_run(paragraph, text: str, *, bold: bool = False) -> None:
    run = paragraph.add_run(text)
    run.bold = bold or None
    run.underline = True
    run.font.name = "Arial"
    run.font.size = Pt(9)


def docx_filename(document: ExportDocument) -> str:
    return f"{document.slug}-v{document.version_label}.docx"


def build_docx(document: ExportDocument) -> bytes:
    doc = Document()

    section = doc.sections[0]
    section.page_width = Twips(12240)
    section.page_height = Twips(15840)
    section.top_margin = Twips(1440)
    section.bottom_margin = Twips(1440)
    section.left_margin = Twips(1800)
    section.right_margin = Twips(1800)

    normal = doc.styles["Normal"]
    normal.font.name = "Times New Roman"
    normal.font.size = Pt(12)

    footer = section.footer.paragraphs[0]
    footer.alignment = WD_ALIGN_PARAGRAPH.CENTER
    _add_page_number(footer)

    # Slug: … Version: … Export by: … on: …
    meta = doc.add_paragraph()
    meta.paragraph_format.space_after = Pt(24)
    _metadata_run(meta, "Slug: ", bold=True)
    _metadata_run(meta, document.slug)
    _metadata_run(meta, " Version: ", bold=True)
    _metadata_run(meta, document.version_label)
    _metadata_run(meta, " Export by: ", bold=True)
    _metadata_run(meta, document.org_name or "")
    _metadata_run(meta, " on: ", bold=True)
    _metadata_run(meta, document.exported_on or date.today().isoformat())

    title = doc.add_paragraph()
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    title_run = title.add_run(document.headline)
    title_run.bold = True
    title_run.font.size = Pt(22)

    for blob in document.blob.split("\n"):
        if blob.strip():
            paragraph = doc.add_paragraph()
            paragraph.paragraph_format.left_indent = Twips(BLOCK_INDENT)
            paragraph.add_run(f"• {blob.strip()}")

    doc.add_paragraph()

    paragraphs = rich_content_to_paragraphs(document.rich_content)
    if not paragraphs:
        paragraphs = plain_text_paragraphs(document.content)
    for item in paragraphs:
        _write_paragraph(doc, item)

    buffer = io.BytesIO()
    doc.save(buffer)
    logger.info("docx_built", slug=document.slug, paragraphs=len(paragraphs))
    return buffer.getvalue()
