"""
PDF export — Jinja2 HTML template rendered by headless Chromium (playwright).

The article HTML comes from RichJSON (colours and formatting preserved); when
rich content is missing the plain content lines become paragraphs.
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup
from playwright.async_api import async_playwright

from newsdesk.core.logging import get_logger
from newsdesk.schemas.schemas import ExportDocument
from newsdesk.services.rich_content import (
    dump_rich_content,
    plain_text_to_rich_content,
    rich_content_to_html,
)

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

_BLOCK_END = re.compile(r"(</ul>|</ol>|</blockquote>)")
_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9_-]")

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


def pdf_filename(document: ExportDocument) -> str:
    slug = _UNSAFE_FILENAME.sub("_", document.slug)
    return f"{slug}_v{document.version}.pdf"


def content_html(document: ExportDocument) -> str:
    rendered = rich_content_to_html(document.rich_content)
    if not rendered:
        rendered = rich_content_to_html(
            dump_rich_content(plain_text_to_rich_content(document.content or ""))
        )
    # Chromium collapses the gap after block elements
    return _BLOCK_END.sub(r"\1<br>", rendered)


def render_article_html(document: ExportDocument) -> str:
    template = _env.get_template("article_pdf.html")
    return template.render(
        headline=document.headline,
        blobs=[blob.strip() for blob in document.blob.split("\n") if blob.strip()],
        content=Markup(content_html(document)),
        slug=document.slug,
        version=document.version_label,
        org_name=document.org_name or "",
        exported_on=document.exported_on or date.today().isoformat(),
    )


async def build_pdf(document: ExportDocument) -> bytes:
    html = render_article_html(document)
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True, args=["--no-sandbox", "--disable-gpu"])
        try:
            page = await browser.new_page()
            await page.set_content(html, wait_until="load")
            pdf = await page.pdf(
                format="Letter",
                margin={"top": "1in", "bottom": "1in", "left": "1in", "right": "1in"},
                print_background=True,
            )
        finally:
            await browser.close()

    logger.info("pdf_built", slug=document.slug, size_bytes=len(pdf))
    return pdf
