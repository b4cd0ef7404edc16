"""
Export endpoints — DOCX / PDF downloads and email delivery.

POST /api/v1/export/docx
POST /api/v1/export/pdf
POST /api/v1/export/email
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from newsdesk.api.v1.deps import AppSettings, AuthenticatedUser
from newsdesk.core.config import Settings
from newsdesk.core.logging import get_logger
from newsdesk.schemas.schemas import EmailExportRequest, EmailExportResponse, ExportDocument
from newsdesk.services.docx_export import build_docx, docx_filename
from newsdesk.services.email_service import EmailService
from newsdesk.services.pdf_export import build_pdf, pdf_filename

router = APIRouter(prefix="/export", tags=["export"])
logger = get_logger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _with_defaults(document: ExportDocument, settings: Settings) -> ExportDocument:
    if document.org_name:
        return document
    return document.model_copy(update={"org_name": settings.organization_name})


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/docx")
async def export_docx(
    body: ExportDocument, settings: AppSettings, _api_key: AuthenticatedUser
) -> Response:
    if not body.rich_content and not body.content:
        raise HTTPException(status_code=400, detail="richContent or content is required")
    document = _with_defaults(body, settings)
    content = await asyncio.to_thread(build_docx, document)
    return _attachment(content, DOCX_MEDIA_TYPE, docx_filename(document))


@router.post("/pdf")
async def export_pdf(
    body: ExportDocument, settings: AppSettings, _api_key: AuthenticatedUser
) -> Response:
    if not body.headline or not body.slug or body.version is None:
        raise HTTPException(status_code=400, detail="headline, slug and version are required")
    document = _with_defaults(body, settings)
    try:
        pdf = await build_pdf(document)
    except Exception as e:
        logger.error("pdf_export_error", slug=body.slug, error=str(e))
        raise HTTPException(status_code=500, detail="PDF rendering failed") from e
    return _attachment(pdf, "application/pdf", pdf_filename(document))


@router.post("/email", response_model=EmailExportResponse)
async def export_email(
    body: EmailExportRequest, settings: AppSettings, _api_key: AuthenticatedUser
) -> EmailExportResponse:
    recipients = [address.strip() for address in body.to if address.strip()]
    if not recipients:
        raise HTTPException(status_code=400, detail="At least one recipient is required")
    if not settings.email_enabled:
        raise HTTPException(status_code=503, detail="Email delivery is not configured")

    document = _with_defaults(body, settings)
    try:
        await asyncio.to_thread(
            EmailService(settings).send_article_export, recipients, document, body.subject
        )
    except Exception as e:
        logger.error("email_export_failed", slug=body.slug, recipients=len(recipients), error=str(e))
        raise HTTPException(status_code=502, detail="Email delivery failed") from e
    return EmailExportResponse(sent=True, recipients=recipients)
