"""
Email delivery service via SMTP (Gmail-compatible).

Uses Python's built-in smtplib with STARTTLS so it works with any SMTP
provider. Two messages are sent:

  - completion notice: an article version finished generating (or failed)
  - article export: the article rendered as HTML with the DOCX attached
"""

from __future__ import annotations

import html
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from newsdesk.core.config import Settings, get_settings
from newsdesk.core.logging import get_logger
from newsdesk.schemas.schemas import ExportDocument
from newsdesk.services.docx_export import build_docx, docx_filename
from newsdesk.services.pdf_export import content_html

logger = get_logger(__name__)

DOCX_SUBTYPE = "vnd.openxmlformats-officedocument.wordprocessingml.document"


class EmailService:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def _send(self, msg: MIMEMultipart, recipients: list[str]) -> None:
        """Open SMTP connection, send, close. Raises on failure."""
        s = self.settings
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=30) as smtp:
            smtp.ehlo()
            smtp.starttls()
            smtp.ehlo()
            if s.smtp_user and s.smtp_password:
                smtp.login(s.smtp_user, s.smtp_password)
            smtp.sendmail(s.email_sender, recipients, msg.as_string())

    def send_completion_email(
        self,
        recipient: str,
        *,
        slug: str,
        version: int,
        headline: str,
        status: str,
    ) -> None:
        link = f"{self.settings.public_url.rstrip('/')}/articles/{slug}/{version}"
        body = f"""
        <div style="font-family: -apple-system, BlinkMacSystemFont, sans-serif;
                    max-width: 600px; margin: 0 auto;">
            <h2>Article {html.escape(status)}</h2>
            <p><strong>{html.escape(headline or slug)}</strong></p>
            <p>Slug <code>{html.escape(slug)}</code>, version {version}.</p>
            <p><a href="{html.escape(link)}">Open in the editor</a></p>
        </div>
        """

        msg = MIMEMultipart("mixed")
        msg["Subject"] = f"[{self.settings.organization_name}] {slug} v{version} {status}"
        msg["From"] = self.settings.email_sender
        msg["To"] = recipient
        msg.attach(MIMEText(body, "html", "utf-8"))

        try:
            self._send(msg, [recipient])
            logger.info("completion_email_sent", slug=slug, version=version, status=status)
        except Exception as e:
            logger.error("completion_email_error", slug=slug, version=version, error=str(e))
            raise

    def send_article_export(
        self,
        recipients: list[str],
        document: ExportDocument,
        subject: str | None = None,
    ) -> None:
        blobs = "".join(
            f"<li>{html.escape(blob.strip())}</li>"
            for blob in document.blob.split("\n")
            if blob.strip()
        )
        body = f"""
        <div style="font-family: Georgia, 'Times New Roman', serif; max-width: 680px; margin: 0 auto;">
            <h1 style="text-align: center;">{html.escape(document.headline)}</h1>
            <ul>{blobs}</ul>
            {content_html(document)}
        </div>
        """

        msg = MIMEMultipart("mixed")
        msg["Subject"] = subject or document.headline or document.slug
        msg["From"] = self.settings.email_sender
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(body, "html", "utf-8"))

        attachment = MIMEApplication(build_docx(document), _subtype=DOCX_SUBTYPE)
        attachment.add_header(
            "Content-Disposition", f'attachment; filename="{docx_filename(document)}"'
        )
        msg.attach(attachment)

        try:
            self._send(msg, recipients)
            logger.info("export_email_sent", slug=document.slug, recipients=len(recipients))
        except Exception as e:
            logger.error("export_email_error", slug=document.slug, error=str(e))
            raise
