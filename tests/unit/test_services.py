"""Unit tests for configuration, logging, source fetching and email composition."""

from __future__ import annotations

import httpx
import pytest

from newsdesk.core.config import Settings
from newsdesk.core.errors import InvalidSourceUrl, SourceFetchError
from newsdesk.core.logging import _prompt_truncator
from newsdesk.schemas.schemas import ExportDocument
from newsdesk.services import source_fetcher
from newsdesk.services.email_service import EmailService
from newsdesk.services.source_fetcher import extract_text, fetch_source_text, validate_url

ARTICLE_PAGE = """
<html><head><script>var tracking = 1;</script></head>
<body>
  <nav><p>Home | World | Sports</p></nav>
  <article>
    <p>The council approved the budget on Tuesday.</p>
    <p>  Mayor Dana Ruiz praised the vote.  </p>
  </article>
  <footer><p>Copyright</p></footer>
</body></html>
"""


class TestSettings:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("postgres://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("sqlite+aiosqlite:///./dev.db", "sqlite+aiosqlite:///./dev.db"),
        ],
    )
    def test_database_url_is_normalized(self, url, expected):
        assert Settings(_env_file=None, database_url=url).database_url == expected

    def test_is_sqlite(self):
        assert Settings(_env_file=None, database_url="sqlite+aiosqlite:///x.db").is_sqlite
        assert not Settings(_env_file=None, database_url="postgres://h/db").is_sqlite

    def test_email_enabled_needs_credentials(self):
        assert not Settings(_env_file=None, smtp_user="", smtp_password="").email_enabled
        assert Settings(_env_file=None, smtp_user="desk", smtp_password="secret").email_enabled

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, llm_max_attempts=0)


class TestSourceFetcher:
    @pytest.fixture(autouse=True)
    def public_dns(self, monkeypatch):
        resolved = {"news.example.com": ["93.184.215.14"], "internal.example.com": ["10.0.0.5"]}

        async def resolve(host: str, port: int) -> list[str]:
            return resolved[host]

        monkeypatch.setattr(source_fetcher, "_resolve_host", resolve)

    @pytest.mark.parametrize("url", ["", "example.com/story", "ftp://example.com/x", "https://"])
    def test_invalid_urls_are_rejected(self, url):
        with pytest.raises(InvalidSourceUrl):
            validate_url(url)

    def test_extract_prefers_article_paragraphs(self):
        assert extract_text(ARTICLE_PAGE) == (
            "The council approved the budget on Tuesday.\n\nMayor Dana Ruiz praised the vote."
        )

    def test_extract_without_paragraphs_uses_lines(self):
        assert extract_text("<html><body><div>One</div><div>Two</div></body></html>") == "One\n\nTwo"

    async def test_fetch_returns_article_text(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=ARTICLE_PAGE))
        text = await fetch_source_text("https://news.example.com/story", transport=transport)
        assert text.startswith("The council approved the budget")

    async def test_http_error_is_wrapped(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text="gone"))
        with pytest.raises(SourceFetchError):
            await fetch_source_text("https://news.example.com/missing", transport=transport)

    @pytest.mark.parametrize(
        "url",
        [
            "http://169.254.169.254/latest/meta-data/",
            "http://127.0.0.1:8000/admin",
            "http://[::1]/",
            "http://192.168.1.10/router",
            "http://internal.example.com/wiki",
        ],
    )
    async def test_non_public_hosts_are_refused(self, url):
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text="secret-metadata-token")

        with pytest.raises(InvalidSourceUrl):
            await fetch_source_text(url, transport=httpx.MockTransport(handler))
        assert requested == []

    async def test_redirect_to_private_host_is_refused(self):
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(302, headers={"Location": "http://169.254.169.254/latest/meta-data/"})

        with pytest.raises(InvalidSourceUrl):
            await fetch_source_text("https://news.example.com/story", transport=httpx.MockTransport(handler))
        assert requested == ["https://news.example.com/story"]

    async def test_public_redirect_is_followed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "/story"})
            return httpx.Response(200, text=ARTICLE_PAGE)

        text = await fetch_source_text("https://news.example.com/old", transport=httpx.MockTransport(handler))
        assert text.startswith("The council approved the budget")

    async def test_redirect_loop_is_a_fetch_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(302, headers={"Location": "/again"}))
        with pytest.raises(SourceFetchError, match="Too many redirects"):
            await fetch_source_text("https://news.example.com/loop", transport=transport)


class TestEmailService:
    @pytest.fixture
    def sent(self, monkeypatch):
        outbox: list[tuple] = []
        monkeypatch.setattr(EmailService, "_send", lambda self, msg, recipients: outbox.append((msg, recipients)))
        return outbox

    def test_completion_email(self, sent):
        settings = Settings(_env_file=None, organization_name="Metro Desk", public_url="https://desk.example/")
        EmailService(settings).send_completion_email(
            "editor@example.com", slug="council-budget", version=2, headline="Budget passes", status="completed"
        )
        msg, recipients = sent[0]
        assert recipients == ["editor@example.com"]
        assert msg["Subject"] == "[Metro Desk] council-budget v2 completed"
        body = msg.get_payload()[0].get_payload(decode=True).decode("utf-8")
        assert "https://desk.example/articles/council-budget/2" in body

    def test_export_email_attaches_docx(self, sent):
        document = ExportDocument(
            headline="Budget passes", blob="Mayor hails vote", content="Body line.", slug="council-budget", version=1
        )
        EmailService(Settings(_env_file=None)).send_article_export(["a@example.com", "b@example.com"], document)
        msg, recipients = sent[0]
        assert recipients == ["a@example.com", "b@example.com"]
        assert msg["Subject"] == "Budget passes"
        filenames = [part.get_filename() for part in msg.walk() if part.get_filename()]
        assert filenames == ["council-budget-v1.0.docx"]

    def test_send_failure_propagates(self, monkeypatch):
        def boom(self, msg, recipients):
            raise OSError("connection refused")

        monkeypatch.setattr(EmailService, "_send", boom)
        with pytest.raises(OSError):
            EmailService(Settings(_env_file=None)).send_completion_email(
                "editor@example.com", slug="s", version=1, headline="", status="failed"
            )


class TestLogging:
    def test_long_prompts_are_truncated(self):
        event = _prompt_truncator(10)(None, "debug", {"user_prompt": "x" * 25, "step": "s" * 25})
        assert event["user_prompt"] == "x" * 10 + "... [15 chars truncated]"
        assert event["step"] == "s" * 25

    def test_zero_limit_keeps_everything(self):
        event = _prompt_truncator(0)(None, "debug", {"response": "y" * 50})
        assert event["response"] == "y" * 50
