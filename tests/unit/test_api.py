"""Unit tests for FastAPI endpoints."""

from __future__ import annotations

import uuid

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from newsdesk.api.v1.deps import get_llm_client
from newsdesk.api.v1.routes import exports
from newsdesk.core.config import get_settings
from newsdesk.core.security import rate_limit_key
from newsdesk.main import app
from newsdesk.services.email_service import EmailService
from newsdesk.services.rich_content import dump_rich_content, plain_text_to_rich_content

settings = get_settings()

HEADLINE_DRAFT = "Headline: Council passes $4.1B budget\nBlob: Mayor hails vote"
HEADLINE_JSON = '{"headline": "Council passes $4.1B budget", "blobs": ["Mayor hails vote"]}'

DIGEST_RESPONSES = [
    '"This budget protects services," Ruiz said.</quote-list>',
    "<summary>The council approved a $4.1 billion budget.</summary>",
    HEADLINE_DRAFT,
    HEADLINE_JSON,
    '{"outline": ["Council approves budget (AP)"]}',
    '{"article": "The council approved the budget."}',
    '{"paraphrasedArticle": "The council passed the budget (AP)."}',
    "The council passed the budget.\n</output>",
]

STEP_ROUTES = [
    "/api/v1/steps/01-extract-fact-quotes",
    "/api/v1/steps/02-summarize-facts",
    "/api/v1/steps/03-write-headline-and-blobs",
    "/api/v1/steps/04-write-article-outline",
    "/api/v1/steps/05-write-article",
    "/api/v1/steps/06-paraphrase-article",
    "/api/v1/steps/07-sentence-per-line-attribution",
    "/api/v1/steps/digest-verbatim",
    "/api/v1/aggregate-steps/01-facts-bit-splitting",
    "/api/v1/aggregate-steps/02-facts-bit-splitting-2",
    "/api/v1/aggregate-steps/03-headlines-blobs",
    "/api/v1/aggregate-steps/04-write-article-outline",
    "/api/v1/aggregate-steps/05-write-article",
    "/api/v1/aggregate-steps/06-rewrite-article",
    "/api/v1/aggregate-steps/07-rewrite-article-2",
    "/api/v1/aggregate-steps/08-color-code",
]


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-API-Key": settings.api_key}


@pytest.fixture
def use_llm():
    def _use(llm) -> None:
        app.dependency_overrides[get_llm_client] = lambda: llm

    return _use


def _slug() -> str:
    return f"story-{uuid.uuid4().hex[:8]}"


class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        resp = client.get("/healthz/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert resp.json()["database"] == "connected"

    def test_health_includes_environment(self, client):
        assert "environment" in client.get("/healthz/").json()


class TestRootEndpoint:
    def test_root_returns_service_info(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["service"] == "Newsdesk"


class TestStepEndpoints:
    def test_requires_api_key(self, client):
        resp = client.post(STEP_ROUTES[0], json={"sourceText": "text"})
        assert resp.status_code == 403

    @pytest.mark.parametrize("route", STEP_ROUTES)
    def test_empty_payload_is_400(self, client, auth_headers, use_llm, make_llm, route):
        use_llm(make_llm(["unused"]))
        resp = client.post(route, json={}, headers=auth_headers)
        assert resp.status_code == 400
        assert isinstance(resp.json(), dict)

    def test_extract_quotes_success(self, client, auth_headers, use_llm, make_llm):
        use_llm(make_llm(['"Quote," she said.</quote-list>']))
        resp = client.post(
            "/api/v1/steps/01-extract-fact-quotes",
            json={"sourceAccredit": "AP", "sourceText": "Body text"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["quotes"] == '"Quote," she said.'

    def test_headline_response_is_camel_case(self, client, auth_headers, use_llm, make_llm):
        use_llm(make_llm([HEADLINE_DRAFT, HEADLINE_JSON]))
        resp = client.post(
            "/api/v1/steps/03-write-headline-and-blobs",
            json={"blobs": 1, "sourceText": "Body", "summarizeFacts": "Summary"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["headline"] == "Council passes $4.1B budget"
        assert resp.json()["usage"][0].keys() >= {"inputTokens", "outputTokens"}

    @pytest.mark.parametrize(
        ("route", "payload"),
        [
            ("/api/v1/steps/02-summarize-facts", {"sourceText": "Body"}),
            ("/api/v1/steps/digest-verbatim", {"sourceText": "Body"}),
            ("/api/v1/aggregate-steps/01-facts-bit-splitting", {"sources": [{"number": 1, "text": "Body"}]}),
            (
                "/api/v1/aggregate-steps/06-rewrite-article",
                {"sources": [], "articleStepOutputs": {"writeArticle": {"text": "Draft"}}},
            ),
        ],
    )
    def test_model_failure_is_500(self, client, auth_headers, use_llm, failing_llm, route, payload):
        use_llm(failing_llm)
        resp = client.post(route, json=payload, headers=auth_headers)
        assert resp.status_code == 500

    def test_too_many_sources_is_400(self, client, auth_headers, use_llm, make_llm):
        use_llm(make_llm(["unused"]))
        sources = [{"number": n, "text": f"text {n}"} for n in range(1, 8)]
        resp = client.post(
            "/api/v1/aggregate-steps/01-facts-bit-splitting", json={"sources": sources}, headers=auth_headers
        )
        assert resp.status_code == 400


class TestRunsEndpoint:
    def test_trigger_requires_api_key(self, client):
        resp = client.post("/api/v1/runs/digest", json={})
        assert resp.status_code == 403

    def test_invalid_body_is_422(self, client, auth_headers):
        resp = client.post("/api/v1/runs/digest", json={"slug": "x"}, headers=auth_headers)
        assert resp.status_code == 422

    def test_digest_run_end_to_end(self, client, auth_headers, use_llm, make_llm):
        use_llm(make_llm(DIGEST_RESPONSES))
        slug = _slug()
        resp = client.post(
            "/api/v1/runs/digest",
            json={"slug": slug, "source": {"accredit": "AP", "text": "Body text"}, "blobs": "1"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "started"
        assert data["version"] == 1

        # background task has finished by the time TestClient returns
        run = client.get(f"/api/v1/runs/{data['runId']}", headers=auth_headers).json()
        assert run["status"] == "completed"
        assert run["runType"] == "digest"
        assert run["completedAt"] is not None

        article = client.get(f"/api/v1/articles/{slug}/1", headers=auth_headers).json()
        assert article["headline"] == "Council passes $4.1B budget"
        assert article["blob"] == "Mayor hails vote"
        assert article["content"] == "The council passed the budget."
        assert article["sourceType"] == "single"

    def test_failed_run_is_recorded(self, client, auth_headers, use_llm, failing_llm):
        use_llm(failing_llm)
        slug = _slug()
        data = client.post(
            "/api/v1/runs/digest",
            json={"slug": slug, "source": {"text": "Body text"}},
            headers=auth_headers,
        ).json()

        run = client.get(f"/api/v1/runs/{data['runId']}", headers=auth_headers).json()
        assert run["status"] == "failed"
        assert run["failedStep"] == "extract_quotes"

        article = client.get(f"/api/v1/articles/{slug}/1", headers=auth_headers).json()
        assert article["status"] == "failed"
        assert article["content"] is None

    def test_versions_increment(self, client, auth_headers, use_llm, failing_llm):
        use_llm(failing_llm)
        slug = _slug()
        body = {"slug": slug, "source": {"text": "Body text"}}
        first = client.post("/api/v1/runs/digest", json=body, headers=auth_headers).json()
        second = client.post("/api/v1/runs/digest", json=body, headers=auth_headers).json()
        assert (first["version"], second["version"]) == (1, 2)

        versions = client.get(f"/api/v1/articles/{slug}", headers=auth_headers).json()
        assert [v["version"] for v in versions] == [2, 1]

    def test_aggregate_with_too_many_sources_is_400(self, client, auth_headers, use_llm, failing_llm):
        use_llm(failing_llm)
        sources = [{"number": n, "text": f"text {n}"} for n in range(1, 8)]
        resp = client.post(
            "/api/v1/runs/aggregate", json={"slug": _slug(), "sources": sources}, headers=auth_headers
        )
        assert resp.status_code == 400

    def test_get_unknown_run_returns_404(self, client, auth_headers):
        resp = client.get("/api/v1/runs/nonexistent-id", headers=auth_headers)
        assert resp.status_code == 404


class TestArticleEndpoints:
    def test_unknown_slug_is_404(self, client, auth_headers):
        assert client.get(f"/api/v1/articles/{_slug()}", headers=auth_headers).status_code == 404
        assert client.get(f"/api/v1/articles/{_slug()}/3", headers=auth_headers).status_code == 404

    def test_create_and_list_presets(self, client, auth_headers):
        name = f"preset-{uuid.uuid4().hex[:8]}"
        resp = client.post(
            "/api/v1/presets",
            json={"name": name, "instructions": "Keep it short", "blobs": "2", "length": "100-250"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["blobs"] == "2"

        duplicate = client.post("/api/v1/presets", json={"name": name}, headers=auth_headers)
        assert duplicate.status_code == 409

        names = [p["name"] for p in client.get("/api/v1/presets", headers=auth_headers).json()]
        assert name in names


class TestExportEndpoints:
    def test_docx_requires_content(self, client, auth_headers):
        resp = client.post("/api/v1/export/docx", json={"headline": "H", "slug": "s"}, headers=auth_headers)
        assert resp.status_code == 400

    def test_docx_download(self, client, auth_headers):
        resp = client.post(
            "/api/v1/export/docx",
            json={
                "headline": "Council passes budget",
                "blob": "Mayor hails vote",
                "richContent": dump_rich_content(plain_text_to_rich_content("Body line.")),
                "slug": "council-budget",
                "version": 3,
            },
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.content[:2] == b"PK"
        assert resp.headers["content-disposition"] == 'attachment; filename="council-budget-v3.0.docx"'

    def test_pdf_requires_headline_slug_and_version(self, client, auth_headers):
        resp = client.post(
            "/api/v1/export/pdf", json={"headline": "H", "slug": "s"}, headers=auth_headers
        )
        assert resp.status_code == 400

    def test_email_requires_recipient(self, client, auth_headers):
        resp = client.post(
            "/api/v1/export/email", json={"to": [" "], "headline": "H", "content": "Body"}, headers=auth_headers
        )
        assert resp.status_code == 400

    def test_email_unconfigured_is_503(self, client, auth_headers):
        resp = client.post(
            "/api/v1/export/email",
            json={"to": ["editor@example.com"], "headline": "H", "content": "Body"},
            headers=auth_headers,
        )
        assert resp.status_code == 503

    def test_email_send_failure_is_502_and_logged(self, client, auth_headers, monkeypatch):
        errors: list[tuple[str, dict]] = []

        class RecordingLogger:
            def error(self, event: str, **kw) -> None:
                errors.append((event, kw))

        def refuse(self, msg, recipients):
            raise OSError("connection refused")

        monkeypatch.setattr(exports, "logger", RecordingLogger())
        monkeypatch.setattr(EmailService, "_send", refuse)
        app.dependency_overrides[get_settings] = lambda: settings.model_copy(
            update={"smtp_user": "desk", "smtp_password": "secret"}
        )
        resp = client.post(
            "/api/v1/export/email",
            json={"to": ["editor@example.com"], "headline": "H", "content": "Body", "slug": "council-budget"},
            headers=auth_headers,
        )
        assert resp.status_code == 502
        assert errors[0][0] == "email_export_failed"
        assert errors[0][1]["error"] == "connection refused"


class TestSourceTextEndpoint:
    def test_invalid_url_is_400(self, client, auth_headers):
        resp = client.post("/api/v1/source-text", json={"url": "not-a-url"}, headers=auth_headers)
        assert resp.status_code == 400

    def test_metadata_address_is_400(self, client, auth_headers):
        resp = client.post(
            "/api/v1/source-text",
            json={"url": "http://169.254.169.254/latest/meta-data/"},
            headers=auth_headers,
        )
        assert resp.status_code == 400

    def test_requires_api_key(self, client):
        assert client.post("/api/v1/source-text", json={"url": "https://example.com"}).status_code == 403


class TestRateLimitKey:
    def _request(self, headers: list[tuple[bytes, bytes]]) -> Request:
        return Request({"type": "http", "headers": headers, "client": ("10.0.0.7", 5000)})

    def test_keyed_by_api_key_digest(self):
        key = rate_limit_key(self._request([(b"x-api-key", b"secret-key")]))
        assert key.startswith("key:")
        assert "secret-key" not in key

    def test_anonymous_falls_back_to_ip(self):
        assert rate_limit_key(self._request([])) == "ip:10.0.0.7"
