"""
Centralised configuration via Pydantic Settings.

Reads from .env in dev and from the platform's environment variables in production.
Every tunable the pipeline uses (model routing, retry bound, cost guardrails,
export labels, SMTP) lives here so step handlers never read os.environ directly.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore platform-injected vars we don't need
    )

    # ── Application ─────────────────────────────────────────
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    log_prompt_chars: int = 4000  # 0 logs prompts and replies in full
    cors_origins: list[str] = ["http://localhost:3000"]

    # ── Database ────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./dev.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def assemble_db_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgres:// but SQLAlchemy needs postgresql+asyncpg://."""
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+asyncpg://", 1)
        elif v.startswith("postgresql://"):
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url

    # ── LLM: Gemini ────────────────────────────────────────
    google_api_key: str = ""

    # Model routing
    model_extractor: str = "gemini-2.5-flash"  # quotes, fact splitting, line formatting
    model_writer: str = "gemini-2.5-pro"  # headlines, outlines, drafts, rewrites
    model_structurer: str = "gemini-2.5-flash"  # JSON re-parsing passes

    llm_max_attempts: int = Field(default=3, ge=1, description="Attempts per model call")
    llm_timeout_seconds: float = 120.0

    # USD per million tokens, used for run totals
    input_cost_per_million: float = 1.25
    output_cost_per_million: float = 10.0

    # ── Pipeline tunables ───────────────────────────────────
    max_sources: int = 6
    min_article_chars: int = 100

    # ── Cost guardrails ─────────────────────────────────────
    max_cost_per_run: float = Field(
        default=5.0, description="Hard stop if estimated cost exceeds this ($)"
    )
    max_tokens_per_run: int = Field(default=2_000_000, description="Hard stop on total tokens")

    # ── Security ────────────────────────────────────────────
    api_key: str = "change-me"
    run_rate_limit: str = "30/minute"

    # ── Export ──────────────────────────────────────────────
    organization_name: str = "Newsdesk"
    public_url: str = "http://localhost:3000"

    # ── Email (SMTP) ────────────────────────────────────────
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    email_sender: str = "newsdesk@example.com"

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)


@lru_cache
def get_settings() -> Settings:
    return Settings()
