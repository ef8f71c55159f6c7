"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False
    log_level: str = "INFO"

    # ── Upstream stream server ───────────────────────────────
    stream_base_url: str = "http://localhost:8080"
    news_endpoint: str = "/api/generate-summaries"
    grok_endpoint: str = "/api/run-grok-prompts"
    pplx_endpoint: str = "/api/run-pplx-queries"
    stream_connect_timeout: float = 10.0  # seconds
    # None = wait indefinitely for the next chunk; timeout policy is the caller's
    stream_read_timeout: float | None = None
    stream_encoding: str = "utf-8"

    # ── Summary persistence ──────────────────────────────────
    summary_store_type: str = "memory"  # "memory" or "redis"
    redis_url: str = ""  # e.g. redis://:password@host:6379/0
    summary_key: str = "lastSummaryMarkdown"
    summary_ttl: int = 0  # seconds, 0 = keep forever


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
