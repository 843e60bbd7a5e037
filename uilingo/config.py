"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # Control API
    # ==========================================================================

    api_host: str = "127.0.0.1"
    api_port: int = 8040
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # ==========================================================================
    # Bulk LLM provider (OpenAI-compatible local server)
    # ==========================================================================

    llm_base_url: str = "http://localhost:1234/v1"
    llm_model: str = "qwen3-8b"
    llm_api_key: str = "local"  # Local servers ignore it, the client requires one
    llm_temperature: float = 0.1
    llm_max_tokens: int = 4096
    llm_timeout: float = 25.0
    llm_prompt_prefix: str = "/no_think "

    # ==========================================================================
    # Per-string web provider
    # ==========================================================================

    web_translate_url: str = "https://translate.googleapis.com/translate_a/single"
    web_request_delay: float = 0.08  # ~12 requests/second
    web_timeout: float = 10.0

    # ==========================================================================
    # Orchestration
    # ==========================================================================

    fallback_settle_delay: float = 0.5
    source_language: str = "en"
    cache_path: str = "./data/translation_cache.json"
    source_path: str = ""  # YAML or JSON source dictionary for the API/CLI host

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once, for entry points (CLI, API)."""
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
