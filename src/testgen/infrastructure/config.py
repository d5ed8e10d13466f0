"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file).

    ``openai_api_key`` is optional here: only generation actions need it, and
    they raise :class:`~testgen.domain.exceptions.ConfigurationError` when it
    is missing.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    llm_top_p: float = 0.95
    llm_max_output_tokens: int = 2048
    generation_backend: Literal["openai", "offline"] = "openai"
    github_api_url: str = "https://api.github.com"
    repository_page_size: int = 100
    tree_concurrency: int = 8
    max_sessions: int = 256
    suite_store_path: str = "testgen-suites.json"
    suite_store_key: str = "testgen-suites"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
