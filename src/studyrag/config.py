"""Runtime configuration for the StudyRAG services."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="studyrag_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"

    # Requests without a userId are answered against this owner
    default_user_id: str = "default-user"

    # Keyword ranking policy
    min_token_length: int = Field(default=2, ge=0)
    window_before: int = Field(default=500, ge=0)
    window_after: int = Field(default=1500, ge=1)
    fallback_chars: int = Field(default=2000, ge=1)
    low_confidence_threshold: int = Field(default=2, ge=0)
    top_k: int = Field(default=3, ge=1)

    # Answer synthesis
    max_output_tokens: int = Field(default=500, ge=1)

    # Azure OpenAI
    azure_openai_endpoint: str | None = None
    azure_openai_key: str | None = None
    azure_openai_deployment: str | None = None
    azure_openai_api_version: str = "2024-04-01-preview"

    # Document store
    store_backend: Literal["mongo", "memory"] = "mongo"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "studyrag"
    mongo_collection: str = "documents"
    mongo_timeout_ms: int = 5000

    # Ranking evaluation CLI gates
    evaluation_min_hit_rate: float = 0.5
    evaluation_min_mrr: float = 0.5

    # Upload safety
    allowed_extensions: tuple[str, ...] | str = (".pdf", ".docx", ".txt", ".md")
    max_upload_size_mb: int = 25
    preview_chars: int = Field(default=500, ge=0)

    # CORS
    cors_allow_origins: tuple[str, ...] = ("*",)
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("Content-Type",)

    @property
    def allowed_extensions_tuple(self) -> tuple[str, ...]:
        value = self.allowed_extensions
        if isinstance(value, tuple):
            return value
        if isinstance(value, str):
            parts = [p.strip().lower() for p in value.split(",") if p.strip()]
            return tuple(parts) if parts else (".pdf", ".docx", ".txt")
        return (".pdf", ".docx", ".txt")


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
