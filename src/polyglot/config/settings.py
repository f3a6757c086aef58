"""Polyglot configuration management using pydantic-settings.

Loads settings from environment variables (with POLYGLOT_ prefix) and .env files.
Nested settings use '__' as delimiter (e.g., POLYGLOT_ANTHROPIC__API_KEY=sk-ant-xxx).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderSettings(BaseModel):
    """Credentials, defaults, and rate limit for one provider."""

    enabled: bool = True
    api_key: str = ""
    api_url: str | None = None
    model: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    rate_limit_max_tokens: float | None = None
    rate_limit_refill_rate: float | None = None

    @property
    def is_configured(self) -> bool:
        """Enabled and holding an API key."""
        return self.enabled and bool(self.api_key)

    @property
    def is_rate_limited(self) -> bool:
        return self.rate_limit_max_tokens is not None and self.rate_limit_refill_rate is not None


class RetrySettings(BaseModel):
    """Orchestrator retry settings."""

    max_attempts: int = 3
    backoff_seconds: float = 1.0


class HttpSettings(BaseModel):
    """HTTP transport settings shared by all adapters."""

    timeout_seconds: float = 30.0


class CacheSettings(BaseModel):
    """Response cache settings. ``None`` leaves the cache unbounded."""

    max_entries: int | None = None


class LogSettings(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    format: str = "json"


class PolyglotSettings(BaseSettings):
    """Root settings for the Polyglot client.

    Settings are loaded from environment variables with the POLYGLOT_ prefix
    and from .env files. Nested settings use '__' as delimiter.

    Examples:
        POLYGLOT_OPENAI__API_KEY=sk-xxx
        POLYGLOT_GEMINI__MODEL=gemini-1.5-flash
        POLYGLOT_MISTRAL__RATE_LIMIT_MAX_TOKENS=10000
        POLYGLOT_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="POLYGLOT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    openai: ProviderSettings = Field(default_factory=ProviderSettings)
    anthropic: ProviderSettings = Field(default_factory=ProviderSettings)
    gemini: ProviderSettings = Field(default_factory=ProviderSettings)
    mistral: ProviderSettings = Field(default_factory=ProviderSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    log: LogSettings = Field(default_factory=LogSettings)


def get_settings(**overrides: object) -> PolyglotSettings:
    """Create a PolyglotSettings instance with optional overrides."""
    return PolyglotSettings(**overrides)
