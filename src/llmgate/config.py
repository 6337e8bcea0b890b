"""Runtime configuration for the LLMGate service."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="llmgate_", env_file=".env", case_sensitive=False, extra="ignore")

    environment: Literal["dev", "test", "prod"] = "dev"
    log_level: str = "INFO"
    app_title: str = "AI Business Assessment Tool"

    # Providers
    default_provider: str = "claude"
    require_default_credential: bool = False
    anthropic_version: str = "2023-06-01"

    # Upstream calls
    upstream_timeout_seconds: float = 60.0
    max_output_tokens: int = 4000
    disconnect_poll_seconds: float = 0.5

    # Request limits
    max_body_bytes: int = 1024 * 1024

    # Cost reporting; every provider price is read as this currency
    cost_currency: str = "USD"

    # CORS / origin guard
    cors_allow_origins: tuple[str, ...] | str = (
        "https://godagoo.github.io",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    )
    frontend_url: str | None = None
    cors_allow_credentials: bool = True
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("*",)

    # Rate limiting
    rate_limit_requests: int = 10  # per window per client
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_clients: int = 10_000
    trust_forwarded_for: bool = False

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def allowed_origins(self) -> tuple[str, ...]:
        value = self.cors_allow_origins
        if isinstance(value, str):
            value = tuple(part.strip() for part in value.split(","))
        origins = [origin.rstrip("/") for origin in value if origin]
        if self.frontend_url:
            origins.append(self.frontend_url.rstrip("/"))
        return tuple(dict.fromkeys(origins))

    @property
    def referer(self) -> str:
        return self.frontend_url or "https://godagoo.github.io"


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
