"""Provider registry and credential lookup."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Protocol, Sequence

from dotenv import dotenv_values

from llmgate.config import Settings
from llmgate.errors import ConfigurationError, UnknownProviderError
from llmgate.models import AuthScheme, ProviderDescriptor, ResponseShape

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
OPENROUTER_CHAT_URL = "https://openrouter.ai/api/v1/chat/completions"


class CredentialSource(Protocol):
    """Resolve a named secret; ``None`` when it is not available."""

    def get(self, key: str) -> str | None:
        """Return the secret stored under ``key``."""


class EnvironmentCredentialSource:
    """Reads credentials from the process environment, falling back to a dotenv file."""

    def __init__(self, environ: Mapping[str, str] | None = None, *, env_file: str | Path | None = None) -> None:
        self._environ = environ if environ is not None else os.environ
        self._file_values: dict[str, str] = {}
        if env_file is not None and Path(env_file).is_file():
            self._file_values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}

    def get(self, key: str) -> str | None:
        value = self._environ.get(key)
        if value is None or not value.strip():
            value = self._file_values.get(key)
        if value is None or not value.strip():
            return None
        return value.strip()


class MappingCredentialSource:
    """In-memory credential source, used by tests and embedding callers."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str) -> str | None:
        value = self._values.get(key)
        return value or None


class ProviderRegistry:
    """Immutable table of upstream providers."""

    def __init__(
        self,
        descriptors: Iterable[ProviderDescriptor],
        *,
        credentials: CredentialSource,
        default_id: str,
    ) -> None:
        table: dict[str, ProviderDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in table:
                raise ValueError(f"Duplicate provider id: {descriptor.id}")
            table[descriptor.id] = descriptor
        if default_id not in table:
            raise ConfigurationError(f"Default provider {default_id!r} is not registered")
        self._providers = table
        self._credentials = credentials
        self._default_id = default_id

    def lookup(self, provider_id: str) -> ProviderDescriptor:
        try:
            return self._providers[provider_id]
        except KeyError:
            raise UnknownProviderError(provider_id, self.ids()) from None

    def ids(self) -> tuple[str, ...]:
        return tuple(self._providers)

    def all(self) -> Sequence[ProviderDescriptor]:
        return tuple(self._providers.values())

    def default_id(self) -> str:
        return self._default_id

    def credential_for(self, descriptor: ProviderDescriptor) -> str | None:
        return self._credentials.get(descriptor.credential_key)

    def is_available(self, provider_id: str) -> bool:
        return self.credential_for(self.lookup(provider_id)) is not None

    def list_available(self) -> Sequence[ProviderDescriptor]:
        return tuple(d for d in self._providers.values() if self.credential_for(d) is not None)

    @property
    def degraded(self) -> bool:
        """True when the default provider cannot be called."""
        return not self.is_available(self._default_id)


def default_descriptors(settings: Settings) -> list[ProviderDescriptor]:
    """Built-in provider table."""

    anthropic_headers = {"anthropic-version": settings.anthropic_version}
    openrouter_headers = {"HTTP-Referer": settings.referer, "X-Title": settings.app_title}
    return [
        ProviderDescriptor(
            id="claude",
            display_name="Claude (Direct)",
            endpoint=ANTHROPIC_MESSAGES_URL,
            model_id="claude-sonnet-4-20250514",
            price_per_million_input_tokens=Decimal("3.00"),
            price_per_million_output_tokens=Decimal("15.00"),
            credential_key="ANTHROPIC_API_KEY",
            response_shape=ResponseShape.MESSAGE,
            auth_scheme=AuthScheme.API_KEY_HEADER,
            extra_headers=MappingProxyType(dict(anthropic_headers)),
        ),
        ProviderDescriptor(
            id="openrouter_claude",
            display_name="Claude (via OpenRouter)",
            endpoint=OPENROUTER_CHAT_URL,
            model_id="anthropic/claude-sonnet-4",
            price_per_million_input_tokens=Decimal("3.00"),
            price_per_million_output_tokens=Decimal("15.00"),
            credential_key="OPENROUTER_API_KEY",
            response_shape=ResponseShape.CHAT_COMPLETION,
            auth_scheme=AuthScheme.BEARER,
            extra_headers=MappingProxyType(dict(openrouter_headers)),
        ),
        ProviderDescriptor(
            id="openrouter_gpt4",
            display_name="GPT-4 Turbo (via OpenRouter)",
            endpoint=OPENROUTER_CHAT_URL,
            model_id="openai/gpt-4-turbo",
            price_per_million_input_tokens=Decimal("10.00"),
            price_per_million_output_tokens=Decimal("30.00"),
            credential_key="OPENROUTER_API_KEY",
            response_shape=ResponseShape.CHAT_COMPLETION,
            auth_scheme=AuthScheme.BEARER,
            extra_headers=MappingProxyType(dict(openrouter_headers)),
        ),
        ProviderDescriptor(
            id="openrouter_haiku",
            display_name="Claude Haiku (via OpenRouter)",
            endpoint=OPENROUTER_CHAT_URL,
            model_id="anthropic/claude-3.5-haiku",
            price_per_million_input_tokens=Decimal("0.80"),
            price_per_million_output_tokens=Decimal("4.00"),
            credential_key="OPENROUTER_API_KEY",
            response_shape=ResponseShape.CHAT_COMPLETION,
            auth_scheme=AuthScheme.BEARER,
            extra_headers=MappingProxyType(dict(openrouter_headers)),
        ),
    ]


def build_registry(settings: Settings, credentials: CredentialSource | None = None) -> ProviderRegistry:
    if credentials is None:
        credentials = EnvironmentCredentialSource(env_file=".env")
    return ProviderRegistry(
        default_descriptors(settings),
        credentials=credentials,
        default_id=settings.default_provider,
    )
