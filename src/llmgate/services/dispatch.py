"""Outbound calls to upstream LLM providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import httpx

from llmgate.errors import ProviderNotConfiguredError, UpstreamError, UpstreamParseError
from llmgate.metrics.observability import get_logger
from llmgate.models import AnalysisRequest, AuthScheme, ProviderDescriptor
from llmgate.providers.registry import ProviderRegistry
from llmgate.services.prompt import PromptBuilder, PromptFactory

RawUpstreamResponse = Mapping[str, Any]


@dataclass(frozen=True)
class DispatchConfig:
    """Configuration for upstream dispatch."""

    max_output_tokens: int = 4000
    timeout_seconds: float = 60.0


class Dispatcher(Protocol):
    """Protocol describing upstream dispatch behaviour."""

    async def dispatch(self, request: AnalysisRequest, provider: ProviderDescriptor) -> RawUpstreamResponse:
        """Send the request upstream and return the decoded JSON body."""


def auth_headers(scheme: AuthScheme, credential: str) -> dict[str, str]:
    if scheme is AuthScheme.API_KEY_HEADER:
        return {"x-api-key": credential}
    if scheme is AuthScheme.BEARER:
        return {"Authorization": f"Bearer {credential}"}
    raise ValueError(f"Unsupported auth scheme: {scheme!r}")


def upstream_error_message(response: httpx.Response) -> str:
    """Prefer the provider's own error message, else a generic one."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, Mapping):
        error_field = payload.get("error")
        if isinstance(error_field, Mapping):
            message = error_field.get("message")
            if isinstance(message, str) and message.strip():
                return message
        if isinstance(error_field, str) and error_field.strip():
            return error_field
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return f"upstream error {response.status_code}"


class HttpDispatcher:
    """Sends one POST per analysis request through a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        config: DispatchConfig | None = None,
        prompt_factory: PromptFactory | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or DispatchConfig()
        self._prompt_factory = prompt_factory or PromptBuilder()
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(self._config.timeout_seconds))
        self._logger = get_logger("dispatch")

    def build_payload(self, request: AnalysisRequest, provider: ProviderDescriptor) -> dict[str, Any]:
        prompt = self._prompt_factory(request.structured_answers)
        return {
            "model": provider.model_id,
            "max_tokens": self._config.max_output_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def build_headers(self, provider: ProviderDescriptor, credential: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers.update(provider.extra_headers)
        headers.update(auth_headers(provider.auth_scheme, credential))
        return headers

    async def dispatch(self, request: AnalysisRequest, provider: ProviderDescriptor) -> RawUpstreamResponse:
        credential = self._registry.credential_for(provider)
        if credential is None:
            self._logger.error("provider.not_configured", provider_id=provider.id, credential_key=provider.credential_key)
            raise ProviderNotConfiguredError(provider.id)

        try:
            response = await self._client.post(
                provider.endpoint,
                json=self.build_payload(request, provider),
                headers=self.build_headers(provider, credential),
                timeout=self._config.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            self._logger.warning("upstream.timeout", provider_id=provider.id, detail=str(exc))
            raise UpstreamError("Upstream provider timed out") from exc
        except httpx.HTTPError as exc:
            self._logger.warning("upstream.unreachable", provider_id=provider.id, detail=repr(exc))
            raise UpstreamError("Upstream provider unreachable") from exc

        if not response.is_success:
            message = upstream_error_message(response)
            self._logger.warning("upstream.error", provider_id=provider.id, status=response.status_code, detail=message)
            raise UpstreamError(message, upstream_status=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamParseError("Upstream response is not valid JSON") from exc
        if not isinstance(body, Mapping):
            raise UpstreamParseError("Upstream response is not a JSON object")
        return body

    async def aclose(self) -> None:
        await self._client.aclose()
