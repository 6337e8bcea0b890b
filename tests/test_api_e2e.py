from __future__ import annotations

import json

import httpx
from fastapi.testclient import TestClient

from llmgate.api.app import build_dependencies, create_app
from llmgate.config import Settings
from llmgate.providers import MappingCredentialSource, build_registry
from llmgate.services import DispatchConfig, HttpDispatcher


def make_app(handler, credentials=None) -> TestClient:
    settings = Settings(environment="test", rate_limit_requests=1000)
    source = MappingCredentialSource(credentials or {"ANTHROPIC_API_KEY": "sk-ant", "OPENROUTER_API_KEY": "sk-or"})
    dispatcher = HttpDispatcher(
        build_registry(settings, source),
        config=DispatchConfig(max_output_tokens=settings.max_output_tokens, timeout_seconds=5),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    deps = build_dependencies(settings, credentials=source, dispatcher=dispatcher)
    return TestClient(create_app(settings=settings, dependencies=deps))


def test_message_and_chat_providers_flow_through_one_contract():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.anthropic.com":
            return httpx.Response(
                200,
                json={"content": [{"type": "text", "text": "Direct report"}], "usage": {"input_tokens": 1000, "output_tokens": 2000}},
            )
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"role": "assistant", "content": "Routed report"}}],
                "usage": {"prompt_tokens": 1000, "completion_tokens": 2000},
            },
        )

    client = make_app(handler)

    direct = client.post("/analyze", json={"structuredAnswers": {"industry": ["saas"]}})
    assert direct.status_code == 200, direct.text
    assert direct.json()["analysis"] == "Direct report"
    assert direct.json()["metadata"]["cost"]["total"] == 0.033

    routed = client.post("/analyze", json={"structuredAnswers": {"industry": ["saas"]}, "providerId": "openrouter_haiku"})
    assert routed.status_code == 200, routed.text
    metadata = routed.json()["metadata"]
    assert routed.json()["analysis"] == "Routed report"
    assert metadata["model"] == "anthropic/claude-3.5-haiku"
    assert metadata["tokens"]["total"] == 3000
    assert metadata["cost"]["input"] == 0.0008
    assert metadata["cost"]["output"] == 0.008


def test_prompt_carries_structured_answers():
    captured: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(200, json={"content": [{"text": "ok"}]})

    client = make_app(handler)
    response = client.post("/analyze", json={"structuredAnswers": {"business_location": "EU", "industry": ["saas"]}})
    assert response.status_code == 200
    prompt = captured[0]["messages"][0]["content"]
    assert '"business_location": "EU"' in prompt
    assert captured[0]["max_tokens"] == 4000


def test_upstream_auth_failure_surfaces_provider_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"type": "error", "error": {"type": "authentication_error", "message": "invalid x-api-key"}})

    client = make_app(handler)
    response = client.post("/analyze", json={"structuredAnswers": {"q": "a"}})
    assert response.status_code == 502
    assert response.json()["message"] == "invalid x-api-key"


def test_unconfigured_provider_is_generic_500():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    client = make_app(handler, credentials={"ANTHROPIC_API_KEY": "sk-ant"})
    response = client.post("/analyze", json={"structuredAnswers": {"q": "a"}, "providerId": "openrouter_claude"})
    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "configuration_error"
    assert "OPENROUTER" not in payload["message"]
    assert not calls
