from __future__ import annotations

from decimal import Decimal

import pytest

from llmgate.config import Settings
from llmgate.errors import ConfigurationError, UnknownProviderError, ValidationError
from llmgate.models import AuthScheme, ProviderDescriptor, ResponseShape
from llmgate.providers import (
    EnvironmentCredentialSource,
    MappingCredentialSource,
    ProviderRegistry,
    build_registry,
    default_descriptors,
)


def _descriptor(provider_id: str, key: str = "KEY") -> ProviderDescriptor:
    return ProviderDescriptor(
        id=provider_id,
        display_name=provider_id.title(),
        endpoint="https://upstream.test/v1",
        model_id="model-x",
        price_per_million_input_tokens=Decimal("1"),
        price_per_million_output_tokens=Decimal("2"),
        credential_key=key,
        response_shape=ResponseShape.CHAT_COMPLETION,
        auth_scheme=AuthScheme.BEARER,
    )


def test_builtin_table_has_unique_ids_and_claude_pricing():
    descriptors = default_descriptors(Settings(environment="test"))
    ids = [d.id for d in descriptors]
    assert len(ids) == len(set(ids))
    assert set(ids) == {"claude", "openrouter_claude", "openrouter_gpt4", "openrouter_haiku"}
    claude = next(d for d in descriptors if d.id == "claude")
    assert claude.price_per_million_input_tokens == Decimal("3.00")
    assert claude.price_per_million_output_tokens == Decimal("15.00")
    assert claude.response_shape is ResponseShape.MESSAGE
    assert claude.auth_scheme is AuthScheme.API_KEY_HEADER


def test_duplicate_ids_are_rejected():
    with pytest.raises(ValueError):
        ProviderRegistry(
            [_descriptor("a"), _descriptor("a")],
            credentials=MappingCredentialSource(),
            default_id="a",
        )


def test_unregistered_default_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        ProviderRegistry([_descriptor("a")], credentials=MappingCredentialSource(), default_id="b")


def test_lookup_unknown_lists_valid_ids():
    registry = ProviderRegistry(
        [_descriptor("a"), _descriptor("b")],
        credentials=MappingCredentialSource(),
        default_id="a",
    )
    with pytest.raises(UnknownProviderError) as excinfo:
        registry.lookup("zzz")
    assert isinstance(excinfo.value, ValidationError)
    assert "a, b" in excinfo.value.message


def test_list_available_filters_on_credentials():
    registry = ProviderRegistry(
        [_descriptor("a", key="A_KEY"), _descriptor("b", key="B_KEY")],
        credentials=MappingCredentialSource({"B_KEY": "secret"}),
        default_id="a",
    )
    assert [d.id for d in registry.list_available()] == ["b"]
    assert registry.degraded
    assert registry.credential_for(registry.lookup("b")) == "secret"


def test_registry_healthy_when_default_has_credential():
    registry = build_registry(
        Settings(environment="test"),
        MappingCredentialSource({"ANTHROPIC_API_KEY": "sk-test"}),
    )
    assert not registry.degraded
    assert registry.default_id() == "claude"
    assert [d.id for d in registry.list_available()] == ["claude"]


def test_environment_source_treats_blank_values_as_absent():
    source = EnvironmentCredentialSource({"SET": "  value ", "BLANK": "   "})
    assert source.get("SET") == "value"
    assert source.get("BLANK") is None
    assert source.get("MISSING") is None


def test_environment_source_falls_back_to_dotenv_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("ANTHROPIC_API_KEY=from-file\nOPENROUTER_API_KEY=\n", encoding="utf-8")
    source = EnvironmentCredentialSource({"OPENROUTER_API_KEY": "from-env"}, env_file=env_file)
    assert source.get("ANTHROPIC_API_KEY") == "from-file"
    assert source.get("OPENROUTER_API_KEY") == "from-env"


def test_builtin_descriptor_headers_are_read_only_and_not_shared():
    descriptors = {d.id: d for d in default_descriptors(Settings(environment="test"))}
    gpt4 = descriptors["openrouter_gpt4"]
    haiku = descriptors["openrouter_haiku"]
    with pytest.raises(TypeError):
        gpt4.extra_headers["X-Title"] = "changed"  # type: ignore[index]
    assert gpt4.extra_headers is not haiku.extra_headers
    assert haiku.extra_headers["X-Title"] == "AI Business Assessment Tool"
