"""Upstream provider registry."""

from .registry import (
    CredentialSource,
    EnvironmentCredentialSource,
    MappingCredentialSource,
    ProviderRegistry,
    build_registry,
    default_descriptors,
)

__all__ = [
    "CredentialSource",
    "EnvironmentCredentialSource",
    "MappingCredentialSource",
    "ProviderRegistry",
    "build_registry",
    "default_descriptors",
]
