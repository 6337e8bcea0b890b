"""Error taxonomy for the gateway pipeline.

Every stage either hands off to the next one or raises one of these. The API
layer maps ``kind`` and ``status_code`` onto the failure contract.
"""

from __future__ import annotations

from typing import Iterable


class GatewayError(Exception):
    """Base error for gateway failures surfaced to clients."""

    kind = "internal_error"
    status_code = 500
    public_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)

    @property
    def message(self) -> str:
        return str(self)


class OriginDeniedError(GatewayError):
    """Raised when the declared origin is not on the allow-list."""

    kind = "origin_denied"
    status_code = 400
    public_message = "Origin not permitted"

    def __init__(self) -> None:
        # The allow-list is never echoed back.
        super().__init__(self.public_message)


class RateLimitedError(GatewayError):
    """Raised when a client identity has exhausted its window quota."""

    kind = "rate_limited"
    status_code = 429
    public_message = "Too many requests from this client, please try again later."

    def __init__(self, retry_after: float) -> None:
        super().__init__(self.public_message)
        self.retry_after = retry_after


class ValidationError(GatewayError):
    """Raised for malformed or semantically invalid payloads."""

    kind = "validation_error"
    status_code = 400
    public_message = "Invalid request"


class PayloadTooLargeError(ValidationError):
    status_code = 413
    public_message = "Request body too large"


class UnknownProviderError(ValidationError):
    """Raised when a provider id does not resolve in the registry."""

    def __init__(self, provider_id: str, valid_ids: Iterable[str]) -> None:
        self.provider_id = provider_id
        self.valid_ids = tuple(valid_ids)
        super().__init__(f"Provider must be one of: {', '.join(self.valid_ids)}")


class ConfigurationError(GatewayError):
    """Raised when the gateway itself is misconfigured."""

    kind = "configuration_error"
    status_code = 500
    public_message = "Server is not properly configured. Please contact administrator."


class ProviderNotConfiguredError(ConfigurationError):
    """Raised when the selected provider has no usable credential."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(self.public_message)
        self.provider_id = provider_id


class UpstreamError(GatewayError):
    """Raised when the upstream provider fails or cannot be reached."""

    kind = "upstream_error"
    status_code = 502
    public_message = "Upstream provider error"

    def __init__(self, message: str | None = None, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class UpstreamParseError(UpstreamError):
    """Raised when the upstream response does not match its declared shape."""

    status_code = 500
    public_message = "Upstream response could not be parsed"


class InternalError(GatewayError):
    """Wraps unanticipated failures; detail is logged, never returned."""


class ClientDisconnectedError(GatewayError):
    """Raised when the caller went away before the upstream call finished."""

    kind = "client_disconnected"
    status_code = 499
    public_message = "Client closed request"


__all__ = [
    "ClientDisconnectedError",
    "ConfigurationError",
    "GatewayError",
    "InternalError",
    "OriginDeniedError",
    "PayloadTooLargeError",
    "ProviderNotConfiguredError",
    "RateLimitedError",
    "UnknownProviderError",
    "UpstreamError",
    "UpstreamParseError",
    "ValidationError",
]
