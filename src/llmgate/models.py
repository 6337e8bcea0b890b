"""Shared domain models used across the LLMGate pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Mapping, Sequence, Union

AnswerScalar = Union[str, int, float, bool]
AnswerValue = Union[AnswerScalar, Sequence[AnswerScalar]]


class ResponseShape(str, Enum):
    """Which normalization rule applies to a provider's response body."""

    MESSAGE = "message-style"
    CHAT_COMPLETION = "chat-completion-style"


class AuthScheme(str, Enum):
    """How the credential is attached to the outbound request."""

    API_KEY_HEADER = "api-key-header"
    BEARER = "bearer"


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static description of one upstream provider."""

    id: str
    display_name: str
    endpoint: str
    model_id: str
    price_per_million_input_tokens: Decimal
    price_per_million_output_tokens: Decimal
    credential_key: str
    response_shape: ResponseShape
    auth_scheme: AuthScheme
    extra_headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AnalysisRequest:
    """Validated input for one analysis call."""

    structured_answers: Mapping[str, AnswerValue]
    provider_id: str


@dataclass(frozen=True)
class NormalizedUpstreamResult:
    """Provider-independent view of an upstream completion."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class CostEstimate:
    """Derived, non-authoritative cost figure for one call."""

    input_cost: Decimal
    output_cost: Decimal
    currency: str

    @property
    def total_cost(self) -> Decimal:
        return self.input_cost + self.output_cost


@dataclass(frozen=True)
class RateDecision:
    """Outcome of a single rate-limit admission check."""

    allowed: bool
    count: int
    limit: int
    retry_after: float = 0.0
    reset_after: float = 0.0

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Successful pipeline result handed to the response assembler."""

    provider: ProviderDescriptor
    result: NormalizedUpstreamResult
    cost: CostEstimate
    duration_ms: float
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
