"""Pydantic models for the LLMGate API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from llmgate.models import AnalysisOutcome, ProviderDescriptor


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(CamelModel):
    status: Literal["healthy", "degraded"]
    uptime_seconds: float = Field(..., ge=0)
    timestamp: str
    version: str
    environment: str


class ProviderSummary(CamelModel):
    id: str
    display_name: str
    model: str
    price_per_million_input_tokens: float
    price_per_million_output_tokens: float
    available: bool

    @classmethod
    def from_descriptor(cls, descriptor: ProviderDescriptor, *, available: bool) -> "ProviderSummary":
        return cls(
            id=descriptor.id,
            display_name=descriptor.display_name,
            model=descriptor.model_id,
            price_per_million_input_tokens=float(descriptor.price_per_million_input_tokens),
            price_per_million_output_tokens=float(descriptor.price_per_million_output_tokens),
            available=available,
        )


class ProvidersResponse(CamelModel):
    providers: List[ProviderSummary]
    default_id: str


class TokenUsage(CamelModel):
    input: int = Field(..., ge=0)
    output: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class CostBreakdown(CamelModel):
    input: float
    output: float
    total: float
    currency: str = Field(..., description="Gateway-wide currency; no conversion is applied")


class AnalysisMetadata(CamelModel):
    provider: str = Field(..., description="Display name of the provider used")
    provider_id: str
    model: str
    tokens: TokenUsage
    cost: CostBreakdown
    duration_ms: float
    timestamp: str


class AnalysisResponse(CamelModel):
    success: Literal[True] = True
    analysis: str
    metadata: AnalysisMetadata

    @classmethod
    def from_outcome(cls, outcome: AnalysisOutcome) -> "AnalysisResponse":
        result = outcome.result
        cost = outcome.cost
        return cls(
            analysis=result.text,
            metadata=AnalysisMetadata(
                provider=outcome.provider.display_name,
                provider_id=outcome.provider.id,
                model=outcome.provider.model_id,
                tokens=TokenUsage(input=result.input_tokens, output=result.output_tokens, total=result.total_tokens),
                cost=CostBreakdown(
                    input=float(cost.input_cost),
                    output=float(cost.output_cost),
                    total=float(cost.total_cost),
                    currency=cost.currency,
                ),
                duration_ms=round(outcome.duration_ms, 3),
                timestamp=outcome.completed_at.isoformat().replace("+00:00", "Z"),
            ),
        )


class ErrorResponse(CamelModel):
    success: Literal[False] = False
    error: str
    message: str
    timestamp: str = Field(default_factory=utc_timestamp)
    correlation_id: Optional[str] = None
    retry_after: Optional[int] = Field(default=None, description="Seconds until the client may retry")
