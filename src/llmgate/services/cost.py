"""Token-based cost estimation."""

from __future__ import annotations

from decimal import Decimal

from llmgate.models import CostEstimate, NormalizedUpstreamResult, ProviderDescriptor

TOKENS_PER_PRICE_UNIT = Decimal(1_000_000)


class CostMeter:
    """Prices token usage with the provider's per-million rates."""

    def __init__(self, currency: str = "USD") -> None:
        self.currency = currency

    def estimate(self, result: NormalizedUpstreamResult, provider: ProviderDescriptor) -> CostEstimate:
        input_cost = Decimal(result.input_tokens) / TOKENS_PER_PRICE_UNIT * provider.price_per_million_input_tokens
        output_cost = Decimal(result.output_tokens) / TOKENS_PER_PRICE_UNIT * provider.price_per_million_output_tokens
        return CostEstimate(input_cost=input_cost, output_cost=output_cost, currency=self.currency)
