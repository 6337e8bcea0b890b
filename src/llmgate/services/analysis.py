"""Analysis orchestration: validate, dispatch, normalize, price."""

from __future__ import annotations

import time
from typing import Any

from llmgate.metrics.observability import GatewayMetrics, TimedSection, get_logger
from llmgate.models import AnalysisOutcome
from llmgate.providers.registry import ProviderRegistry
from llmgate.services.cost import CostMeter
from llmgate.services.dispatch import Dispatcher
from llmgate.services.normalize import normalize
from llmgate.services.validation import RequestValidator


class AnalysisService:
    """Runs one analysis request through the post-admission stages.

    Admission control (origin, rate limit) happens before this service is
    called. Any stage failure propagates as a ``GatewayError`` and stops the
    pipeline.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        validator: RequestValidator,
        dispatcher: Dispatcher,
        cost_meter: CostMeter | None = None,
    ) -> None:
        self._registry = registry
        self._validator = validator
        self._dispatcher = dispatcher
        self._cost_meter = cost_meter or CostMeter()
        self._logger = get_logger("analysis")

    @property
    def validator(self) -> RequestValidator:
        return self._validator

    async def analyze(self, payload: Any) -> AnalysisOutcome:
        request = self._validator.validate(payload)
        start = time.perf_counter()
        provider = self._registry.lookup(request.provider_id)
        self._logger.info("analysis.dispatch", provider_id=provider.id, model=provider.model_id)

        with TimedSection(lambda seconds: GatewayMetrics.observe_upstream(provider.id, seconds)):
            raw = await self._dispatcher.dispatch(request, provider)

        result = normalize(raw, provider.response_shape)
        cost = self._cost_meter.estimate(result, provider)
        GatewayMetrics.observe_usage(provider.id, result.input_tokens, result.output_tokens, float(cost.total_cost))
        duration_ms = (time.perf_counter() - start) * 1000.0
        return AnalysisOutcome(provider=provider, result=result, cost=cost, duration_ms=duration_ms)
