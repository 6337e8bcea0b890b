"""Observability helpers for LLMGate."""

from __future__ import annotations

import logging
import time

import structlog
from prometheus_client import Counter, Histogram

_configured_level: int | None = None


def configure_logging(level: int | str = logging.INFO) -> None:
    global _configured_level  # noqa: PLW0603 - module-level guard
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if _configured_level == level:
        return
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured_level = level


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = "llmgate") -> structlog.BoundLogger:
    if _configured_level is None:
        configure_logging()
    return structlog.get_logger(name)


class GatewayMetrics:
    """Prometheus metrics for the analysis pipeline."""

    analyze_requests = Counter(
        "llmgate_analyze_requests_total",
        "Analysis requests by provider and outcome.",
        ["provider", "outcome"],
    )
    upstream_latency = Histogram(
        "llmgate_upstream_duration_seconds",
        "Time spent waiting on the upstream provider.",
        ["provider"],
        buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0),
    )
    tokens = Counter(
        "llmgate_tokens_total",
        "Tokens reported by upstream providers.",
        ["provider", "direction"],
    )
    estimated_cost = Counter(
        "llmgate_estimated_cost_total",
        "Sum of estimated request cost in the gateway currency.",
        ["provider"],
    )
    origin_denials = Counter(
        "llmgate_origin_denied_total",
        "Requests rejected by the origin guard.",
    )

    @classmethod
    def observe_outcome(cls, provider: str, outcome: str) -> None:
        cls.analyze_requests.labels(provider=provider, outcome=outcome).inc()

    @classmethod
    def observe_upstream(cls, provider: str, duration_seconds: float) -> None:
        cls.upstream_latency.labels(provider=provider).observe(duration_seconds)

    @classmethod
    def observe_usage(cls, provider: str, input_tokens: int, output_tokens: int, cost: float) -> None:
        cls.tokens.labels(provider=provider, direction="input").inc(input_tokens)
        cls.tokens.labels(provider=provider, direction="output").inc(output_tokens)
        cls.estimated_cost.labels(provider=provider).inc(cost)


class TimedSection:
    """Context manager capturing elapsed time for metrics."""

    def __init__(self, callback) -> None:
        self._callback = callback
        self._start = 0.0

    def __enter__(self) -> "TimedSection":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        duration = time.perf_counter() - self._start
        self._callback(duration)


__all__ = [
    "GatewayMetrics",
    "TimedSection",
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "get_logger",
]
