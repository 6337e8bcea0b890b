"""Logging and metrics helpers."""

from .observability import GatewayMetrics, TimedSection, configure_logging, get_logger

__all__ = ["GatewayMetrics", "TimedSection", "configure_logging", "get_logger"]
