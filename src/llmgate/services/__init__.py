"""Service layer orchestrations for LLMGate."""

from .analysis import AnalysisService
from .cost import CostMeter
from .dispatch import DispatchConfig, Dispatcher, HttpDispatcher
from .normalize import normalize
from .prompt import PromptBuilder, PromptBuilderConfig, PromptFactory
from .validation import RequestValidator

__all__ = [
    "AnalysisService",
    "CostMeter",
    "DispatchConfig",
    "Dispatcher",
    "HttpDispatcher",
    "PromptBuilder",
    "PromptBuilderConfig",
    "PromptFactory",
    "RequestValidator",
    "normalize",
]
