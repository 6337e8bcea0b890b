from __future__ import annotations

from decimal import Decimal

from llmgate.config import Settings
from llmgate.models import NormalizedUpstreamResult
from llmgate.providers import default_descriptors
from llmgate.services import CostMeter


def _claude():
    return next(d for d in default_descriptors(Settings(environment="test")) if d.id == "claude")


def test_priced_formula_is_exact():
    estimate = CostMeter().estimate(NormalizedUpstreamResult(text="x", input_tokens=1000, output_tokens=2000), _claude())
    assert estimate.input_cost == Decimal("0.003")
    assert estimate.output_cost == Decimal("0.03")
    assert float(estimate.total_cost) == 0.033
    assert estimate.currency == "USD"


def test_zero_tokens_yield_zero_cost():
    estimate = CostMeter("EUR").estimate(NormalizedUpstreamResult(text="x"), _claude())
    assert estimate.total_cost == 0
    assert estimate.currency == "EUR"
