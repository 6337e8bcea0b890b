"""Admission control: origin checks and per-client rate limits."""

from .origin import OriginGuard
from .rate_limit import ClientRateState, FixedWindowRateLimiter

__all__ = ["ClientRateState", "FixedWindowRateLimiter", "OriginGuard"]
