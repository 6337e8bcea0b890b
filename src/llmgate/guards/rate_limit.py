"""Fixed-window request rate limiting held in process memory."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from llmgate.errors import RateLimitedError
from llmgate.models import RateDecision


@dataclass
class ClientRateState:
    window_start: float
    count: int = 0


class FixedWindowRateLimiter:
    """Counts requests per client identity inside a fixed window.

    A client may see up to ``2 * max_requests`` admissions across a window
    boundary; that burst is accepted in exchange for O(1) state per client.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        max_clients: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window = float(window_seconds)
        self.max_clients = max(1, max_clients)
        self._clock = clock
        self._states: dict[str, ClientRateState] = {}
        self._lock = threading.Lock()

    def admit(self, identity: str) -> RateDecision:
        """Count one request for ``identity`` and decide whether it may proceed."""
        key = identity or "anonymous"
        with self._lock:
            now = self._clock()
            state = self._states.get(key)
            if state is None:
                self._make_room(now)
                state = self._states[key] = ClientRateState(window_start=now)
            elif now - state.window_start >= self.window:
                state.window_start = now
                state.count = 0
            state.count += 1
            reset_after = self.window - (now - state.window_start)
            if state.count > self.max_requests:
                return RateDecision(
                    allowed=False,
                    count=state.count,
                    limit=self.max_requests,
                    retry_after=reset_after,
                    reset_after=reset_after,
                )
            return RateDecision(allowed=True, count=state.count, limit=self.max_requests, reset_after=reset_after)

    def enforce(self, identity: str) -> RateDecision:
        decision = self.admit(identity)
        if not decision.allowed:
            raise RateLimitedError(decision.retry_after)
        return decision

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._states)

    def reset(self) -> None:
        with self._lock:
            self._states.clear()

    def _make_room(self, now: float) -> None:
        # Caller holds the lock.
        if len(self._states) < self.max_clients:
            return
        expired = [key for key, state in self._states.items() if now - state.window_start >= self.window]
        for key in expired:
            del self._states[key]
        while len(self._states) >= self.max_clients:
            oldest = min(self._states, key=lambda k: self._states[k].window_start)
            del self._states[oldest]
