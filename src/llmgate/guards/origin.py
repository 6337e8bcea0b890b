"""Origin allow-list enforcement."""

from __future__ import annotations

from typing import Iterable

from llmgate.errors import OriginDeniedError


class OriginGuard:
    """Admits requests without an Origin header or with an allow-listed one."""

    def __init__(self, allowed_origins: Iterable[str]) -> None:
        self._allowed = frozenset(origin.rstrip("/") for origin in allowed_origins if origin)

    @property
    def allowed_origins(self) -> tuple[str, ...]:
        return tuple(sorted(self._allowed))

    def check(self, origin: str | None) -> bool:
        if not origin or not origin.strip():
            return True
        return origin.strip() in self._allowed

    def enforce(self, origin: str | None) -> None:
        if not self.check(origin):
            raise OriginDeniedError()
