"""Prompt construction from structured answers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Mapping

PromptFactory = Callable[[Mapping[str, Any]], str]


@dataclass(frozen=True)
class PromptBuilderConfig:
    """Configuration for prompt construction."""

    preamble: str = (
        "You are a senior AI implementation consultant. "
        "Analyze this business assessment and write a strategy report."
    )
    heading: str = "Business Assessment:"
    indent: int = 2


class PromptBuilder:
    """Default prompt factory; callers may inject any ``answers -> str`` callable instead."""

    def __init__(self, config: PromptBuilderConfig | None = None) -> None:
        self._config = config or PromptBuilderConfig()

    def __call__(self, answers: Mapping[str, Any]) -> str:
        return self.build(answers)

    def build(self, answers: Mapping[str, Any]) -> str:
        body = json.dumps(dict(answers), indent=self._config.indent, ensure_ascii=False)
        return f"{self._config.preamble}\n\n{self._config.heading}\n{body}"
