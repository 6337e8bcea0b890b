"""Map provider-specific response bodies onto ``NormalizedUpstreamResult``."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from llmgate.errors import UpstreamParseError
from llmgate.models import NormalizedUpstreamResult, ResponseShape


def _usage_count(usage: Any, key: str) -> int:
    if not isinstance(usage, Mapping):
        return 0
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def _normalize_message(raw: Mapping[str, Any]) -> NormalizedUpstreamResult:
    block = _first(raw.get("content"))
    text = block.get("text") if isinstance(block, Mapping) else None
    if not isinstance(text, str):
        raise UpstreamParseError("Upstream response is missing content[0].text")
    usage = raw.get("usage")
    return NormalizedUpstreamResult(
        text=text,
        input_tokens=_usage_count(usage, "input_tokens"),
        output_tokens=_usage_count(usage, "output_tokens"),
    )


def _normalize_chat_completion(raw: Mapping[str, Any]) -> NormalizedUpstreamResult:
    choice = _first(raw.get("choices"))
    message = choice.get("message") if isinstance(choice, Mapping) else None
    text = message.get("content") if isinstance(message, Mapping) else None
    if not isinstance(text, str):
        raise UpstreamParseError("Upstream response is missing choices[0].message.content")
    usage = raw.get("usage")
    return NormalizedUpstreamResult(
        text=text,
        input_tokens=_usage_count(usage, "prompt_tokens"),
        output_tokens=_usage_count(usage, "completion_tokens"),
    )


_HANDLERS: dict[ResponseShape, Callable[[Mapping[str, Any]], NormalizedUpstreamResult]] = {
    ResponseShape.MESSAGE: _normalize_message,
    ResponseShape.CHAT_COMPLETION: _normalize_chat_completion,
}


def normalize(raw: Any, shape: ResponseShape) -> NormalizedUpstreamResult:
    """Extract text and token usage from ``raw`` according to ``shape``."""
    if not isinstance(raw, Mapping):
        raise UpstreamParseError("Upstream response is not a JSON object")
    try:
        handler = _HANDLERS[ResponseShape(shape)]
    except (KeyError, ValueError):
        raise UpstreamParseError(f"No normalizer for response shape {shape!r}") from None
    return handler(raw)
