"""Payload validation for analysis requests."""

from __future__ import annotations

import json
from typing import Any, Mapping

from llmgate.errors import PayloadTooLargeError, ValidationError
from llmgate.models import AnalysisRequest
from llmgate.providers.registry import ProviderRegistry

_SCALARS = (str, int, float, bool)


class RequestValidator:
    """Turns a raw client payload into an ``AnalysisRequest``."""

    def __init__(self, registry: ProviderRegistry, *, max_body_bytes: int | None = None) -> None:
        self._registry = registry
        self._max_body_bytes = max_body_bytes

    def parse_body(self, body: bytes) -> Any:
        if self._max_body_bytes is not None and len(body) > self._max_body_bytes:
            raise PayloadTooLargeError()
        if not body.strip():
            raise ValidationError("Request body must be a JSON object")
        try:
            return json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError("Request body is not valid JSON") from exc

    def validate(self, payload: Any) -> AnalysisRequest:
        if not isinstance(payload, Mapping):
            raise ValidationError("Request body must be a JSON object")

        answers = payload.get("structuredAnswers")
        if answers is None:
            raise ValidationError("Missing structuredAnswers object")
        if not isinstance(answers, Mapping):
            raise ValidationError("structuredAnswers must be an object")
        if not answers:
            raise ValidationError("structuredAnswers must contain at least one answer")
        for key, value in answers.items():
            if not _is_answer(value):
                raise ValidationError(f"Unsupported answer value for {key!r}; expected a string or list of strings")

        provider_id = payload.get("providerId")
        if provider_id is None:
            provider_id = self._registry.default_id()
        elif not isinstance(provider_id, str) or not provider_id.strip():
            raise ValidationError("providerId must be a non-empty string")
        descriptor = self._registry.lookup(provider_id.strip())
        return AnalysisRequest(structured_answers=dict(answers), provider_id=descriptor.id)


def _is_answer(value: Any) -> bool:
    if value is None or isinstance(value, _SCALARS):
        return True
    if isinstance(value, list):
        return all(item is None or isinstance(item, _SCALARS) for item in value)
    return False
