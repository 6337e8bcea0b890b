from __future__ import annotations

import pytest

from llmgate.errors import UpstreamError, UpstreamParseError
from llmgate.models import NormalizedUpstreamResult, ResponseShape
from llmgate.services import normalize

MESSAGE_BODY = {
    "id": "msg_1",
    "type": "message",
    "content": [{"type": "text", "text": "Report body"}],
    "usage": {"input_tokens": 500, "output_tokens": 800},
}

CHAT_BODY = {
    "id": "gen-1",
    "choices": [{"index": 0, "message": {"role": "assistant", "content": "Chat report"}}],
    "usage": {"prompt_tokens": 12, "completion_tokens": 34, "total_tokens": 46},
}


def test_message_style():
    result = normalize(MESSAGE_BODY, ResponseShape.MESSAGE)
    assert result == NormalizedUpstreamResult(text="Report body", input_tokens=500, output_tokens=800)
    assert result.total_tokens == 1300


def test_chat_completion_style():
    result = normalize(CHAT_BODY, ResponseShape.CHAT_COMPLETION)
    assert result == NormalizedUpstreamResult(text="Chat report", input_tokens=12, output_tokens=34)


def test_shape_tag_may_be_given_as_string():
    assert normalize(CHAT_BODY, "chat-completion-style").text == "Chat report"


def test_missing_usage_defaults_to_zero():
    body = {"content": [{"type": "text", "text": "hi"}]}
    result = normalize(body, ResponseShape.MESSAGE)
    assert (result.input_tokens, result.output_tokens) == (0, 0)


def test_invalid_usage_values_default_to_zero():
    body = {"choices": [{"message": {"content": "hi"}}], "usage": {"prompt_tokens": -3, "completion_tokens": "12"}}
    result = normalize(body, ResponseShape.CHAT_COMPLETION)
    assert (result.input_tokens, result.output_tokens) == (0, 0)


@pytest.mark.parametrize(
    "body,shape",
    [
        ({"content": []}, ResponseShape.MESSAGE),
        ({"content": [{"type": "tool_use"}]}, ResponseShape.MESSAGE),
        ({"content": [{"text": 7}]}, ResponseShape.MESSAGE),
        ({"choices": []}, ResponseShape.CHAT_COMPLETION),
        ({"choices": [{"message": {"content": None}}]}, ResponseShape.CHAT_COMPLETION),
        (MESSAGE_BODY, ResponseShape.CHAT_COMPLETION),
        (["not", "an", "object"], ResponseShape.MESSAGE),
    ],
)
def test_contract_violations_are_parse_errors(body, shape):
    with pytest.raises(UpstreamParseError) as excinfo:
        normalize(body, shape)
    assert isinstance(excinfo.value, UpstreamError)
    assert excinfo.value.status_code == 500


def test_normalization_is_pure():
    first = normalize(MESSAGE_BODY, ResponseShape.MESSAGE)
    second = normalize(MESSAGE_BODY, ResponseShape.MESSAGE)
    assert first == second
    assert MESSAGE_BODY["usage"] == {"input_tokens": 500, "output_tokens": 800}
