from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx
import pytest

from anthropic_client import ClaudeClient
from errors import LLMAuthError, LLMError, LLMResponseError, LLMTransientError

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls, status: int):
    return cls("boom", response=httpx.Response(status, request=_REQUEST), body=None)


def _message(*blocks: SimpleNamespace) -> SimpleNamespace:
    return SimpleNamespace(content=list(blocks))


def test_complete_returns_first_text_block() -> None:
    sdk = MagicMock()
    sdk.messages.create.return_value = _message(
        SimpleNamespace(type="thinking", thinking="..."),
        SimpleNamespace(type="text", text='{"objective": "x"}'),
    )
    client = ClaudeClient(api_key="sk-ant-test", model="claude-test", client=sdk)

    completion = client.complete("prompt", max_tokens=2000)

    assert completion.text == '{"objective": "x"}'
    assert completion.model == "claude-test"
    kwargs = sdk.messages.create.call_args.kwargs
    assert kwargs == {
        "model": "claude-test",
        "max_tokens": 2000,
        "messages": [{"role": "user", "content": "prompt"}],
    }


def test_system_prompt_uses_dedicated_parameter() -> None:
    sdk = MagicMock()
    sdk.messages.create.return_value = _message(SimpleNamespace(type="text", text="ok"))
    client = ClaudeClient(api_key="sk-ant-test", model="claude-test", client=sdk)

    client.complete("prompt", max_tokens=10, system="You classify models.")

    assert sdk.messages.create.call_args.kwargs["system"] == "You classify models."


def test_no_text_block_raises_response_error() -> None:
    sdk = MagicMock()
    sdk.messages.create.return_value = _message()
    client = ClaudeClient(api_key="sk-ant-test", model="claude-test", client=sdk)

    with pytest.raises(LLMResponseError):
        client.complete("prompt", max_tokens=10)


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (_status_error(anthropic.AuthenticationError, 401), LLMAuthError),
        (_status_error(anthropic.RateLimitError, 429), LLMTransientError),
        (_status_error(anthropic.InternalServerError, 500), LLMTransientError),
        (_status_error(anthropic.APIStatusError, 529), LLMTransientError),
        (anthropic.APIConnectionError(request=_REQUEST), LLMTransientError),
        (_status_error(anthropic.NotFoundError, 404), LLMError),
    ],
)
def test_sdk_errors_are_mapped(error, expected) -> None:
    sdk = MagicMock()
    sdk.messages.create.side_effect = error
    client = ClaudeClient(api_key="sk-ant-test", model="claude-test", client=sdk)

    with pytest.raises(expected):
        client.complete("prompt", max_tokens=10)


def test_missing_key_raises_auth_error() -> None:
    with pytest.raises(LLMAuthError):
        ClaudeClient(api_key="", model="claude-test")
