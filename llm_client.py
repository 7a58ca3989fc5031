"""Language-model completion clients and provider selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import openai
from openai import OpenAI

from config import PipelineConfig
from errors import LLMAuthError, LLMError, LLMResponseError, LLMTransientError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Completion:
    text: str
    model: str = ""


class CompletionClient(Protocol):
    """Anything that turns a prompt into text. Test doubles implement this too."""

    default_model: str

    def complete(
        self,
        prompt: str,
        max_tokens: int,
        model: str | None = None,
        system: str | None = None,
    ) -> Completion: ...


class OpenAIClient:
    """OpenAI chat-completions backend."""

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.1,
        client: OpenAI | None = None,
    ) -> None:
        if not api_key:
            raise LLMAuthError("OPENAI_API_KEY environment variable is required")
        self.default_model = model
        self.temperature = temperature
        self._client = client or OpenAI(api_key=api_key)

    def complete(
        self,
        prompt: str,
        max_tokens: int,
        model: str | None = None,
        system: str | None = None,
    ) -> Completion:
        model_name = model or self.default_model
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        LOGGER.debug("Calling OpenAI model=%s max_tokens=%s", model_name, max_tokens)
        try:
            response = self._client.chat.completions.create(
                model=model_name,
                temperature=self.temperature,
                max_completion_tokens=max_tokens,
                messages=messages,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise LLMAuthError(f"OpenAI rejected credentials: {exc}") from exc
        except (openai.RateLimitError, openai.APIConnectionError, openai.InternalServerError) as exc:
            raise LLMTransientError(f"OpenAI request failed: {exc}") from exc
        except openai.APIStatusError as exc:
            raise LLMError(f"OpenAI returned status {exc.status_code}: {exc}") from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as exc:
            raise LLMResponseError(f"Unexpected OpenAI response shape: {response!r}") from exc
        if not content or not content.strip():
            raise LLMResponseError("OpenAI returned an empty response")
        return Completion(text=content, model=model_name)


def build_llm_client(config: PipelineConfig) -> CompletionClient:
    """Construct the configured provider's client.

    Raises LLMAuthError when the provider's API key is missing, so the run
    fails before any record is touched.
    """
    if config.llm_provider == "openai":
        return OpenAIClient(
            api_key=config.openai_api_key or "",
            model=config.openai_model,
            temperature=config.openai_temperature,
        )

    from anthropic_client import ClaudeClient  # noqa: PLC0415

    return ClaudeClient(api_key=config.anthropic_api_key or "", model=config.claude_model)
