"""Thin wrapper around the Anthropic Messages API."""

from __future__ import annotations

import logging
from typing import Any

import anthropic

from errors import LLMAuthError, LLMError, LLMResponseError, LLMTransientError
from llm_client import Completion

LOGGER = logging.getLogger(__name__)


class ClaudeClient:
    """Claude completion backend with explicitly injected credentials."""

    def __init__(
        self,
        api_key: str,
        model: str,
        client: anthropic.Anthropic | None = None,
    ) -> None:
        if not api_key:
            raise LLMAuthError("ANTHROPIC_API_KEY environment variable is required")
        self.default_model = model
        self._client = client or anthropic.Anthropic(api_key=api_key)

    def complete(
        self,
        prompt: str,
        max_tokens: int,
        model: str | None = None,
        system: str | None = None,
    ) -> Completion:
        """Send one user prompt and return the assistant text.

        Args:
            prompt: User message content.
            max_tokens: Hard cap on output tokens.
            model: Overrides the client's default model for this call.
            system: Optional system prompt, passed via the dedicated parameter.
        """
        model_name = model or self.default_model
        kwargs: dict[str, Any] = {
            "model": model_name,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        LOGGER.debug("Calling Claude model=%s max_tokens=%s", model_name, max_tokens)
        try:
            response = self._client.messages.create(**kwargs)
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as exc:
            raise LLMAuthError(f"Anthropic rejected credentials: {exc}") from exc
        except (
            anthropic.RateLimitError,
            anthropic.APIConnectionError,
            anthropic.InternalServerError,
        ) as exc:
            raise LLMTransientError(f"Anthropic request failed: {exc}") from exc
        except anthropic.APIStatusError as exc:
            # 529 "overloaded" has its own exception class in newer SDKs.
            if exc.status_code >= 500:
                raise LLMTransientError(f"Anthropic returned status {exc.status_code}: {exc}") from exc
            raise LLMError(f"Anthropic returned status {exc.status_code}: {exc}") from exc

        text = _first_text_block(response)
        if not text.strip():
            raise LLMResponseError("Claude returned no text content")
        return Completion(text=text, model=model_name)


def _first_text_block(response: Any) -> str:
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text":
            return block.text or ""
    return ""
