"""
Text generation adapter (request/response, non-streaming).

Used by the career services for assessment questions, profile analysis,
roadmaps, CVs, advisor chat and interview evaluation.

The adapter is a *dumb pipe*: messages in, text out. Prompts, fallbacks
and parsing of the result live in the services.
"""

from __future__ import annotations

import json
from typing import Any

import openai

from observability.metrics import timed


class TextGenerationError(RuntimeError):
    """The provider call failed or returned something unusable."""


class TextGenerationAdapter:
    """
    Thin wrapper over an OpenAI-compatible chat completions client.

    The client is injected (openai.AsyncOpenAI in production, a fake in
    tests) and is shared across requests.
    """

    def __init__(self, *, client: Any, model: str, provider: str) -> None:
        self._client = client
        self._model = model
        self._provider = provider

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        json_mode: bool = False,
        operation: str = "text",
    ) -> str:
        """
        Run one completion and return the message text ("" if empty).

        Raises:
            TextGenerationError on any provider error.
        """
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        with timed(
            "text_generation_latency",
            details={"operation": operation, "provider": self._provider},
        ) as extra:
            try:
                response = await self._client.chat.completions.create(**kwargs)
            except openai.OpenAIError as e:
                raise TextGenerationError(f"{operation} failed: {e}") from e

            text = _extract_text(response)
            extra["chars"] = len(text)

        return text

    async def complete_json(
        self,
        messages: list[dict[str, str]],
        *,
        default: Any,
        operation: str = "json",
    ) -> Any:
        """
        Run a JSON-mode completion and parse it.

        Empty output parses as `default`.

        Raises:
            TextGenerationError on provider errors or invalid JSON.
        """
        text = await self.complete(messages, json_mode=True, operation=operation)
        if not text.strip():
            return default
        try:
            return json.loads(_strip_code_fence(text))
        except json.JSONDecodeError as e:
            raise TextGenerationError(f"{operation} returned invalid JSON: {e}") from e


def _extract_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) or ""


def _strip_code_fence(text: str) -> str:
    """Some providers wrap JSON-mode output in ```json fences."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()
