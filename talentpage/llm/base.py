"""Abstract base class for text-understanding providers and shared parsing."""

import json
import os
import re
from abc import ABC, abstractmethod
from typing import Any

DEFAULT_SYSTEM_PROMPT = (
    "You extract structured facts from recruitment text. "
    "Return ONLY a JSON object (no markdown, no explanation)."
)

# Low temperature: replies are parsed as JSON.
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1024

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def parse_json_response(raw_text: str | None) -> dict[str, Any]:
    """Parse an LLM reply that should contain a JSON object.

    Handles markdown-wrapped JSON (```json ... ```), plain JSON, and a JSON
    object surrounded by stray prose.

    Raises:
        ValueError: If no JSON object can be recovered.
    """
    if not raw_text or not raw_text.strip():
        msg = "Failed to parse LLM response as JSON: empty response"
        raise ValueError(msg)

    cleaned = _FENCE_OPEN.sub("", raw_text.strip())
    cleaned = _FENCE_CLOSE.sub("", cleaned)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            msg = f"Failed to parse LLM response as JSON: {e}"
            raise ValueError(msg) from e
        try:
            data = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as inner:
            msg = f"Failed to parse LLM response as JSON: {inner}"
            raise ValueError(msg) from inner

    if not isinstance(data, dict):
        msg = f"Expected a JSON object from LLM, got {type(data).__name__}"
        raise ValueError(msg)
    return data


class LLMProvider(ABC):
    """Base class that every provider must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'openai')."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: User message, usually page text plus instructions.
            model: Override the provider's default model. None uses default.
            system: Override the system prompt. None falls back to DEFAULT_SYSTEM_PROMPT.
            temperature: Sampling temperature.
            max_tokens: Upper bound on the reply length.

        Returns:
            Raw text response from the LLM (expected to be JSON).
        """

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""

    def require_api_key(self) -> str:
        """Read the provider's API key from the environment.

        Raises:
            ValueError: If the variable is unset or empty.
        """
        key = os.environ.get(self.env_var) if self.env_var else None
        if not key:
            msg = f"{self.env_var} environment variable is required"
            raise ValueError(msg)
        return key

    def resolve(self, model: str | None, system: str | None) -> tuple[str, str]:
        """Apply the provider defaults to a (model, system prompt) pair."""
        return model or self.default_model, system if system is not None else DEFAULT_SYSTEM_PROMPT
