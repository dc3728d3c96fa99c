"""Ollama local LLM provider (OpenAI-compatible API)."""

import logging
import os

from talentpage.llm.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, LLMProvider
from talentpage.llm.openai import chat_complete, import_openai

logger = logging.getLogger(__name__)

_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(LLMProvider):
    """Local models served by Ollama; no API key, base URL from OLLAMA_BASE_URL."""

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def env_var(self) -> None:
        return None

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        openai = import_openai("Ollama (OpenAI-compatible API)")
        base_url = os.environ.get("OLLAMA_BASE_URL", _OLLAMA_BASE_URL)
        use_model, use_system = self.resolve(model, system)

        logger.info("Sending prompt to Ollama at %s (%s)...", base_url, use_model)
        client = openai.OpenAI(base_url=base_url, api_key="ollama")
        return chat_complete(client, use_model, use_system, prompt, temperature, max_tokens)
