"""OpenAI LLM provider, plus the chat-completions call shared with Ollama."""

import logging
from types import ModuleType
from typing import Any

from talentpage.llm.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, LLMProvider

logger = logging.getLogger(__name__)


def import_openai(purpose: str) -> ModuleType:
    """Import the openai SDK or explain which extra installs it."""
    try:
        import openai
    except ImportError:
        msg = (
            f"openai is required for {purpose}. "
            "Install with: pip install 'talent-page-builder[openai]'"
        )
        raise ImportError(msg) from None
    return openai


def chat_complete(
    client: Any,
    model: str,
    system: str,
    prompt: str,
    temperature: float,
    max_tokens: int,
) -> str:
    response = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    return response.choices[0].message.content or ""


class OpenAIProvider(LLMProvider):
    """LLM provider using the OpenAI API."""

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def env_var(self) -> str:
        return "OPENAI_API_KEY"

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        api_key = self.require_api_key()
        openai = import_openai("this provider")
        use_model, use_system = self.resolve(model, system)

        logger.info("Sending prompt to OpenAI API (%s)...", use_model)
        client = openai.OpenAI(api_key=api_key)
        return chat_complete(client, use_model, use_system, prompt, temperature, max_tokens)
