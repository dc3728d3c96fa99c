"""Anthropic Claude LLM provider."""

import logging

from talentpage.llm.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, LLMProvider

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """LLM provider using the Anthropic Claude API."""

    @property
    def provider_id(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    @property
    def env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

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
        try:
            import anthropic
        except ImportError:
            msg = (
                "anthropic is required for this provider. "
                "Install with: pip install 'talent-page-builder[anthropic]'"
            )
            raise ImportError(msg) from None

        use_model, use_system = self.resolve(model, system)
        logger.info("Sending prompt to Anthropic API (%s)...", use_model)
        message = anthropic.Anthropic(api_key=api_key).messages.create(
            model=use_model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=use_system,
            messages=[{"role": "user", "content": prompt}],
        )
        # Text blocks only; a reply may open with a non-text block.
        return "".join(getattr(block, "text", "") for block in message.content)
