"""Google Gemini LLM provider (google-genai SDK)."""

import logging

from talentpage.llm.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, LLMProvider

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """LLM provider using the Google Gemini API (google-genai SDK)."""

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-flash"

    @property
    def env_var(self) -> str:
        return "GOOGLE_API_KEY"

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
            from google import genai
            from google.genai import types as genai_types
        except ImportError:
            msg = (
                "google-genai is required for this provider. "
                "Install with: pip install 'talent-page-builder[gemini]'"
            )
            raise ImportError(msg) from None

        use_model, use_system = self.resolve(model, system)
        logger.info("Sending prompt to Gemini API (%s)...", use_model)
        response = genai.Client(api_key=api_key).models.generate_content(
            model=use_model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(
                system_instruction=use_system,
                temperature=temperature,
                max_output_tokens=max_tokens,
                response_mime_type="application/json",
            ),
        )
        return response.text or ""
