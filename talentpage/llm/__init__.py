"""Text-understanding provider registry with lazy loading.

Usage:
    from talentpage.llm import get_provider, parse_json_response

    provider = get_provider("openai")
    raw = provider.complete(page_text, system=VOICE_PROMPT, max_tokens=300)
    voice = parse_json_response(raw)

Provider SDKs are optional extras; a missing SDK or API key surfaces as
ImportError / ValueError on the first complete() call, not at lookup.
"""

from talentpage.llm.base import LLMProvider, parse_json_response

__all__ = ["LLMProvider", "available_providers", "get_provider", "parse_json_response"]

# Lazy registry: maps provider name → (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "anthropic": ("talentpage.llm.anthropic", "AnthropicProvider"),
    "openai": ("talentpage.llm.openai", "OpenAIProvider"),
    "gemini": ("talentpage.llm.gemini", "GeminiProvider"),
    "ollama": ("talentpage.llm.ollama", "OllamaProvider"),
}


def get_provider(name: str) -> LLMProvider:
    """Instantiate and return an LLM provider by name.

    Args:
        name: Provider identifier (anthropic, openai, gemini, ollama).

    Returns:
        An LLMProvider instance.

    Raises:
        ValueError: If the provider name is unknown.
    """
    if name not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown LLM provider '{name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[name]

    import importlib

    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls()  # type: ignore[no-any-return]


def available_providers() -> list[str]:
    """Return sorted list of registered provider names."""
    return sorted(_REGISTRY)
