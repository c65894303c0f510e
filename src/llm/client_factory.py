# src/llm/client_factory.py - v3
"""Factory: instantiate LLM client from provider name.

Called by the orchestrator with the provider resolved by llm/config.py.
Switching providers is a configuration change; no orchestrator code
depends on a concrete adapter.
"""

from __future__ import annotations

import logging

from docuforge.config.settings import Settings
from docuforge.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "docuforge.llm.adapters.openai_adapter.OpenAIAdapter",
    "anthropic": "docuforge.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "gemini": "docuforge.llm.adapters.gemini_adapter.GeminiAdapter",
    "perplexity": "docuforge.llm.adapters.perplexity_adapter.PerplexityAdapter",
    "llama": "docuforge.llm.adapters.llama_adapter.LlamaAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (openai, anthropic, gemini, perplexity, llama).
        model: Default model for the client.
        settings: Application settings (for API keys and timeouts).
        **kwargs: Additional provider-specific arguments.

    Returns:
        Configured BaseLLMClient instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(available_providers())}"
        )

    class_path = _PROVIDER_REGISTRY[provider]
    adapter_cls = _import_class(class_path)

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model

    if settings is not None:
        init_kwargs.setdefault("timeout", settings.llm_timeout_s)
        init_kwargs.setdefault("input_share", settings.cost_input_token_share)
        if provider == "openai":
            init_kwargs.setdefault("api_key", settings.openai_api_key)
        elif provider == "anthropic":
            init_kwargs.setdefault("api_key", settings.anthropic_api_key)
        elif provider == "gemini":
            init_kwargs.setdefault("api_key", settings.gemini_api_key)
        elif provider == "perplexity":
            init_kwargs.setdefault("api_key", settings.perplexity_api_key)
            init_kwargs.setdefault("base_url", settings.perplexity_base_url)
        elif provider == "llama":
            init_kwargs.setdefault("base_url", settings.llama_base_url)
            init_kwargs.setdefault("host", settings.llama_host)
            init_kwargs.setdefault("api_key", settings.llama_api_key)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    import importlib

    module = importlib.import_module(module_path)
    return getattr(module, class_name)
