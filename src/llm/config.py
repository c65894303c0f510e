# src/llm/config.py - v2
"""Per-request provider/model resolution with a cascade.

Resolution order for the provider:
  1. Explicit request override (GenerationRequest.provider_name)
  2. Stored per-document-type preference
  3. User default provider
  4. System default (LLM_DEFAULT_PROVIDER)
  5. Hardcoded fallback (openai)

The model follows the same order, but a preference's model only applies
when that preference also picked the resolved provider. Otherwise the
provider's default model is used.
"""

from __future__ import annotations

from dataclasses import dataclass

from docuforge.config.settings import Settings
from docuforge.core.collaborators import ProviderPreference, UserPreferences
from docuforge.core.models import GenerationRequest

_FALLBACK_PROVIDER = "openai"

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4-turbo",
    "anthropic": "claude-3-opus-20240229",
    "gemini": "gemini-1.5-pro",
    "perplexity": "sonar-large",
    "llama": "llama-3-70b",
}


@dataclass(frozen=True)
class GenerationConfig:
    """Resolved generation parameters for one run."""

    provider: str
    model: str
    temperature: float
    max_tokens: int | None
    use_cache: bool
    prompt_style: str
    allow_fallback: bool = False
    fallback_provider: str | None = None
    source: str = "default"  # "request", "document_type", "user", "default", "fallback"

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def _resolve_provider(
    request: GenerationRequest,
    pref: ProviderPreference | None,
    user: UserPreferences,
    settings: Settings,
) -> tuple[str, str]:
    if request.provider_name:
        return request.provider_name, "request"
    if pref is not None and pref.provider:
        return pref.provider, "document_type"
    if user.default_provider:
        return user.default_provider, "user"
    if settings.llm_default_provider:
        return settings.llm_default_provider, "default"
    return _FALLBACK_PROVIDER, "fallback"


def _resolve_model(
    provider: str,
    request: GenerationRequest,
    pref: ProviderPreference | None,
    user: UserPreferences,
    settings: Settings,
) -> str:
    if request.model_id:
        return request.model_id
    if pref is not None and pref.model and pref.provider in (None, provider):
        return pref.model
    if user.default_model and user.default_provider == provider:
        return user.default_model
    if settings.llm_default_model and settings.llm_default_provider == provider:
        return settings.llm_default_model
    return DEFAULT_MODELS.get(provider, settings.llm_default_model)


def resolve_generation_config(
    request: GenerationRequest,
    settings: Settings,
    pref: ProviderPreference | None = None,
    user: UserPreferences | None = None,
) -> GenerationConfig:
    """Merge request overrides with stored preferences and system defaults."""
    user = user or UserPreferences()
    provider, source = _resolve_provider(request, pref, user, settings)
    model = _resolve_model(provider, request, pref, user, settings)

    temperature = request.temperature
    if temperature is None and pref is not None:
        temperature = pref.temperature
    if temperature is None:
        temperature = settings.llm_default_temperature

    max_tokens = request.max_tokens
    if max_tokens is None and pref is not None:
        max_tokens = pref.max_tokens

    use_cache = request.use_cache and settings.cache_enabled
    if pref is not None:
        use_cache = use_cache and pref.cache_enabled

    return GenerationConfig(
        provider=provider,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        use_cache=use_cache,
        prompt_style=request.prompt_style or user.prompt_style or "professional",
        allow_fallback=settings.allow_fallback or user.allow_fallback,
        fallback_provider=user.fallback_provider,
        source=source,
    )
