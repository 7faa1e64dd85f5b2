"""Model catalogue and provider factory."""

from __future__ import annotations

from docloom.core.config import resolve_api_key
from docloom.types.providers import ModelInfo, ProviderAdapter

MODELS: dict[str, ModelInfo] = {
    "gpt-4o": ModelInfo(
        id="gpt-4o",
        provider="openai",
        display_name="GPT-4o",
        context_window=128_000,
        max_output_tokens=16_384,
        aliases=("4o",),
    ),
    "gpt-4o-mini": ModelInfo(
        id="gpt-4o-mini",
        provider="openai",
        display_name="GPT-4o mini",
        context_window=128_000,
        max_output_tokens=16_384,
        aliases=("4o-mini",),
    ),
    "gpt-4": ModelInfo(
        id="gpt-4",
        provider="openai",
        display_name="GPT-4",
        context_window=8_192,
        max_output_tokens=4_096,
        supports_json_mode=False,
    ),
    "gpt-4.1": ModelInfo(
        id="gpt-4.1",
        provider="openai",
        display_name="GPT-4.1",
        context_window=1_000_000,
        max_output_tokens=32_768,
    ),
    "claude-sonnet-4-6": ModelInfo(
        id="claude-sonnet-4-6",
        provider="anthropic",
        display_name="Claude Sonnet 4.6",
        context_window=200_000,
        max_output_tokens=16_384,
        supports_json_mode=False,
        aliases=("sonnet",),
    ),
    "claude-haiku-4-5-20251001": ModelInfo(
        id="claude-haiku-4-5-20251001",
        provider="anthropic",
        display_name="Claude Haiku 4.5",
        context_window=200_000,
        max_output_tokens=8_192,
        supports_json_mode=False,
        aliases=("haiku",),
    ),
}

ALIASES: dict[str, str] = {
    alias: model_id for model_id, info in MODELS.items() for alias in info.aliases
}

PROVIDERS = ("openai", "anthropic")


def resolve_model(name: str) -> ModelInfo:
    """Resolve a model ID or alias.  Raises ``KeyError`` when unknown."""
    if name in MODELS:
        return MODELS[name]
    if name in ALIASES:
        return MODELS[ALIASES[name]]
    raise KeyError(f"Unknown model: {name!r}")


def infer_provider(model: str) -> str:
    """Pick a provider for *model*: catalogue entry, then name prefix.

    Unknown models default to OpenAI, which also covers OpenAI-compatible
    endpoints reached through ``base_url``.
    """
    try:
        return resolve_model(model).provider
    except KeyError:
        pass
    if model.lower().startswith("claude"):
        return "anthropic"
    return "openai"


def create_provider(
    model: str,
    *,
    provider: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
    temperature: float | None = None,
    seed: int | None = None,
    max_retries: int = 3,
) -> ProviderAdapter:
    """Instantiate the adapter for *model*.

    Raises
    ------
    ValueError
        When *provider* names an unsupported provider.
    """
    model_id = ALIASES.get(model, model)
    name = provider or infer_provider(model_id)
    key = resolve_api_key(name, api_key)

    if name == "openai":
        from docloom.providers.openai import OpenAIProvider

        return OpenAIProvider(
            api_key=key,
            model=model_id,
            base_url=base_url,
            temperature=temperature,
            seed=seed,
            max_retries=max_retries,
        )
    if name == "anthropic":
        from docloom.providers.anthropic import AnthropicProvider

        return AnthropicProvider(
            api_key=key,
            model=model_id,
            base_url=base_url,
            temperature=temperature,
            max_retries=max_retries,
        )
    raise ValueError(f"Unsupported provider: {name!r}. Choose one of: {', '.join(PROVIDERS)}")
