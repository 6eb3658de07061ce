"""Model catalogue and provider factory."""

from __future__ import annotations

from steward.errors import ConfigError
from steward.types.providers import ModelInfo, ProviderAdapter

MODELS: dict[str, ModelInfo] = {
    "claude-opus-4-6": ModelInfo(
        id="claude-opus-4-6",
        provider="anthropic",
        display_name="Claude Opus 4.6",
        context_window=200_000,
        max_output_tokens=32_768,
        input_cost_per_mtok=15.00,
        output_cost_per_mtok=75.00,
        aliases=("opus",),
    ),
    "claude-sonnet-4-6": ModelInfo(
        id="claude-sonnet-4-6",
        provider="anthropic",
        display_name="Claude Sonnet 4.6",
        context_window=200_000,
        max_output_tokens=16_384,
        input_cost_per_mtok=3.00,
        output_cost_per_mtok=15.00,
        aliases=("sonnet",),
    ),
    "claude-haiku-4-5-20251001": ModelInfo(
        id="claude-haiku-4-5-20251001",
        provider="anthropic",
        display_name="Claude Haiku 4.5",
        context_window=200_000,
        max_output_tokens=8_192,
        input_cost_per_mtok=0.80,
        output_cost_per_mtok=4.00,
        aliases=("haiku",),
    ),
    "claude-sonnet-4-5-20250514": ModelInfo(
        id="claude-sonnet-4-5-20250514",
        provider="anthropic",
        display_name="Claude Sonnet 4.5",
        context_window=200_000,
        max_output_tokens=16_384,
        input_cost_per_mtok=3.00,
        output_cost_per_mtok=15.00,
    ),
    "claude-3-5-haiku-20241022": ModelInfo(
        id="claude-3-5-haiku-20241022",
        provider="anthropic",
        display_name="Claude 3.5 Haiku",
        context_window=200_000,
        max_output_tokens=8_192,
        input_cost_per_mtok=0.80,
        output_cost_per_mtok=4.00,
    ),
}

ALIASES: dict[str, str] = {
    alias: model_id for model_id, info in MODELS.items() for alias in info.aliases
}

DEFAULT_MODEL = "claude-sonnet-4-6"


def resolve_model(name: str) -> ModelInfo:
    """Resolve a model ID or alias to its :class:`ModelInfo`.

    Raises
    ------
    KeyError
        When *name* matches no known model or alias.

    Examples
    --------
    >>> resolve_model("sonnet").id
    'claude-sonnet-4-6'
    """
    resolved_id = ALIASES.get(name, name)
    if resolved_id not in MODELS:
        known = sorted([*MODELS, *ALIASES])
        raise KeyError(f"Unknown model {name!r}. Known models and aliases: {known}")
    return MODELS[resolved_id]


def get_model_info(model_id: str) -> ModelInfo | None:
    """Catalogue entry for *model_id*, or None for models we cannot price."""
    return MODELS.get(ALIASES.get(model_id, model_id))


def create_provider(model_id: str = DEFAULT_MODEL, api_key: str | None = None) -> ProviderAdapter:
    """Instantiate the adapter for *model_id* (full ID or alias).

    Unknown ``claude-*`` IDs are passed through to the Anthropic adapter
    so new model versions work before the catalogue lists them.
    """
    info = get_model_info(model_id)
    if info is None and not model_id.startswith("claude-"):
        resolve_model(model_id)  # raises KeyError with the known names
    resolved_id = info.id if info else model_id
    provider = info.provider if info else "anthropic"

    if provider == "anthropic":
        from steward.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key, model=resolved_id)

    raise ConfigError(f"No provider implementation for model {resolved_id!r}")
