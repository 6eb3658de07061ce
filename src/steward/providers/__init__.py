"""Provider adapters.

- :class:`BaseProvider` - abstract base with retry and schema helpers
- :class:`AnthropicProvider` - Claude adapter (Anthropic SDK)
- :func:`resolve_model` - model name or alias to :class:`ModelInfo`
- :func:`create_provider` - factory returning the right adapter
"""

from __future__ import annotations

from steward.providers.anthropic import AnthropicProvider
from steward.providers.base import BaseProvider
from steward.providers.registry import (
    ALIASES,
    MODELS,
    create_provider,
    get_model_info,
    resolve_model,
)

__all__ = [
    "ALIASES",
    "AnthropicProvider",
    "BaseProvider",
    "MODELS",
    "create_provider",
    "get_model_info",
    "resolve_model",
]
