"""Model provider adapters and the registry that resolves them by name."""

from .base import LLMRequest, LLMResponse, ProviderAdapter, TokenUsage
from .http import AnthropicProvider, HttpProvider, OllamaProvider, OpenAICompatibleProvider
from .mock import MockProvider
from .registry import PROVIDER_FACTORIES, ProviderRegistry, create_provider

__all__ = [
    "LLMRequest",
    "LLMResponse",
    "ProviderAdapter",
    "TokenUsage",
    "HttpProvider",
    "AnthropicProvider",
    "OllamaProvider",
    "OpenAICompatibleProvider",
    "MockProvider",
    "PROVIDER_FACTORIES",
    "ProviderRegistry",
    "create_provider",
]
