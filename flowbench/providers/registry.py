"""Provider Adapter Registry

Maps provider names (case-insensitive) to adapter instances. Registration
is guarded by a lock; lookups are plain dict reads and safe to share across
concurrent runs once the registry is populated.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional

from ..errors import ProviderNotConfigured
from .base import ProviderAdapter
from .http import AnthropicProvider, OllamaProvider, OpenAICompatibleProvider
from .mock import MockProvider
from .. import config

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], ProviderAdapter]

PROVIDER_FACTORIES: Dict[str, ProviderFactory] = {
    "mock": lambda credential: MockProvider(credential),
    "openai": lambda credential: OpenAICompatibleProvider(credential),
    "deepseek": lambda credential: OpenAICompatibleProvider(
        credential, base_url=config.DEEPSEEK_BASE_URL, name="deepseek",
    ),
    "anthropic": lambda credential: AnthropicProvider(credential),
    "ollama": lambda credential: OllamaProvider(credential),
}


def create_provider(name: str, credential: str) -> ProviderAdapter:
    """Build an adapter for a known provider name.

    Raises:
        ProviderNotConfigured: No factory exists for ``name``
    """
    factory = PROVIDER_FACTORIES.get(name.lower())
    if factory is None:
        raise ProviderNotConfigured(name)
    return factory(credential)


class ProviderRegistry:
    """Name -> adapter table consulted by model-call nodes."""

    def __init__(self, credentials: Optional[Dict[str, str]] = None):
        self._adapters: Dict[str, ProviderAdapter] = {}
        self._lock = threading.Lock()
        for name, credential in (credentials or {}).items():
            self.register(name, credential)

    @classmethod
    def from_env(cls) -> "ProviderRegistry":
        return cls(config.provider_credentials_from_env())

    def register(self, name: str, credential: str) -> ProviderAdapter:
        """Create and register the adapter for ``name`` using ``credential``."""
        adapter = create_provider(name, credential)
        self.register_adapter(name, adapter)
        return adapter

    def register_adapter(self, name: str, adapter: ProviderAdapter) -> None:
        key = name.lower()
        with self._lock:
            self._adapters[key] = adapter
        logger.info(f"Registered provider adapter: {key} ({type(adapter).__name__})")

    def unregister(self, name: str) -> None:
        with self._lock:
            self._adapters.pop(name.lower(), None)

    def get(self, name: str) -> Optional[ProviderAdapter]:
        return self._adapters.get((name or "").lower())

    def require(self, name: str) -> ProviderAdapter:
        """Like get(), but raise ProviderNotConfigured when absent."""
        adapter = self.get(name)
        if adapter is None:
            raise ProviderNotConfigured(name)
        return adapter

    def names(self) -> List[str]:
        return sorted(self._adapters)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    async def aclose(self) -> None:
        for adapter in list(self._adapters.values()):
            await adapter.aclose()
