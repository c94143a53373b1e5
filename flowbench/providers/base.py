"""Provider adapter interface.

A provider adapter turns an LLMRequest into an LLMResponse. Adapters raise
ProviderCallError for every failure so callers need to handle one type only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..settings import LLM_DEFAULT_MAX_TOKENS, LLM_DEFAULT_TEMPERATURE


@dataclass
class LLMRequest:
    model_id: str
    prompt: str
    temperature: float = LLM_DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = None
    system: Optional[str] = None

    @property
    def token_limit(self) -> int:
        return self.max_tokens or LLM_DEFAULT_MAX_TOKENS


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class LLMResponse:
    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str = ""


class ProviderAdapter(ABC):
    """Abstract model provider.

    Implementations must be safe to call concurrently once constructed.
    """

    name: str = ""

    @abstractmethod
    async def call(self, request: LLMRequest) -> LLMResponse:
        """Run one completion.

        Raises:
            ProviderCallError: For any transport, status or payload failure
        """
        pass

    async def aclose(self) -> None:
        """Release pooled resources. Adapters without any may ignore this."""
        return None
