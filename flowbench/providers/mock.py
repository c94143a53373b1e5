"""Deterministic provider used for tests, demos and dry runs. Never touches the network."""

from __future__ import annotations

import logging

from .base import LLMRequest, LLMResponse, ProviderAdapter, TokenUsage

logger = logging.getLogger(__name__)

MOCK_RESPONSE_PREFIX = "Mock response"


def _count_tokens(text: str) -> int:
    # Whitespace tokens are stable across runs, which is all the mock needs
    return len(text.split())


class MockProvider(ProviderAdapter):
    """Echo-style adapter with reproducible content and token counts."""

    name = "mock"

    def __init__(self, credential: str = "mock-key", response: str = ""):
        self.credential = credential
        self.response = response
        self.calls: list = []

    async def call(self, request: LLMRequest) -> LLMResponse:
        self.calls.append(request)
        if self.response:
            content = self.response
        else:
            preview = request.prompt[:200]
            content = f"{MOCK_RESPONSE_PREFIX} from {request.model_id}: {preview}"

        usage = TokenUsage(
            prompt_tokens=_count_tokens(request.prompt),
            completion_tokens=_count_tokens(content),
        )
        logger.debug(f"MockProvider answered {request.model_id} ({usage.total_tokens} tokens)")
        return LLMResponse(content=content, usage=usage, model=request.model_id)
