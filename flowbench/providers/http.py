"""HTTP Provider Adapters

Adapters for hosted and local model APIs, all on a pooled httpx.AsyncClient.

Key Components:
- HttpProvider: shared client handling and error translation
- OpenAICompatibleProvider: /chat/completions (OpenAI, DeepSeek)
- AnthropicProvider: /v1/messages
- OllamaProvider: /api/generate on a local Ollama server

Every transport error, non-2xx status or malformed payload becomes a
ProviderCallError. No retries happen here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .. import config
from ..errors import ProviderCallError
from ..settings import LLM_HTTP_TIMEOUT
from .base import LLMRequest, LLMResponse, ProviderAdapter, TokenUsage

logger = logging.getLogger(__name__)


class HttpProvider(ProviderAdapter):
    """Base for adapters that speak JSON over HTTP."""

    def __init__(
        self,
        credential: str,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = LLM_HTTP_TIMEOUT,
    ):
        self.credential = credential
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {"content-type": "application/json"}

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            client = self._get_http_client()
            response = await client.post(url, json=body, headers=self._headers())
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:300]
            raise ProviderCallError(
                f"LLM call failed: {self.name} returned {e.response.status_code}: {detail}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderCallError(f"LLM call failed: {self.name}: {e}") from e
        except ValueError as e:
            raise ProviderCallError(f"LLM call failed: {self.name} sent invalid JSON: {e}") from e

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()


class OpenAICompatibleProvider(HttpProvider):
    """Chat-completions API as served by OpenAI, DeepSeek and compatible gateways."""

    def __init__(self, credential: str, base_url: str = config.OPENAI_BASE_URL,
                 name: str = "openai", **kwargs):
        super().__init__(credential, base_url, **kwargs)
        self.name = name

    def _headers(self) -> Dict[str, str]:
        return {
            "authorization": f"Bearer {self.credential}",
            "content-type": "application/json",
        }

    async def call(self, request: LLMRequest) -> LLMResponse:
        messages = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.append({"role": "user", "content": request.prompt})

        data = await self._post("/chat/completions", {
            "model": request.model_id,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.token_limit,
        })

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderCallError(f"LLM call failed: {self.name} response has no choices") from e

        usage = data.get("usage") or {}
        return LLMResponse(
            content=content,
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
            ),
            model=data.get("model", request.model_id),
        )


class AnthropicProvider(HttpProvider):
    name = "anthropic"

    def __init__(self, credential: str, base_url: str = config.ANTHROPIC_BASE_URL, **kwargs):
        super().__init__(credential, base_url, **kwargs)

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.credential,
            "anthropic-version": config.ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    async def call(self, request: LLMRequest) -> LLMResponse:
        body = {
            "model": request.model_id,
            "max_tokens": request.token_limit,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": request.temperature,
        }
        if request.system:
            body["system"] = request.system

        data = await self._post("/v1/messages", body)

        # Extract text from content blocks
        text_parts = [
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        ]
        usage = data.get("usage") or {}
        return LLMResponse(
            content="".join(text_parts),
            usage=TokenUsage(
                prompt_tokens=usage.get("input_tokens", 0),
                completion_tokens=usage.get("output_tokens", 0),
            ),
            model=data.get("model", request.model_id),
        )


class OllamaProvider(HttpProvider):
    name = "ollama"

    def __init__(self, credential: str = "", base_url: str = config.OLLAMA_BASE_URL, **kwargs):
        super().__init__(credential, base_url, **kwargs)

    async def call(self, request: LLMRequest) -> LLMResponse:
        body = {
            "model": request.model_id,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": request.temperature,
                "num_predict": request.token_limit,
            },
        }
        if request.system:
            body["system"] = request.system

        data = await self._post("/api/generate", body)
        return LLMResponse(
            content=data.get("response", ""),
            usage=TokenUsage(
                prompt_tokens=data.get("prompt_eval_count", 0),
                completion_tokens=data.get("eval_count", 0),
            ),
            model=data.get("model", request.model_id),
        )
