"""Model-call node executor.

Node data keys: ``provider``, ``model_id`` (or ``modelId``), ``input_price``
and ``output_price`` (USD per million tokens). Config keys: ``temperature``,
``max_tokens``, ``system`` and an optional ``prompt`` template in which
``{{input}}`` is replaced by the serialized input.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

from ..engine.models import Node, NodeKind
from ..errors import NodeExecutionError, ProviderNotConfigured
from ..providers.base import LLMRequest
from ..settings import LLM_DEFAULT_TEMPERATURE
from .registry import NodeContext, NodeExecutor, NodeOutput, register_node_executor

logger = logging.getLogger(__name__)

TOKENS_PER_PRICE_UNIT = 1_000_000


def _first(mapping: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return default


_PLACEHOLDER = re.compile(r"\{\{\s*input((?:\.\w+)*)\s*\}\}")


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)


def build_prompt(input_data: Any, template: str = "") -> str:
    """Render the prompt for a model call.

    Without a template the input is the prompt: strings verbatim, anything
    else JSON-serialized. A template's ``{{input}}`` placeholders take the
    same text; ``{{input.a.b}}`` takes a nested field (empty when missing).
    """
    if not template:
        return _as_text(input_data)

    def replace(match: "re.Match") -> str:
        value = input_data
        for key in filter(None, match.group(1).split(".")):
            value = value.get(key) if isinstance(value, dict) else None
        return "" if value is None and match.group(1) else _as_text(value)

    return _PLACEHOLDER.sub(replace, template)


def compute_cost(prompt_tokens: int, completion_tokens: int,
                 input_price: float, output_price: float) -> float:
    """USD cost for a call, prices given per million tokens."""
    return (
        prompt_tokens * input_price / TOKENS_PER_PRICE_UNIT
        + completion_tokens * output_price / TOKENS_PER_PRICE_UNIT
    )


@register_node_executor(NodeKind.LLM)
class LLMExecutor(NodeExecutor):

    async def execute(self, node: Node, input_data: Any, context: NodeContext) -> NodeOutput:
        provider_name = str(_first(node.data, "provider", default="")).lower()
        adapter = context.providers.get(provider_name)
        if adapter is None:
            raise ProviderNotConfigured(provider_name)

        temperature = _first(node.config, "temperature", default=LLM_DEFAULT_TEMPERATURE)
        request = LLMRequest(
            model_id=str(_first(node.data, "model_id", "modelId", "model", default="")),
            prompt=build_prompt(input_data, node.config.get("prompt", "")),
            temperature=float(temperature),
            max_tokens=_first(node.config, "max_tokens", "maxTokens"),
            system=node.config.get("system"),
        )

        logger.info(f"LLM node {node.id}: {provider_name}/{request.model_id}")
        try:
            response = await adapter.call(request)
        except Exception as e:
            raise NodeExecutionError(f"Error executing LLM node: {e}", node.id) from e

        usage = response.usage
        cost = compute_cost(
            usage.prompt_tokens,
            usage.completion_tokens,
            float(_first(node.data, "input_price", "inputPrice", default=0.0)),
            float(_first(node.data, "output_price", "outputPrice", default=0.0)),
        )
        return NodeOutput(output=response.content, cost=cost, tokens_used=usage.total_tokens)
