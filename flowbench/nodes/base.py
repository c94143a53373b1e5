"""Input and output node executors."""

from __future__ import annotations

import logging
from typing import Any

from ..engine.models import Node, NodeKind
from .registry import NodeContext, NodeExecutor, NodeOutput, register_node_executor

logger = logging.getLogger(__name__)


def default_value(node: Node) -> Any:
    """Configured fallback for an input node, config first, then data."""
    for source in (node.config, node.data):
        for key in ("default_value", "defaultValue"):
            if source.get(key) is not None:
                return source[key]
    return None


@register_node_executor(NodeKind.INPUT)
class InputExecutor(NodeExecutor):
    """Emits the run's initial input, or the node's default value when there is none."""

    async def execute(self, node: Node, input_data: Any, context: NodeContext) -> NodeOutput:
        value = input_data if input_data is not None else default_value(node)
        logger.debug(f"Input node {node.id}: {'initial input' if input_data is not None else 'default value'}")
        return NodeOutput(output=value)


@register_node_executor(NodeKind.OUTPUT)
class OutputExecutor(NodeExecutor):
    """Passes its resolved input through unchanged."""

    async def execute(self, node: Node, input_data: Any, context: NodeContext) -> NodeOutput:
        return NodeOutput(output=input_data)
