"""Package-call node executor.

Node data keys: ``package_name`` (or ``packageName``). Config key: ``code``,
a Python function body that receives ``input`` and the package binding.
When no code is configured the catalog's default snippet for the package
runs.
"""

from __future__ import annotations

import logging
from typing import Any

from ..engine.models import Node, NodeKind
from ..errors import NodeExecutionError, ShapeError
from ..settings import SANDBOX_TIMEOUT_MARGIN_MS
from .registry import NodeContext, NodeExecutor, NodeOutput, register_node_executor

logger = logging.getLogger(__name__)


def package_name_of(node: Node) -> str:
    name = node.data.get("package_name") or node.data.get("packageName") or node.data.get("name")
    if not name:
        raise ShapeError(f"Package node {node.id} does not name a package")
    return str(name)


def sandbox_budget_ms(sandbox_timeout_ms: int, node_timeout_ms: int) -> int:
    """Per-call sandbox budget, kept under the node budget so the sandbox reports the timeout."""
    node_share = max(node_timeout_ms - SANDBOX_TIMEOUT_MARGIN_MS, node_timeout_ms // 2)
    return min(sandbox_timeout_ms, node_share)


@register_node_executor(NodeKind.PACKAGE)
class PackageExecutor(NodeExecutor):

    async def execute(self, node: Node, input_data: Any, context: NodeContext) -> NodeOutput:
        package_name = package_name_of(node)
        code = node.config.get("code") or context.sandbox.catalog.default_code(package_name)

        result = await context.sandbox.execute(
            package_name, code, input_data,
            timeout_ms=sandbox_budget_ms(context.sandbox.timeout_ms, context.timeout_ms),
        )
        for line in result.logs:
            logger.info(f"[{node.id}] {line.rstrip()}")

        if not result.success:
            raise NodeExecutionError(f"Error executing package node: {result.error}", node.id)

        return NodeOutput(output=result.output, memory_usage=result.memory_usage)
