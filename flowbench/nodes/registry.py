"""Node Executor Registry

One executor strategy per node kind, looked up in a dispatch table.

Key Components:
- NodeContext: collaborators an executor may use during a run
- NodeOutput: what an executor hands back to the orchestrator
- NodeExecutor: abstract base class for executors
- register_node_executor: decorator registering an executor for a kind
- get_node_executor: dispatch lookup

Adding a node kind means adding a NodeKind member and registering one class.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from ..engine.models import Node, NodeKind
from ..errors import ShapeError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="NodeExecutor")


@dataclass
class NodeContext:
    """Per-run collaborators handed to every executor.

    Attributes:
        run_id: Identifier of the current run
        providers: ProviderRegistry used by model-call nodes
        sandbox: SandboxExecutor used by package-call nodes
        timeout_ms: Per-node budget for the orchestrator's dispatch
    """

    run_id: str
    providers: Any
    sandbox: Any
    timeout_ms: int


@dataclass
class NodeOutput:
    output: Any = None
    cost: float = 0.0
    tokens_used: int = 0
    memory_usage: float = 0.0


class NodeExecutor(ABC):
    """Executes nodes of a single kind."""

    kind: NodeKind

    @abstractmethod
    async def execute(self, node: Node, input_data: Any, context: NodeContext) -> NodeOutput:
        """Run ``node`` against its resolved input.

        Raises:
            FlowbenchError: Recorded as the node's error by the orchestrator
        """
        pass


# Global dispatch table
NODE_EXECUTORS: Dict[NodeKind, NodeExecutor] = {}


def register_node_executor(kind: NodeKind) -> Callable[[Type[T]], Type[T]]:
    """Decorator registering an executor class for ``kind``.

    Example:
        @register_node_executor(NodeKind.OUTPUT)
        class OutputExecutor(NodeExecutor):
            async def execute(self, node, input_data, context):
                return NodeOutput(output=input_data)
    """

    def decorator(cls: Type[T]) -> Type[T]:
        cls.kind = kind
        NODE_EXECUTORS[kind] = cls()
        logger.debug(f"Registered node executor: {kind.value} ({cls.__name__})")
        return cls

    return decorator


def get_node_executor(kind: Any) -> NodeExecutor:
    """Return the executor for ``kind``.

    Raises:
        ShapeError: No executor registered for ``kind``
    """
    try:
        key = NodeKind(kind)
    except ValueError:
        raise ShapeError(f"Unsupported node type: {kind}") from None
    executor: Optional[NodeExecutor] = NODE_EXECUTORS.get(key)
    if executor is None:
        raise ShapeError(f"Unsupported node type: {kind}")
    return executor
