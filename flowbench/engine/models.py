"""Workflow data model.

Key Components:
- NodeKind / NodeStatus / RunStatus: string enums shared across the engine
- Node, Edge, Workflow: the immutable definition a caller hands to the engine
- NodeMetrics, NodeResult, WorkflowResult: what a run produces

Definitions are never mutated by a run. Per-run node status lives in
WorkflowResult.node_status.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class NodeKind(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    LLM = "llm"
    PACKAGE = "package"


class NodeStatus(str, Enum):
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class RunStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


def now_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000


@dataclass
class Node:
    """A single workflow node.

    Attributes:
        id: Unique node identifier
        kind: One of NodeKind; kept as given so validation can report unknown kinds
        data: Kind-specific payload (provider/model/prices, package name, label)
        config: Free-form settings (temperature, max_tokens, code, default_value)
        status: Definition-time status; runs never write to it
        position: Optional canvas coordinates, carried through untouched
    """

    id: str
    kind: str
    data: Dict[str, Any] = field(default_factory=dict)
    config: Dict[str, Any] = field(default_factory=dict)
    status: NodeStatus = NodeStatus.READY
    position: Optional[Dict[str, float]] = None

    @property
    def label(self) -> str:
        return str(self.data.get("label") or self.data.get("name") or self.id)


@dataclass(frozen=True)
class Edge:
    """Directed dependency: target consumes source's output."""

    source: str
    target: str
    id: Optional[str] = None


@dataclass
class Workflow:
    name: str
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    id: Optional[str] = None
    description: str = ""

    @property
    def workflow_id(self) -> str:
        return self.id or self.name

    def node_map(self) -> Dict[str, Node]:
        return {node.id: node for node in self.nodes}


@dataclass
class NodeMetrics:
    start_time: float = 0.0
    end_time: float = 0.0
    memory_usage: float = 0.0
    cost: float = 0.0
    tokens_used: int = 0

    @property
    def execution_time(self) -> float:
        """Elapsed milliseconds between start and end."""
        return max(0.0, self.end_time - self.start_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "execution_time": self.execution_time,
            "memory_usage": self.memory_usage,
            "cost": self.cost,
            "tokens_used": self.tokens_used,
        }


@dataclass
class NodeResult:
    node_id: str
    output: Any = None
    error: Optional[str] = None
    metrics: NodeMetrics = field(default_factory=NodeMetrics)

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "node_id": self.node_id,
            "output": self.output,
            "metrics": self.metrics.to_dict(),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class WorkflowResult:
    """Outcome of one execute() call.

    Attributes:
        workflow_id: Id (or name) of the executed workflow
        status: completed, partial (some nodes errored) or failed (aborted)
        results: node id -> NodeResult, in execution order
        node_status: per-run status of every node in the definition
        error_message: Set for failed and partial runs
    """

    workflow_id: str
    status: RunStatus = RunStatus.COMPLETED
    results: Dict[str, NodeResult] = field(default_factory=dict)
    node_status: Dict[str, NodeStatus] = field(default_factory=dict)
    start_time: float = 0.0
    end_time: float = 0.0
    total_cost: float = 0.0
    error_message: Optional[str] = None

    @property
    def execution_time(self) -> float:
        return max(0.0, self.end_time - self.start_time)

    @property
    def failed_nodes(self) -> List[str]:
        return [node_id for node_id, r in self.results.items() if r.error is not None]

    def output_of(self, node_id: str) -> Any:
        result = self.results.get(node_id)
        return result.output if result else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "status": self.status.value,
            "results": {node_id: r.to_dict() for node_id, r in self.results.items()},
            "node_status": {node_id: s.value for node_id, s in self.node_status.items()},
            "start_time": self.start_time,
            "end_time": self.end_time,
            "execution_time": self.execution_time,
            "total_cost": self.total_cost,
            "error_message": self.error_message,
        }
