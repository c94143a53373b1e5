"""Workflow Engine: data model, validation and scheduling.

The orchestrator lives in flowbench.engine.executor and is re-exported from
the top-level flowbench package.
"""

from .models import (
    Edge,
    Node,
    NodeKind,
    NodeMetrics,
    NodeResult,
    NodeStatus,
    RunStatus,
    Workflow,
    WorkflowResult,
)
from .scheduler import (
    ValidationIssue,
    check_workflow,
    execution_levels,
    find_cycle,
    incoming_sources,
    topological_sort,
    validate_workflow,
)

__all__ = [
    "Edge",
    "Node",
    "NodeKind",
    "NodeMetrics",
    "NodeResult",
    "NodeStatus",
    "RunStatus",
    "Workflow",
    "WorkflowResult",
    "ValidationIssue",
    "check_workflow",
    "execution_levels",
    "find_cycle",
    "incoming_sources",
    "topological_sort",
    "validate_workflow",
]
