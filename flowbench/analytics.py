"""Execution Analytics

Pure summaries of a WorkflowResult: performance, estimated cost, quality
and a per-node breakdown, plus human-readable tuning tips.

The summary is a function of its input only; analysing the same result
twice gives equal summaries.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .engine.models import NodeKind, RunStatus, Workflow, WorkflowResult

# Compute cost constants
COMPUTE_COST_PER_SEC = 0.00003  # $0.03 per 1000 seconds
STORAGE_COST_PER_GB = 0.02
NETWORK_COST_PER_GB = 0.01
MIN_USAGE_MB = 10  # Floor for reported peak memory
BYTES_PER_TOKEN = 4

# Tip thresholds
SLOW_WORKFLOW_MS = 10000
HIGH_MEMORY_MB = 100
HIGH_LLM_COST = 0.1
SLOW_NODE_MS = 5000
HIGH_NODE_TOKENS = 1000

GENERAL_TIPS = (
    "Use parallel execution for independent operations to improve throughput.",
    "Cache results for frequently used operations to reduce API calls.",
)


@dataclass
class PerformanceMetrics:
    execution_time: float
    memory_usage: float
    throughput: float
    latency: float


@dataclass
class CostMetrics:
    llm_api_cost: float
    compute_resource_cost: float
    storage_cost: float
    network_cost: float
    total_cost: float


@dataclass
class QualityMetrics:
    success: bool
    error_rate: float
    completion_rate: float
    average_response_length: float


@dataclass
class NodeBreakdown:
    execution_time: float
    cost: float
    tokens_processed: int
    success: bool
    type: str
    name: str


@dataclass
class ExecutionAnalytics:
    performance: PerformanceMetrics
    cost: CostMetrics
    quality: QualityMetrics
    node_breakdown: Dict[str, NodeBreakdown] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _payload_kb(output: Any) -> float:
    if output is None:
        return 0.0
    if isinstance(output, str):
        return len(output) / 1024
    return len(json.dumps(output, default=str)) / 1024


def _describe_node(node_id: str, workflow: Optional[Workflow]) -> tuple:
    """(kind, name) for a node: from the definition when given, else from the ``<kind>_<name>`` id."""
    if workflow is not None:
        node = workflow.node_map().get(node_id)
        if node is not None:
            kind = node.kind.value if isinstance(node.kind, NodeKind) else str(node.kind)
            return kind, node.label
    parts = node_id.split("_")
    return parts[0], parts[1] if len(parts) > 1 and parts[1] else "unknown"


def analyze_execution(result: WorkflowResult, workflow: Optional[Workflow] = None) -> ExecutionAnalytics:
    """Summarise a workflow run."""
    node_results = list(result.results.values())
    execution_time = result.execution_time
    count = len(node_results)

    # Performance
    peak_memory = max([r.metrics.memory_usage or 0 for r in node_results] + [MIN_USAGE_MB])
    seconds = execution_time / 1000
    performance = PerformanceMetrics(
        execution_time=execution_time,
        memory_usage=peak_memory,
        throughput=count / seconds if count and seconds > 0 else 0.0,
        latency=sum(r.metrics.execution_time for r in node_results) / count if count else 0.0,
    )

    # Cost
    storage_mb = sum(_payload_kb(r.output) for r in node_results) / 1024
    network_mb = sum(r.metrics.tokens_used * BYTES_PER_TOKEN / 1024 for r in node_results) / 1024
    llm_cost = result.total_cost
    compute_cost = seconds * COMPUTE_COST_PER_SEC
    storage_cost = storage_mb / 1024 * STORAGE_COST_PER_GB
    network_cost = network_mb / 1024 * NETWORK_COST_PER_GB
    cost = CostMetrics(
        llm_api_cost=llm_cost,
        compute_resource_cost=compute_cost,
        storage_cost=storage_cost,
        network_cost=network_cost,
        total_cost=llm_cost + compute_cost + storage_cost + network_cost,
    )

    # Per-node
    breakdown: Dict[str, NodeBreakdown] = {}
    for node_id, r in result.results.items():
        kind, name = _describe_node(node_id, workflow)
        breakdown[node_id] = NodeBreakdown(
            execution_time=r.metrics.execution_time,
            cost=r.metrics.cost,
            tokens_processed=r.metrics.tokens_used,
            success=r.error is None,
            type=kind,
            name=name,
        )

    # Quality
    failed = sum(1 for r in node_results if r.error is not None)
    llm_outputs = [
        result.results[node_id].output for node_id, b in breakdown.items() if b.type == NodeKind.LLM.value
    ]
    completion = {RunStatus.COMPLETED: 1.0, RunStatus.PARTIAL: 0.5}.get(result.status, 0.0)
    quality = QualityMetrics(
        success=result.status == RunStatus.COMPLETED,
        error_rate=failed / count if count else 0.0,
        completion_rate=completion,
        average_response_length=(
            sum(len(o) if isinstance(o, str) else 0 for o in llm_outputs) / len(llm_outputs)
            if llm_outputs else 0.0
        ),
    )

    return ExecutionAnalytics(performance=performance, cost=cost, quality=quality, node_breakdown=breakdown)


def generate_performance_tips(analytics: ExecutionAnalytics) -> List[str]:
    """Threshold-based suggestions, followed by the general tips."""
    tips: List[str] = []

    if analytics.performance.execution_time > SLOW_WORKFLOW_MS:
        tips.append("Consider optimizing long-running components to improve overall performance.")
    if analytics.performance.memory_usage > HIGH_MEMORY_MB:
        tips.append("High memory usage detected. Consider processing data in smaller chunks.")
    if analytics.cost.llm_api_cost > HIGH_LLM_COST:
        tips.append("Consider using smaller, more efficient LLM models for better cost-efficiency.")
    if analytics.quality.error_rate > 0:
        tips.append("Some components failed. Add error handling and fallback mechanisms.")

    for node in analytics.node_breakdown.values():
        if node.execution_time > SLOW_NODE_MS:
            tips.append(
                f'Node "{node.name}" took {round(node.execution_time / 1000)}s to execute. Consider optimization.'
            )
        if node.type == NodeKind.LLM.value and node.tokens_processed > HIGH_NODE_TOKENS:
            tips.append(
                f'High token usage in "{node.name}". Consider reducing input length or using a more efficient prompt.'
            )

    tips.extend(GENERAL_TIPS)
    return tips
