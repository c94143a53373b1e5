"""flowbench: a DAG workflow engine for model calls and sandboxed package snippets."""

from .analytics import ExecutionAnalytics, analyze_execution, generate_performance_tips
from .engine.executor import ExecutorOptions, WorkflowExecutor, WorkflowRun
from .engine.models import (
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
from .errors import (
    CycleError,
    FlowbenchError,
    NodeExecutionError,
    PackageNotAllowed,
    ProviderCallError,
    ProviderNotConfigured,
    ShapeError,
)
from .events import CollectingEventSink, EventType, WorkflowEvent
from .providers import MockProvider, ProviderRegistry
from .sandbox import SandboxExecutor, SandboxResult
from .schemas import load_workflow, load_workflow_json

__version__ = "0.1.0"

__all__ = [
    "ExecutionAnalytics",
    "analyze_execution",
    "generate_performance_tips",
    "ExecutorOptions",
    "WorkflowExecutor",
    "WorkflowRun",
    "Edge",
    "Node",
    "NodeKind",
    "NodeMetrics",
    "NodeResult",
    "NodeStatus",
    "RunStatus",
    "Workflow",
    "WorkflowResult",
    "CycleError",
    "FlowbenchError",
    "NodeExecutionError",
    "PackageNotAllowed",
    "ProviderCallError",
    "ProviderNotConfigured",
    "ShapeError",
    "CollectingEventSink",
    "EventType",
    "WorkflowEvent",
    "MockProvider",
    "ProviderRegistry",
    "SandboxExecutor",
    "SandboxResult",
    "load_workflow",
    "load_workflow_json",
]
