"""Exception hierarchy for flowbench.

Definition errors (ShapeError, CycleError) fail a run before any node
executes. Configuration and execution errors are recorded against the node
that raised them and never escape WorkflowExecutor.execute.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class FlowbenchError(Exception):
    """Base class for all flowbench errors."""
    pass


class WorkflowValidationError(FlowbenchError):
    """Raised when a workflow definition cannot be executed."""
    pass


class ShapeError(WorkflowValidationError):
    """Raised for malformed definitions: no nodes, bad ids, unknown kinds, dangling edges."""
    pass


class CycleError(WorkflowValidationError):
    """Raised when the edge set contains a cycle."""

    def __init__(self, unsorted: Sequence[str], cycle_path: Optional[Sequence[str]] = None):
        self.unsorted: List[str] = list(unsorted)
        self.cycle_path: List[str] = list(cycle_path or [])
        detail = " -> ".join(self.cycle_path) if self.cycle_path else ", ".join(self.unsorted)
        super().__init__(f"Workflow contains cycles, which are not supported: {detail}")


class ConfigurationError(FlowbenchError):
    """Raised when a node refers to something that is not configured."""
    pass


class ProviderNotConfigured(ConfigurationError):
    """Raised when a model-call node names a provider with no registered adapter."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"LLM provider {provider} is not configured. Please add an API key."
        )


class PackageNotAllowed(ConfigurationError):
    """Raised when a package-call node names a package outside the allow-list."""

    def __init__(self, package_name: str, allowed: Sequence[str]):
        self.package_name = package_name
        self.allowed = list(allowed)
        super().__init__(
            f"Package '{package_name}' is not in the allowed list. "
            f"Allowed packages: {', '.join(self.allowed)}"
        )


class ProviderCallError(FlowbenchError):
    """Raised by provider adapters for any transport or API failure."""
    pass


class NodeExecutionError(FlowbenchError):
    """Raised by node executors; the message is recorded on the node result."""

    def __init__(self, message: str, node_id: str = ""):
        self.node_id = node_id
        super().__init__(message)


class SandboxViolation(FlowbenchError):
    """Raised when a snippet uses a construct the restricted interpreter forbids."""
    pass


class ExecutionCancelled(FlowbenchError):
    """Raised inside the orchestrator when the caller's cancel event fires."""

    def __init__(self):
        super().__init__("Execution cancelled")
