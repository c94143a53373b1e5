"""Node executors. Importing this package registers every built-in kind."""

from .registry import (
    NODE_EXECUTORS,
    NodeContext,
    NodeExecutor,
    NodeOutput,
    get_node_executor,
    register_node_executor,
)
from .base import InputExecutor, OutputExecutor
from .llm import LLMExecutor, build_prompt, compute_cost
from .package import PackageExecutor

__all__ = [
    "NODE_EXECUTORS",
    "NodeContext",
    "NodeExecutor",
    "NodeOutput",
    "get_node_executor",
    "register_node_executor",
    "InputExecutor",
    "OutputExecutor",
    "LLMExecutor",
    "build_prompt",
    "compute_cost",
    "PackageExecutor",
]
