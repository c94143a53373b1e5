"""Shared fixtures for flowbench tests.

Provides:
- An isolated log directory (set before flowbench is imported)
- A provider registry with the mock adapter registered
- Executors wired to a real subprocess sandbox
"""

from __future__ import annotations

import os
import tempfile

os.environ.setdefault("FLOWBENCH_LOG_DIR", tempfile.mkdtemp(prefix="flowbench-logs-"))

import pytest  # noqa: E402

from flowbench.engine.executor import ExecutorOptions, WorkflowExecutor  # noqa: E402
from flowbench.providers import ProviderRegistry  # noqa: E402
from flowbench.sandbox import SandboxExecutor  # noqa: E402


@pytest.fixture
def registry() -> ProviderRegistry:
    """Registry with only the mock provider registered."""
    return ProviderRegistry({"mock": "mock-key"})


@pytest.fixture
def sandbox() -> SandboxExecutor:
    return SandboxExecutor(timeout_ms=10000)


@pytest.fixture
def executor(registry, sandbox) -> WorkflowExecutor:
    return WorkflowExecutor(providers=registry, sandbox=sandbox)


@pytest.fixture
def fast_options() -> ExecutorOptions:
    return ExecutorOptions(timeout_ms=2000, max_concurrency=1)
