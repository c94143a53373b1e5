"""Flowbench runtime settings: tunable parameters for workflow execution.

All values read from environment variables with sensible defaults. Import
from here instead of hardcoding.

Infrastructure config (provider keys, endpoints, sandbox interpreter) stays
in flowbench/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _bool(key: str, default: bool) -> bool:
    return os.getenv(key, str(default)).lower() in ("true", "1", "yes")


# =====================================================================
# Orchestrator
# =====================================================================

# Per-node execution budget (milliseconds)
WORKFLOW_TIMEOUT_MS = _int("WORKFLOW_TIMEOUT_MS", 30000)

# Nodes of the same dependency level run concurrently when > 1
WORKFLOW_MAX_CONCURRENCY = _int("WORKFLOW_MAX_CONCURRENCY", 1)


# =====================================================================
# Sandbox
# =====================================================================

# Wall-clock limit per snippet (milliseconds)
SANDBOX_TIMEOUT_MS = _int("SANDBOX_TIMEOUT_MS", 10000)

# Address-space ceiling for the child process (MB, 0 disables)
SANDBOX_MEMORY_LIMIT_MB = _int("SANDBOX_MEMORY_LIMIT_MB", 512)

# Headroom left between the sandbox budget and the node dispatch budget (milliseconds)
SANDBOX_TIMEOUT_MARGIN_MS = _int("SANDBOX_TIMEOUT_MARGIN_MS", 250)

# Reject snippets longer than this (characters)
SANDBOX_MAX_CODE_LENGTH = _int("SANDBOX_MAX_CODE_LENGTH", 20000)

# Reject child result messages larger than this (bytes)
SANDBOX_MAX_OUTPUT_BYTES = _int("SANDBOX_MAX_OUTPUT_BYTES", 1024 * 1024)

# Bind an installed third-party module instead of the bundled mock when one exists
SANDBOX_PREFER_REAL_PACKAGES = _bool("SANDBOX_PREFER_REAL_PACKAGES", False)


# =====================================================================
# LLM providers
# =====================================================================

LLM_DEFAULT_TEMPERATURE = _float("LLM_DEFAULT_TEMPERATURE", 0.7)
LLM_DEFAULT_MAX_TOKENS = _int("LLM_DEFAULT_MAX_TOKENS", 1024)
LLM_HTTP_TIMEOUT = _float("LLM_HTTP_TIMEOUT", 60.0)


# =====================================================================
# HTTP event sink
# =====================================================================

EVENT_HTTP_TIMEOUT = _float("EVENT_HTTP_TIMEOUT", 5.0)
EVENT_HTTP_MAX_CONNECTIONS = _int("EVENT_HTTP_MAX_CONNECTIONS", 10)
EVENT_HTTP_MAX_KEEPALIVE = _int("EVENT_HTTP_MAX_KEEPALIVE", 5)
