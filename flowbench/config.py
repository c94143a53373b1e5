"""Flowbench configuration constants: the single source of truth for infrastructure env vars."""

import os
import sys

# Model provider credentials; an empty string means "not configured"
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", "")

# Ollama needs no key; set OLLAMA_ENABLED to register it from the environment
OLLAMA_ENABLED = os.getenv("OLLAMA_ENABLED", "false").lower() in ("true", "1", "yes")

# Provider endpoints, overridable for proxies or self-hosted gateways
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
DEEPSEEK_BASE_URL = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1")
ANTHROPIC_BASE_URL = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com")
ANTHROPIC_VERSION = os.getenv("ANTHROPIC_VERSION", "2023-06-01")
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://127.0.0.1:11434")

# Interpreter used for sandbox child processes, resolved once at import time
SANDBOX_PYTHON = os.getenv("SANDBOX_PYTHON") or sys.executable

# Optional HTTP target for lifecycle events (e.g. http://127.0.0.1:8000)
EVENT_SINK_URL = os.getenv("EVENT_SINK_URL", "")


def provider_credentials_from_env() -> dict:
    """Collect provider name -> credential pairs that are set in the environment."""
    credentials = {
        "openai": OPENAI_API_KEY,
        "anthropic": ANTHROPIC_API_KEY,
        "deepseek": DEEPSEEK_API_KEY,
    }
    if OLLAMA_ENABLED:
        credentials["ollama"] = "local"
    return {name: key for name, key in credentials.items() if key}
