"""Unified logging configuration for flowbench."""
from __future__ import annotations

import logging
import os
from pathlib import Path

# Log directory, configurable via FLOWBENCH_LOG_DIR env var
LOG_DIR = Path(os.getenv("FLOWBENCH_LOG_DIR", str(Path.cwd() / "logs")))

# Prevent duplicate handlers
_configured_loggers: set[str] = set()


def setup_logger(name: str, filename: str) -> logging.Logger:
    """Setup a logger with file and console handlers.

    Args:
        name: Logger name (e.g., 'flowbench.engine', 'flowbench.sandbox')
        filename: Log file name (e.g., 'engine.log')

    Returns:
        Configured logger instance
    """
    if name in _configured_loggers:
        return logging.getLogger(name)

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.propagate = False  # Prevent duplicate logs

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    # File handler
    fh = logging.FileHandler(LOG_DIR / filename, encoding='utf-8')
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
    ))

    # Console handler
    sh = logging.StreamHandler()
    sh.setLevel(logging.INFO)
    sh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] %(message)s"
    ))

    logger.addHandler(fh)
    logger.addHandler(sh)

    _configured_loggers.add(name)
    return logger


# Pre-configured loggers
def get_engine_logger() -> logging.Logger:
    """Logger for workflow lifecycle events."""
    return setup_logger("flowbench.events", "engine.log")


def get_sandbox_logger() -> logging.Logger:
    """Logger for sandbox child process activity."""
    return setup_logger("flowbench.sandbox.activity", "sandbox.log")
