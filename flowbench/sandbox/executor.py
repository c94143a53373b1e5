"""Sandbox Executor

Runs one package snippet per call in a fresh Python child process.

Contract:
- The package must be on the allow-list; otherwise nothing is spawned.
- One JSON start message goes to the child's stdin and one JSON result
  message comes back on its stdout. There is no other channel.
- The child gets a scrubbed environment and an address-space limit.
- If no result arrives within the timeout the child is killed and reaped,
  and the call fails with "Execution timeout". No child outlives a call,
  including when the awaiting task is cancelled.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .. import config
from ..errors import PackageNotAllowed
from ..logging_config import get_sandbox_logger
from ..settings import (
    SANDBOX_MAX_CODE_LENGTH,
    SANDBOX_MAX_OUTPUT_BYTES,
    SANDBOX_MEMORY_LIMIT_MB,
    SANDBOX_PREFER_REAL_PACKAGES,
    SANDBOX_TIMEOUT_MS,
)
from .packages import DEFAULT_ALLOWED_PACKAGES, DEFAULT_CATALOG, PackageCatalog

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "Execution timeout"

SANDBOX_TYPE = "subprocess"

# Directory containing the flowbench package, so the child can import it
_PACKAGE_ROOT = str(Path(__file__).resolve().parent.parent.parent)


@dataclass
class SandboxResult:
    success: bool
    output: Any = None
    error: Optional[str] = None
    execution_time_ms: float = 0.0
    memory_usage: float = 0.0
    sandbox_type: str = SANDBOX_TYPE
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "execution_time_ms": self.execution_time_ms,
            "memory_usage": self.memory_usage,
            "sandbox_type": self.sandbox_type,
            "logs": self.logs,
        }


def _child_env() -> Dict[str, str]:
    env = {
        "PYTHONPATH": _PACKAGE_ROOT,
        "PYTHONIOENCODING": "utf-8",
        "PYTHONDONTWRITEBYTECODE": "1",
    }
    # Windows cannot start Python without these
    for key in ("SYSTEMROOT", "SYSTEMDRIVE"):
        if key in os.environ:
            env[key] = os.environ[key]
    return env


class SandboxExecutor:
    """Allow-listed, time-boxed snippet execution in a child process.

    Args:
        allowed_packages: Package names snippets may use (defaults to the built-in catalog)
        timeout_ms: Wall-clock budget per call
        memory_limit_mb: Address-space limit for the child (0 disables)
        catalog: Package catalog providing bindings and implementations
        prefer_real_packages: Bind installed real modules where the catalog names one
    """

    def __init__(
        self,
        allowed_packages: Optional[Sequence[str]] = None,
        timeout_ms: int = SANDBOX_TIMEOUT_MS,
        memory_limit_mb: int = SANDBOX_MEMORY_LIMIT_MB,
        catalog: Optional[PackageCatalog] = None,
        prefer_real_packages: bool = SANDBOX_PREFER_REAL_PACKAGES,
        python: str = config.SANDBOX_PYTHON,
    ):
        self.allowed_packages = list(allowed_packages) if allowed_packages is not None \
            else list(DEFAULT_ALLOWED_PACKAGES)
        self.timeout_ms = timeout_ms
        self.memory_limit_mb = memory_limit_mb
        self.catalog = catalog or DEFAULT_CATALOG
        self.prefer_real_packages = prefer_real_packages
        self.python = python
        self._activity = get_sandbox_logger()

    def is_allowed(self, package_name: str) -> bool:
        return package_name in self.allowed_packages

    def _start_message(self, package_name: str, code: str, input_data: Any) -> Dict[str, Any]:
        spec = self.catalog.get(package_name)
        return {
            "package_name": package_name,
            "code": code,
            "input": input_data,
            "binding": spec.binding if spec else None,
            "mock": spec.mock if spec else None,
            "module": spec.module if spec else None,
            "prefer_real": self.prefer_real_packages,
            "memory_limit_mb": self.memory_limit_mb,
            "max_code_length": SANDBOX_MAX_CODE_LENGTH,
        }

    async def execute(
        self,
        package_name: str,
        code: str,
        input_data: Any = None,
        timeout_ms: Optional[int] = None,
    ) -> SandboxResult:
        """Run ``code`` with ``package_name`` bound, returning a SandboxResult.

        Never raises for snippet or sandbox failures; they are reported in
        the result. Task cancellation propagates after the child is killed.
        """
        started = time.perf_counter()

        def elapsed() -> float:
            return round((time.perf_counter() - started) * 1000, 2)

        if not self.is_allowed(package_name):
            error = str(PackageNotAllowed(package_name, self.allowed_packages))
            logger.warning(error)
            return SandboxResult(success=False, error=error, execution_time_ms=elapsed())

        try:
            payload = json.dumps(self._start_message(package_name, code, input_data)).encode("utf-8")
        except (TypeError, ValueError) as e:
            return SandboxResult(
                success=False, error=f"Input is not JSON-serializable: {e}", execution_time_ms=elapsed(),
            )

        budget_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        cmd = [self.python, "-s", "-m", "flowbench.sandbox.runner"]

        with tempfile.TemporaryDirectory(prefix="flowbench-sandbox-") as workdir:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=_child_env(),
                    cwd=workdir,
                )
            except OSError as e:
                self._activity.error(f"Failed to start sandbox for {package_name}: {e}")
                return SandboxResult(
                    success=False, error=f"Failed to start sandbox: {e}", execution_time_ms=elapsed(),
                )
            self._activity.info(f"Started sandbox pid={proc.pid} package={package_name}")

            try:
                stdout, stderr = await asyncio.wait_for(
                    proc.communicate(payload), timeout=budget_ms / 1000,
                )
            except asyncio.TimeoutError:
                self._activity.warning(
                    f"Sandbox pid={proc.pid} timed out after {budget_ms}ms, killing"
                )
                return SandboxResult(success=False, error=TIMEOUT_ERROR, execution_time_ms=elapsed())
            finally:
                if proc.returncode is None:
                    proc.kill()
                    await proc.wait()

        return self._parse_result(stdout, stderr, proc.returncode, elapsed())

    def _parse_result(self, stdout: bytes, stderr: bytes, returncode: Optional[int],
                      execution_time_ms: float) -> SandboxResult:
        if len(stdout) > SANDBOX_MAX_OUTPUT_BYTES:
            return SandboxResult(
                success=False,
                error=f"Output exceeds {SANDBOX_MAX_OUTPUT_BYTES} bytes",
                execution_time_ms=execution_time_ms,
            )

        raw_text = stdout.decode("utf-8", errors="replace").strip()
        message = None
        try:
            message = json.loads(raw_text) if raw_text else None
        except json.JSONDecodeError:
            pass

        if not isinstance(message, dict):
            detail = stderr.decode("utf-8", errors="replace").strip()[-500:]
            error = f"Sandbox process exited with code {returncode}"
            if detail:
                error = f"{error}: {detail}"
            self._activity.error(error)
            return SandboxResult(success=False, error=error, execution_time_ms=execution_time_ms)

        success = bool(message.get("success"))
        return SandboxResult(
            success=success,
            output=message.get("output") if success else None,
            error=None if success else (message.get("error") or "Unknown sandbox error"),
            execution_time_ms=execution_time_ms,
            memory_usage=float(message.get("memory_usage") or 0.0),
            logs=list(message.get("logs") or []),
        )
