"""Sandbox child entry point: ``python -m flowbench.sandbox.runner``.

Reads exactly one JSON start message from stdin, runs the snippet, and writes
exactly one JSON result message to stdout. Nothing else is written to stdout;
snippet print() output travels inside the result message.

Start message::

    {"package_name": "lodash", "code": "...", "input": [...],
     "binding": "_", "mock": "flowbench.sandbox.mocks:lodash",
     "module": null, "prefer_real": false,
     "memory_limit_mb": 512, "max_code_length": 20000}

Result message::

    {"success": true, "output": ..., "memory_usage": 21.4, "logs": [...]}
    {"success": false, "error": "...", "memory_usage": 21.4, "logs": [...]}
"""

from __future__ import annotations

import json
import sys
from typing import Any, Dict, List

from ..errors import SandboxViolation
from .packages import load_binding
from .resources import apply_limits, peak_memory_mb
from .restricted import MAX_CODE_LENGTH, run_snippet


def handle(message: Dict[str, Any]) -> Dict[str, Any]:
    """Run the snippet described by a start message and build the result message."""
    logs: List[str] = []
    try:
        bindings: Dict[str, Any] = {"input": message.get("input")}
        mock = message.get("mock")
        if mock:
            bindings[message["binding"]] = load_binding(
                mock, message.get("module"), bool(message.get("prefer_real")),
            )

        output = run_snippet(
            message.get("code") or "",
            bindings,
            max_length=int(message.get("max_code_length") or MAX_CODE_LENGTH),
            stdout=logs,
        )
        # Validate serialisability here so the failure is reported, not a crash
        json.dumps(output)
        return {"success": True, "output": output, "logs": logs}
    except SandboxViolation as e:
        return {"success": False, "error": str(e), "logs": logs}
    except (TypeError, ValueError) as e:
        if "JSON serializable" in str(e):
            return {"success": False, "error": f"Output is not JSON-serializable: {e}", "logs": logs}
        return {"success": False, "error": _describe(e), "logs": logs}
    except Exception as e:
        return {"success": False, "error": _describe(e), "logs": logs}


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return text if text else type(exc).__name__


def main() -> int:
    raw = sys.stdin.read()
    try:
        message = json.loads(raw)
    except ValueError as e:
        result = {"success": False, "error": f"Invalid start message: {e}", "logs": []}
    else:
        apply_limits(int(message.get("memory_limit_mb") or 0))
        result = handle(message)

    result["memory_usage"] = peak_memory_mb()
    sys.stdout.write(json.dumps(result))
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
