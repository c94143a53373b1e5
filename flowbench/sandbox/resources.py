"""Process resource limits and usage, POSIX only; Windows gets no-ops."""

from __future__ import annotations

import sys

if sys.platform != "win32":
    import resource


def apply_limits(memory_limit_mb: int) -> None:
    """Cap this process's address space. No-op on Windows or when the limit is 0."""
    if sys.platform == "win32" or not memory_limit_mb:
        return
    limit = int(memory_limit_mb) * 1024 * 1024
    _, hard = resource.getrlimit(resource.RLIMIT_AS)
    if hard != resource.RLIM_INFINITY:
        limit = min(limit, hard)
    try:
        resource.setrlimit(resource.RLIMIT_AS, (limit, hard))
    except (ValueError, OSError) as e:
        # macOS rejects RLIMIT_AS; the wall-clock timeout still applies
        sys.stderr.write(f"memory limit not applied: {e}\n")


def peak_memory_mb() -> float:
    """Peak resident set size of this process in MB."""
    if sys.platform == "win32":
        return 0.0
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(peak / divisor, 2)
