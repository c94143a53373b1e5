"""Sandbox: allow-listed package snippets run in an isolated child process."""

from .executor import TIMEOUT_ERROR, SandboxExecutor, SandboxResult
from .packages import (
    DEFAULT_ALLOWED_PACKAGES,
    DEFAULT_CATALOG,
    PackageCatalog,
    PackageSpec,
    generate_package_code,
    get_package_input_type,
    get_package_output_type,
    is_package_supported,
)
from .restricted import run_snippet

__all__ = [
    "TIMEOUT_ERROR",
    "SandboxExecutor",
    "SandboxResult",
    "DEFAULT_ALLOWED_PACKAGES",
    "DEFAULT_CATALOG",
    "PackageCatalog",
    "PackageSpec",
    "generate_package_code",
    "get_package_input_type",
    "get_package_output_type",
    "is_package_supported",
    "run_snippet",
]
