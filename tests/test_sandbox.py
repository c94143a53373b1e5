"""Tests for the subprocess sandbox

These spawn real child interpreters, so each test costs a process start.

Tests cover:
- Allow-list enforcement without spawning
- Successful snippets, print capture and memory reporting
- Snippet errors, screen violations and non-JSON output
- Timeout with the child killed and reaped
- Real-module binding when preferred
"""

import asyncio
from unittest.mock import patch

import pytest

from flowbench.sandbox import (
    TIMEOUT_ERROR,
    DEFAULT_CATALOG,
    PackageSpec,
    SandboxExecutor,
    SandboxResult,
)


class TestAllowList:

    @pytest.mark.asyncio
    async def test_unlisted_package_is_rejected_without_spawning(self):
        sandbox = SandboxExecutor(allowed_packages=["lodash"])

        with patch("flowbench.sandbox.executor.asyncio.create_subprocess_exec") as spawn:
            result = await sandbox.execute("dayjs", "return input", "2024-01-01")

        spawn.assert_not_called()
        assert result.success is False
        assert result.error == "Package 'dayjs' is not in the allowed list. Allowed packages: lodash"

    def test_default_allow_list_is_catalog(self):
        sandbox = SandboxExecutor()
        assert sandbox.is_allowed("lodash")
        assert sandbox.is_allowed("crypto-js")
        assert not sandbox.is_allowed("axios")
        assert set(sandbox.allowed_packages) == set(DEFAULT_CATALOG.names())

    @pytest.mark.asyncio
    async def test_unserializable_input(self, sandbox):
        result = await sandbox.execute("lodash", "return input", {1, 2})
        assert result.success is False
        assert result.error.startswith("Input is not JSON-serializable")


class TestExecution:
    """Snippets run in a real child process."""

    @pytest.mark.asyncio
    async def test_lodash_map(self, sandbox):
        result = await sandbox.execute("lodash", "return _.map(input, lambda x: x * 2)", [1, 2, 3])

        assert result.success is True
        assert result.output == [2, 4, 6]
        assert result.error is None
        assert result.sandbox_type == "subprocess"
        assert result.execution_time_ms > 0

    @pytest.mark.asyncio
    async def test_expression_snippet(self, sandbox):
        result = await sandbox.execute("mathjs", "math.evaluate(input)", "2 ^ 10")
        assert result.output == 1024

    @pytest.mark.asyncio
    async def test_multi_statement_snippet(self, sandbox):
        code = (
            "rows = Papa.parse(input, {'header': True, 'dynamicTyping': True})['data']\n"
            "return sum(row['qty'] for row in rows)"
        )
        result = await sandbox.execute("papaparse", code, "item,qty\na,2\nb,5\n")
        assert result.success, result.error
        assert result.output == 7

    @pytest.mark.asyncio
    async def test_print_is_captured(self, sandbox):
        result = await sandbox.execute("lodash", "print('rows', len(input))\nreturn None", [1, 2])
        assert result.success
        assert result.output is None
        assert result.logs == ["rows 2\n"]

    @pytest.mark.asyncio
    async def test_memory_usage_reported(self, sandbox):
        result = await sandbox.execute("uuid", "return uuid.v4()")
        assert result.success
        assert len(result.output) == 36
        assert result.memory_usage > 0

    @pytest.mark.asyncio
    async def test_result_to_dict(self, sandbox):
        result = await sandbox.execute("lodash", "return input", {"a": 1})
        data = result.to_dict()
        assert data["success"] is True
        assert data["output"] == {"a": 1}
        assert set(data) == {
            "success", "output", "error", "execution_time_ms", "memory_usage", "sandbox_type", "logs",
        }


class TestFailures:

    @pytest.mark.asyncio
    async def test_snippet_exception(self, sandbox):
        result = await sandbox.execute("lodash", "raise ValueError('bad input')", [])
        assert result.success is False
        assert result.error == "bad input"
        assert result.output is None

    @pytest.mark.asyncio
    async def test_index_error_message(self, sandbox):
        result = await sandbox.execute("lodash", "return input[5]", [])
        assert result.success is False
        assert "index out of range" in result.error

    @pytest.mark.asyncio
    async def test_import_is_rejected(self, sandbox):
        result = await sandbox.execute("lodash", "import os\nreturn os.getcwd()", None)
        assert result.success is False
        assert "Imports are not allowed" in result.error

    @pytest.mark.asyncio
    async def test_dunder_escape_is_rejected(self, sandbox):
        result = await sandbox.execute("lodash", "return ().__class__.__bases__", None)
        assert result.success is False
        assert "not allowed" in result.error

    @pytest.mark.asyncio
    async def test_generator_frame_escape_is_rejected(self, sandbox):
        code = (
            "holder = []\n"
            "def gen():\n"
            "    yield holder[0].gi_frame.f_back\n"
            "g = gen()\n"
            "holder.append(g)\n"
            "frame = next(g)\n"
            "return frame.f_back.f_globals['builtins'].open('/etc/hostname').read()"
        )
        result = await sandbox.execute("lodash", code, None)
        assert result.success is False
        assert result.output is None
        assert "Access to attribute 'f_back' is not allowed" in result.error

    @pytest.mark.asyncio
    async def test_non_json_output(self, sandbox):
        result = await sandbox.execute("lodash", "return {1, 2}", None)
        assert result.success is False
        assert result.error.startswith("Output is not JSON-serializable")

    @pytest.mark.asyncio
    async def test_missing_interpreter(self):
        sandbox = SandboxExecutor(python="/nonexistent/python")
        result = await sandbox.execute("lodash", "return input", [1])
        assert result.success is False
        assert result.error.startswith("Failed to start sandbox")

    def test_child_exit_without_result(self):
        result = SandboxExecutor()._parse_result(b"", b"Traceback: boom", 1, 5.0)
        assert result == SandboxResult(
            success=False, error="Sandbox process exited with code 1: Traceback: boom", execution_time_ms=5.0,
        )


class TestTimeout:

    @pytest.mark.asyncio
    async def test_infinite_loop_is_killed(self):
        sandbox = SandboxExecutor(timeout_ms=500)
        spawned = []
        real_spawn = asyncio.create_subprocess_exec

        async def spy(*args, **kwargs):
            proc = await real_spawn(*args, **kwargs)
            spawned.append(proc)
            return proc

        with patch("flowbench.sandbox.executor.asyncio.create_subprocess_exec", side_effect=spy):
            result = await sandbox.execute("lodash", "while True:\n    pass", None)

        assert result.success is False
        assert result.error == TIMEOUT_ERROR
        assert len(spawned) == 1
        assert spawned[0].returncode is not None

    @pytest.mark.asyncio
    async def test_per_call_timeout_overrides_default(self, sandbox):
        result = await sandbox.execute("lodash", "while True:\n    pass", None, timeout_ms=300)
        assert result.error == TIMEOUT_ERROR
        assert result.execution_time_ms < sandbox.timeout_ms


class TestRealModules:
    """A catalog entry may name an importable module used instead of the built-in."""

    @pytest.fixture
    def catalog(self):
        catalog = DEFAULT_CATALOG.copy()
        catalog.register(PackageSpec(
            name="stats",
            binding="stats",
            mock="flowbench.sandbox.mocks:mathjs",
            module="statistics",
        ))
        return catalog

    @pytest.mark.asyncio
    async def test_prefer_real_binds_module(self, catalog):
        sandbox = SandboxExecutor(allowed_packages=["stats"], catalog=catalog, prefer_real_packages=True)
        result = await sandbox.execute("stats", "return stats.fmean(input)", [1, 2, 3])
        assert result.success, result.error
        assert result.output == 2.0

    @pytest.mark.asyncio
    async def test_builtin_used_by_default(self, catalog):
        sandbox = SandboxExecutor(allowed_packages=["stats"], catalog=catalog)
        result = await sandbox.execute("stats", "return stats.fmean(input)", [1, 2, 3])
        assert result.success is False
        assert "fmean" in result.error
