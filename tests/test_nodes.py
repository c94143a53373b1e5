"""Unit tests for node executors

Tests cover:
- Dispatch table lookup
- Input/output pass-through and default values
- Prompt templating and cost calculation for model calls
- Package nodes against a mocked sandbox
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from flowbench.engine.models import NodeKind
from flowbench.errors import NodeExecutionError, ProviderCallError, ProviderNotConfigured, ShapeError
from flowbench.nodes import (
    InputExecutor,
    LLMExecutor,
    NodeContext,
    OutputExecutor,
    PackageExecutor,
    build_prompt,
    compute_cost,
    get_node_executor,
)
from flowbench.nodes.package import package_name_of, sandbox_budget_ms
from flowbench.providers import LLMResponse, MockProvider, ProviderRegistry, TokenUsage
from flowbench.sandbox import DEFAULT_CATALOG, SandboxResult

from .helpers import llm_node, make_node


def _context(providers=None, sandbox=None, timeout_ms=30000):
    return NodeContext(
        run_id="run-test",
        providers=providers if providers is not None else ProviderRegistry(),
        sandbox=sandbox,
        timeout_ms=timeout_ms,
    )


class TestDispatch:

    def test_every_kind_is_registered(self):
        assert isinstance(get_node_executor("input"), InputExecutor)
        assert isinstance(get_node_executor("output"), OutputExecutor)
        assert isinstance(get_node_executor(NodeKind.LLM), LLMExecutor)
        assert isinstance(get_node_executor("package"), PackageExecutor)

    def test_unknown_kind(self):
        with pytest.raises(ShapeError, match="Unsupported node type: webhook"):
            get_node_executor("webhook")


class TestInputOutput:

    @pytest.mark.asyncio
    async def test_input_passes_initial_input(self):
        out = await InputExecutor().execute(make_node("in", "input"), {"a": 1}, _context())
        assert out.output == {"a": 1}
        assert out.cost == 0.0

    @pytest.mark.asyncio
    async def test_input_falls_back_to_default(self):
        node = make_node("in", "input", data={"default_value": "data"}, config={"default_value": "config"})
        out = await InputExecutor().execute(node, None, _context())
        assert out.output == "config"

    @pytest.mark.asyncio
    async def test_output_passes_through(self):
        out = await OutputExecutor().execute(make_node("out", "output"), [1, 2], _context())
        assert out.output == [1, 2]


class TestPrompt:
    """Test prompt rendering from node input."""

    def test_string_input_is_prompt(self):
        assert build_prompt("hello") == "hello"

    def test_structured_input_is_serialized(self):
        assert build_prompt({"a": [1, 2]}) == '{"a": [1, 2]}'

    def test_template_placeholder(self):
        assert build_prompt("Paris", "Describe {{ input }} briefly") == "Describe Paris briefly"

    def test_nested_placeholder(self):
        data = {"user": {"name": "Ada"}}
        assert build_prompt(data, "Hi {{input.user.name}}{{input.user.age}}") == "Hi Ada"

    def test_none_input(self):
        assert build_prompt(None) == "null"


class TestCost:

    def test_cost_per_million_tokens(self):
        assert compute_cost(1000, 500, 3.0, 15.0) == pytest.approx(0.003 + 0.0075)

    def test_zero_prices(self):
        assert compute_cost(1000, 1000, 0, 0) == 0


class TestLLMExecutor:

    @pytest.mark.asyncio
    async def test_missing_provider(self):
        with pytest.raises(ProviderNotConfigured) as exc_info:
            await LLMExecutor().execute(llm_node("m", provider="OpenAI"), "hi", _context())
        assert exc_info.value.provider == "openai"
        assert "Please add an API key" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_request_built_from_node(self):
        adapter = MockProvider(response="ok")
        registry = ProviderRegistry()
        registry.register_adapter("mock", adapter)
        node = llm_node("m", modelId="gpt-x", input_price=2.0, output_price=4.0)
        node.data.pop("model_id")
        node.config.update({"temperature": 0.1, "maxTokens": 64, "system": "be brief", "prompt": "Q: {{input}}"})

        out = await LLMExecutor().execute(node, "why", _context(registry))

        request = adapter.calls[0]
        assert request.model_id == "gpt-x"
        assert request.prompt == "Q: why"
        assert request.temperature == 0.1
        assert request.max_tokens == 64
        assert request.system == "be brief"
        assert out.output == "ok"
        assert out.tokens_used == 3
        assert out.cost == pytest.approx((2 * 2.0 + 1 * 4.0) / 1_000_000)

    @pytest.mark.asyncio
    async def test_adapter_failure_is_wrapped(self):
        adapter = MagicMock()
        adapter.call = AsyncMock(side_effect=ProviderCallError("LLM call failed: openai returned 500"))
        registry = ProviderRegistry()
        registry.register_adapter("openai", adapter)

        with pytest.raises(NodeExecutionError, match="Error executing LLM node: LLM call failed") as exc_info:
            await LLMExecutor().execute(llm_node("m", provider="openai"), "hi", _context(registry))
        assert exc_info.value.node_id == "m"

    @pytest.mark.asyncio
    async def test_usage_from_adapter(self):
        adapter = MagicMock()
        adapter.call = AsyncMock(return_value=LLMResponse(
            content="done", usage=TokenUsage(prompt_tokens=1_000_000, completion_tokens=0),
        ))
        registry = ProviderRegistry()
        registry.register_adapter("anthropic", adapter)
        node = llm_node("m", provider="anthropic", input_price=3.0)

        out = await LLMExecutor().execute(node, "x", _context(registry))

        assert out.cost == pytest.approx(3.0)
        assert out.tokens_used == 1_000_000


class TestPackageExecutor:
    """Package nodes, with the sandbox mocked out."""

    @pytest.fixture
    def sandbox(self):
        sandbox = MagicMock()
        sandbox.catalog = DEFAULT_CATALOG
        sandbox.timeout_ms = 10000
        sandbox.execute = AsyncMock(return_value=SandboxResult(
            success=True, output=[2], memory_usage=12.5, logs=["hello\n"],
        ))
        return sandbox

    @pytest.mark.parametrize("sandbox_ms,node_ms,expected", [
        (10000, 30000, 10000),
        (10000, 10000, 9750),
        (10000, 2000, 1750),
        (10000, 300, 150),
    ])
    def test_sandbox_budget_stays_under_node_budget(self, sandbox_ms, node_ms, expected):
        assert sandbox_budget_ms(sandbox_ms, node_ms) == expected

    def test_package_name_aliases(self):
        assert package_name_of(make_node("p", "package", {"packageName": "dayjs"})) == "dayjs"
        with pytest.raises(ShapeError):
            package_name_of(make_node("p", "package"))

    @pytest.mark.asyncio
    async def test_runs_configured_code(self, sandbox):
        node = make_node("p", "package", {"package_name": "lodash"}, {"code": "return input"})

        out = await PackageExecutor().execute(node, [1], _context(sandbox=sandbox, timeout_ms=2000))

        sandbox.execute.assert_awaited_once_with("lodash", "return input", [1], timeout_ms=1750)
        assert out.output == [2]
        assert out.memory_usage == 12.5

    @pytest.mark.asyncio
    async def test_default_code_from_catalog(self, sandbox):
        node = make_node("p", "package", {"package_name": "lodash"})

        await PackageExecutor().execute(node, [1], _context(sandbox=sandbox))

        code = sandbox.execute.await_args.args[1]
        assert code == DEFAULT_CATALOG.default_code("lodash")
        assert sandbox.execute.await_args.kwargs["timeout_ms"] == 10000

    @pytest.mark.asyncio
    async def test_sandbox_failure_raises(self, sandbox):
        sandbox.execute.return_value = SandboxResult(success=False, error="Execution timeout")
        node = make_node("p", "package", {"package_name": "lodash"}, {"code": "while True: pass"})

        with pytest.raises(NodeExecutionError, match="Error executing package node: Execution timeout"):
            await PackageExecutor().execute(node, None, _context(sandbox=sandbox))
