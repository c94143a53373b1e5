"""Workflow Executor

Runs a validated workflow node by node, routing each node's output to its
dependants, and reports progress through caller-supplied callbacks.

Key Components:
- ExecutorOptions: per-executor tunables (node timeout, concurrency)
- WorkflowExecutor.execute: run a workflow to completion; never raises
- WorkflowExecutor.start / WorkflowRun: run in the background with a live
  status table and cancellation

Run status rules:
- completed: every node succeeded
- partial: at least one node errored, the run was not aborted, and at least
  one node succeeded
- failed: validation failed, an input node failed (abort), the run was
  cancelled, every executed node errored, or an unexpected error occurred
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..errors import ExecutionCancelled, FlowbenchError, NodeExecutionError, WorkflowValidationError
from ..events import EventCallback, EventType, WorkflowEvent, emit_event
from ..nodes import NodeContext, NodeOutput, get_node_executor
from ..providers.registry import ProviderRegistry
from ..sandbox.executor import SandboxExecutor
from ..sandbox.resources import peak_memory_mb
from ..settings import WORKFLOW_MAX_CONCURRENCY, WORKFLOW_TIMEOUT_MS
from .models import (
    Node,
    NodeKind,
    NodeMetrics,
    NodeResult,
    NodeStatus,
    RunStatus,
    Workflow,
    WorkflowResult,
    now_ms,
)
from .scheduler import execution_levels, incoming_sources, validate_workflow

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str, Any], Union[None, Awaitable[None]]]


@dataclass
class ExecutorOptions:
    """Executor tunables.

    Attributes:
        timeout_ms: Budget for a single node dispatch
        max_concurrency: > 1 runs independent nodes of a dependency level concurrently
        debug: Log resolved node inputs
    """

    timeout_ms: int = WORKFLOW_TIMEOUT_MS
    max_concurrency: int = WORKFLOW_MAX_CONCURRENCY
    debug: bool = False


class _RunState:
    """Mutable bookkeeping for one run."""

    def __init__(self, run_id: str, workflow: Workflow, initial_input: Any, result: WorkflowResult,
                 on_event: Optional[EventCallback], on_progress: Optional[ProgressCallback],
                 cancel_event: Optional[asyncio.Event]):
        self.run_id = run_id
        self.workflow = workflow
        self.initial_input = initial_input
        self.result = result
        self.on_event = on_event
        self.on_progress = on_progress
        self.cancel_event = cancel_event
        self.abort_reason: Optional[str] = None

    async def emit(self, event_type: str, node_id: Optional[str] = None, **data: Any) -> None:
        await emit_event(self.on_event, WorkflowEvent(
            type=event_type, run_id=self.run_id, node_id=node_id, data=data,
        ))

    async def progress(self, node_id: str, phase: str, data: Any) -> None:
        if self.on_progress is None:
            return
        outcome = self.on_progress(node_id, phase, data)
        if inspect.isawaitable(outcome):
            await outcome


class WorkflowRun:
    """Handle for a workflow started in the background.

    ``node_status`` is the run's live status table; it is updated as nodes
    start and finish.
    """

    def __init__(self, run_id: str, result: WorkflowResult, task: "asyncio.Task[WorkflowResult]",
                 cancel_event: asyncio.Event):
        self.run_id = run_id
        self._result = result
        self._task = task
        self._cancel_event = cancel_event

    @property
    def node_status(self) -> Dict[str, NodeStatus]:
        return self._result.node_status

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Request cancellation; the in-flight node fails and the run ends as failed."""
        self._cancel_event.set()

    async def wait(self) -> WorkflowResult:
        return await self._task


class WorkflowExecutor:
    """Executes workflows against a provider registry and a sandbox.

    Args:
        providers: Registry consulted by model-call nodes (empty by default)
        sandbox: Executor used by package-call nodes
        options: Executor tunables
    """

    def __init__(
        self,
        providers: Optional[ProviderRegistry] = None,
        sandbox: Optional[SandboxExecutor] = None,
        options: Optional[ExecutorOptions] = None,
    ):
        self.providers = providers if providers is not None else ProviderRegistry()
        self.sandbox = sandbox if sandbox is not None else SandboxExecutor()
        self.options = options or ExecutorOptions()

    def set_api_key(self, provider: str, credential: str) -> None:
        """Register (or replace) the adapter for ``provider``."""
        self.providers.register(provider, credential)

    async def execute(
        self,
        workflow: Workflow,
        initial_input: Any = None,
        *,
        on_event: Optional[EventCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        run_id: str = "",
    ) -> WorkflowResult:
        """Execute ``workflow`` once against ``initial_input``.

        Never raises: validation problems, node failures and unexpected
        errors are all reported through the returned WorkflowResult.
        """
        result = self._new_result(workflow)
        return await self._execute(
            run_id or uuid.uuid4().hex[:12], workflow, initial_input, result,
            on_event, on_progress, cancel_event,
        )

    def start(
        self,
        workflow: Workflow,
        initial_input: Any = None,
        *,
        on_event: Optional[EventCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        run_id: str = "",
    ) -> WorkflowRun:
        """Schedule ``workflow`` on the running loop and return a WorkflowRun handle."""
        run_id = run_id or uuid.uuid4().hex[:12]
        result = self._new_result(workflow)
        cancel_event = asyncio.Event()
        task = asyncio.ensure_future(self._execute(
            run_id, workflow, initial_input, result, on_event, on_progress, cancel_event,
        ))
        return WorkflowRun(run_id, result, task, cancel_event)

    @staticmethod
    def _new_result(workflow: Workflow) -> WorkflowResult:
        return WorkflowResult(
            workflow_id=workflow.workflow_id,
            node_status={node.id: NodeStatus.READY for node in workflow.nodes if node.id},
        )

    async def _execute(self, run_id: str, workflow: Workflow, initial_input: Any, result: WorkflowResult,
                       on_event: Optional[EventCallback], on_progress: Optional[ProgressCallback],
                       cancel_event: Optional[asyncio.Event]) -> WorkflowResult:
        run = _RunState(run_id, workflow, initial_input, result, on_event, on_progress, cancel_event)
        result.start_time = now_ms()

        logger.info(
            f"Executing workflow '{workflow.name}' with {len(workflow.nodes)} nodes, run_id={run_id}"
        )

        try:
            await run.emit(EventType.WORKFLOW_START, workflow_name=workflow.name, node_count=len(workflow.nodes))

            try:
                order = validate_workflow(workflow)
            except WorkflowValidationError as e:
                logger.error(f"Workflow '{workflow.name}' failed validation: {e}")
                return await self._finish_failed(run, f"Workflow validation failed: {e}")

            if self.options.max_concurrency > 1:
                await self._run_levels(run)
            else:
                for node in order:
                    await self._run_node(run, node)
                    if run.abort_reason:
                        break

            return await self._finish(run)

        except Exception as e:
            logger.exception(f"Workflow '{workflow.name}' execution failed: {e}")
            return await self._finish_failed(run, str(e) or type(e).__name__)

    async def _run_levels(self, run: _RunState) -> None:
        semaphore = asyncio.Semaphore(self.options.max_concurrency)

        async def bounded(node: Node) -> None:
            async with semaphore:
                await self._run_node(run, node)

        for level in execution_levels(run.workflow.nodes, run.workflow.edges):
            tasks = [asyncio.ensure_future(bounded(node)) for node in level]
            try:
                await asyncio.gather(*tasks)
            except BaseException:
                # No sibling may outlive the level once one of them has raised
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            if run.abort_reason:
                break

    def _resolve_input(self, run: _RunState, node: Node) -> Any:
        sources = incoming_sources(node.id, run.workflow.edges)
        if not sources:
            return run.initial_input if node.kind == NodeKind.INPUT else None
        outputs = [run.result.output_of(source) for source in sources]
        return outputs[0] if len(outputs) == 1 else outputs

    async def _run_node(self, run: _RunState, node: Node) -> None:
        input_data = self._resolve_input(run, node)
        if self.options.debug:
            logger.info(f"Node '{node.id}' input: {input_data!r}"[:500])

        run.result.node_status[node.id] = NodeStatus.RUNNING
        await run.emit(EventType.NODE_START, node.id, kind=str(NodeKind(node.kind).value))

        metrics = NodeMetrics(start_time=now_ms())
        try:
            executor = get_node_executor(node.kind)
            context = NodeContext(
                run_id=run.run_id,
                providers=self.providers,
                sandbox=self.sandbox,
                timeout_ms=self.options.timeout_ms,
            )
            output = await self._dispatch(run, node, executor.execute(node, input_data, context))
        except ExecutionCancelled as e:
            run.abort_reason = str(e)
            await self._record_error(run, node, metrics, str(e))
            return
        except FlowbenchError as e:
            await self._record_error(run, node, metrics, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error in node '{node.id}'")
            await self._record_error(run, node, metrics, f"{type(e).__name__}: {e}")
        else:
            metrics.end_time = now_ms()
            metrics.cost = output.cost
            metrics.tokens_used = output.tokens_used
            metrics.memory_usage = output.memory_usage or peak_memory_mb()
            node_result = NodeResult(node_id=node.id, output=output.output, metrics=metrics)
            run.result.results[node.id] = node_result
            run.result.node_status[node.id] = NodeStatus.COMPLETED

            logger.info(f"Node '{node.id}' completed in {metrics.execution_time:.0f}ms")
            await run.emit(EventType.NODE_COMPLETE, node.id, output=output.output, metrics=metrics.to_dict())
            await run.progress(node.id, "complete", node_result)
            return

        if node.kind == NodeKind.INPUT:
            run.abort_reason = f"Input node '{node.id}' failed"

    async def _dispatch(self, run: _RunState, node: Node, work: Awaitable[NodeOutput]) -> NodeOutput:
        """Await a node's work under the node timeout and the run's cancel event."""
        cancel_event = run.cancel_event
        if cancel_event is not None and cancel_event.is_set():
            if inspect.iscoroutine(work):
                work.close()
            raise ExecutionCancelled()

        task = asyncio.ensure_future(work)
        waiters = {task}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=self.options.timeout_ms / 1000, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task in done:
            return task.result()
        if cancel_waiter is not None and cancel_waiter in done:
            raise ExecutionCancelled()
        raise NodeExecutionError(
            f"Node execution timed out after {self.options.timeout_ms}ms", node.id,
        )

    async def _record_error(self, run: _RunState, node: Node, metrics: NodeMetrics, message: str) -> None:
        metrics.end_time = now_ms()
        run.result.results[node.id] = NodeResult(node_id=node.id, output=None, error=message, metrics=metrics)
        run.result.node_status[node.id] = NodeStatus.ERROR

        logger.warning(f"Node '{node.id}' failed: {message}")
        await run.emit(EventType.NODE_ERROR, node.id, error=message)
        await run.progress(node.id, "error", {"error": message})

    async def _finish(self, run: _RunState) -> WorkflowResult:
        result = run.result
        result.end_time = now_ms()
        result.total_cost = sum(r.metrics.cost for r in result.results.values())

        failed: List[str] = result.failed_nodes
        if run.abort_reason:
            result.status = RunStatus.FAILED
            result.error_message = run.abort_reason
        elif failed and len(failed) == len(result.results):
            result.status = RunStatus.FAILED
            result.error_message = f"All nodes failed: {', '.join(failed)}"
        elif failed:
            result.status = RunStatus.PARTIAL
            result.error_message = f"{len(failed)} node(s) failed: {', '.join(failed)}"
        else:
            result.status = RunStatus.COMPLETED

        if result.status == RunStatus.FAILED:
            await run.emit(EventType.WORKFLOW_ERROR, error=result.error_message)
        else:
            await run.emit(
                EventType.WORKFLOW_COMPLETE,
                status=result.status.value,
                total_cost=result.total_cost,
                execution_time=result.execution_time,
            )

        logger.info(
            f"Workflow '{run.workflow.name}' finished: {result.status.value} "
            f"({len(result.results)} nodes, ${result.total_cost:.6f})"
        )
        return result

    async def _finish_failed(self, run: _RunState, message: str) -> WorkflowResult:
        result = run.result
        for node_id, status in result.node_status.items():
            if status == NodeStatus.RUNNING:
                result.node_status[node_id] = NodeStatus.ERROR
        result.status = RunStatus.FAILED
        result.error_message = message
        result.end_time = now_ms()
        result.total_cost = sum(r.metrics.cost for r in result.results.values())
        try:
            await run.emit(EventType.WORKFLOW_ERROR, error=message)
        except Exception as e:
            # The caller's callback itself may be what failed
            logger.error(f"workflow_error callback raised: {e}")
        return result
