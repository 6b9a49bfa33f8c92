"""Workflow orchestration.

The engine walks a definition's nodes in topological order, gates each node
on its upstream results, prunes untaken condition branches, fans out
parallel nodes and applies the error policy. Every run gets its own
``WorkflowExecutionState``; the engine itself holds no per-run state, so one
engine may serve concurrent runs.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from flowgraph.config import Settings, get_settings
from flowgraph.core.events import EventBus, EventHandler
from flowgraph.core.executor import NodeExecutor, ToolExecutorFn
from flowgraph.core.scheduler import (
    mark_downstream_for_skip,
    plan_branches,
    topological_sort,
    validate_definition,
)
from flowgraph.core.types import (
    ConditionNodeData,
    ExecutionStatus,
    ExecutionTrigger,
    LoopNodeData,
    Node,
    NodeExecutionResult,
    NodeStatus,
    ParallelNodeData,
    ToolNodeData,
    WorkflowDefinition,
    WorkflowEventType,
    WorkflowExecutionState,
    utc_now,
)
from flowgraph.errors.exceptions import NodeFailedError, WorkflowTimeoutError
from flowgraph.logging.config import get_logger
from flowgraph.logging.logger import FlowGraphLogger


def generate_id() -> str:
    """Generate unique ID."""
    return str(uuid.uuid4())


@dataclass
class RunContext:
    """Scratch data of one run, alongside its state."""

    state: WorkflowExecutionState
    order: list[str]
    skip: set[str] = field(default_factory=set)


class WorkflowEngine:
    """Executes a workflow definition.

    Example:
        >>> registry = ToolRegistry()
        >>> @registry.tool("echo")
        ... def echo(text: str) -> dict:
        ...     return {"text": text}
        >>> engine = WorkflowEngine(definition, registry)
        >>> engine.on(lambda event: print(event.type.value))
        >>> state = await engine.execute(ExecutionTrigger(type="manual"))
        >>> state.status
        <ExecutionStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        definition: WorkflowDefinition,
        tool_executor: ToolExecutorFn,
        *,
        settings: Settings | None = None,
        logger: FlowGraphLogger | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            definition: Workflow to execute. Validated and copied, so later
                changes to the caller's object do not affect runs.
            tool_executor: Async callable ``(tool_id, params) -> result``.
            settings: Engine settings (defaults to ``get_settings()``).
            logger: Lifecycle logger (defaults to ``get_logger()``).

        Raises:
            WorkflowValidationError: If the definition is invalid.
        """
        validate_definition(definition)
        self._definition = definition.model_copy(deep=True)
        self._tool_executor = tool_executor
        self._settings = settings or get_settings()
        if self._definition.settings.enable_logging:
            self._logger = logger or get_logger()
        else:
            self._logger = FlowGraphLogger(enabled=False)
        self._events = EventBus()
        self._nodes = self._definition.node_map()
        self._loop_bodies = {
            node.data.body_node_id
            for node in self._definition.nodes
            if isinstance(node.data, LoopNodeData) and node.data.body_node_id
        }
        self._executor = NodeExecutor(
            tool_executor,
            self._events,
            nodes=self._nodes,
            settings=self._settings,
            logger=self._logger,
        )

    @property
    def definition(self) -> WorkflowDefinition:
        return self._definition

    @property
    def events(self) -> EventBus:
        return self._events

    def on(self, handler: EventHandler) -> Callable[[], None]:
        """Subscribe to run and node events.

        Returns:
            Callable that removes the handler again.
        """
        return self._events.subscribe(handler)

    subscribe = on

    def off(self, handler: EventHandler) -> bool:
        return self._events.unsubscribe(handler)

    async def execute(self, trigger: ExecutionTrigger | None = None) -> WorkflowExecutionState:
        """Run the workflow once.

        Run failures (cycles, node failures under a stopping policy,
        timeouts) are reported through the returned state, never raised.

        Args:
            trigger: What started the run. Defaults to a manual trigger.

        Returns:
            The complete execution state.

        Raises:
            asyncio.CancelledError: If the calling task is cancelled. The
                state is marked ``cancelled`` before re-raising.
        """
        trigger = trigger or ExecutionTrigger()
        state = self._create_state(trigger)
        definition = self._definition

        state.status = ExecutionStatus.RUNNING
        state.started_at = utc_now()
        self._logger.workflow_start(definition.name, len(definition.nodes), state.id)
        await self._events.emit(
            WorkflowEventType.EXECUTION_START,
            state.id,
            data={"workflowId": definition.id, "triggeredBy": state.triggered_by},
        )

        try:
            timeout_ms = definition.settings.max_execution_time
            if timeout_ms is None:
                await self._run(state)
            else:
                try:
                    await asyncio.wait_for(self._run(state), timeout=timeout_ms / 1000)
                except asyncio.TimeoutError:
                    raise WorkflowTimeoutError(timeout_ms) from None
            state.status = ExecutionStatus.COMPLETED
        except asyncio.CancelledError:
            await self._finish_failed(state, ExecutionStatus.CANCELLED, "Execution cancelled")
            raise
        except Exception as e:
            await self._finish_failed(state, ExecutionStatus.FAILED, str(e))
            return state

        state.completed_at = utc_now()
        self._logger.workflow_end(definition.name, state.duration_ms, state.summary())
        await self._events.emit(
            WorkflowEventType.EXECUTION_COMPLETE,
            state.id,
            data={
                "status": state.status.value,
                "durationMs": state.duration_ms,
                "summary": state.summary(),
            },
        )
        return state

    def execute_sync(self, trigger: ExecutionTrigger | None = None) -> WorkflowExecutionState:
        """Synchronous wrapper for execute().

        Note: Cannot be called from within an async context.
        """
        return asyncio.run(self.execute(trigger))

    def _create_state(self, trigger: ExecutionTrigger) -> WorkflowExecutionState:
        variables = {
            variable.name: copy.deepcopy(variable.default_value)
            for variable in self._definition.variables
        }
        variables.update(copy.deepcopy(trigger.variables))

        metadata = {}
        if trigger.user_id is not None:
            metadata["user_id"] = trigger.user_id
        if trigger.webhook_payload is not None:
            metadata["webhook_payload"] = copy.deepcopy(trigger.webhook_payload)
        if trigger.event_payload is not None:
            metadata["event_payload"] = copy.deepcopy(trigger.event_payload)

        return WorkflowExecutionState(
            id=generate_id(),
            workflow_id=self._definition.id,
            triggered_by=trigger.type,
            variables=variables,
            metadata=metadata,
        )

    async def _finish_failed(
        self,
        state: WorkflowExecutionState,
        status: ExecutionStatus,
        error: str,
    ) -> None:
        state.status = status
        state.error = error
        state.completed_at = utc_now()
        for result in state.node_results.values():
            if result.status in (NodeStatus.PENDING, NodeStatus.RUNNING):
                result.status = NodeStatus.FAILED
                result.error = error
                result.completed_at = state.completed_at
        self._logger.workflow_error(self._definition.name, error)
        await self._events.emit(
            WorkflowEventType.EXECUTION_FAIL,
            state.id,
            data={"status": status.value, "error": error},
        )

    async def _run(self, state: WorkflowExecutionState) -> None:
        order = topological_sort(self._definition.nodes, self._definition.edges)
        self._logger.execution_order(order)
        ctx = RunContext(state=state, order=order)

        for node_id in order:
            if node_id in state.node_results:
                continue
            await self._visit(ctx, node_id)

        # Body nodes of loops that never ran
        for node_id in order:
            if node_id in self._loop_bodies and node_id not in state.node_results:
                await self._record_skip(ctx, node_id, "loop did not run")

    async def _visit(self, ctx: RunContext, node_id: str) -> None:
        """Gate, execute and post-process a single node."""
        node = self._nodes.get(node_id)
        if node is None:
            return
        if node_id in ctx.skip:
            await self._record_skip(ctx, node_id, "branch not taken")
            return
        if node.disabled or node_id in self._loop_bodies:
            return

        blocked = [
            upstream
            for upstream in self._definition.upstream(node_id)
            if not self._is_settled(ctx.state, upstream)
        ]
        if blocked:
            await self._record_skip(ctx, node_id, f"upstream {blocked[0]} did not complete")
            mark_downstream_for_skip(node_id, self._definition.edges, ctx.skip)
            return

        result = await self._executor.execute(node, ctx.state)
        if result.status == NodeStatus.FAILED:
            if isinstance(node.data, ToolNodeData) and node.data.on_error != "stop":
                return
            raise NodeFailedError(node_id, result.error)

        if isinstance(node.data, ConditionNodeData):
            self._prune_condition(ctx, node, bool(result.output))
        elif isinstance(node.data, ParallelNodeData):
            await self._fan_out(ctx, node, result)

    @staticmethod
    def _is_settled(state: WorkflowExecutionState, node_id: str) -> bool:
        result = state.node_results.get(node_id)
        return result is not None and result.is_terminal_success

    async def _record_skip(self, ctx: RunContext, node_id: str, reason: str) -> None:
        now = utc_now()
        ctx.state.node_results[node_id] = NodeExecutionResult(
            node_id=node_id,
            status=NodeStatus.SKIPPED,
            completed_at=now,
        )
        self._logger.node_skip(node_id, reason)
        await self._events.emit(
            WorkflowEventType.NODE_SKIP,
            ctx.state.id,
            node_id=node_id,
            data={"reason": reason},
        )

    def _prune_condition(self, ctx: RunContext, node: Node, outcome: bool) -> None:
        """Skip everything reachable only through untaken handles.

        Edges without a source handle count as taken, and nodes that are
        also reachable from a taken edge are left to the normal gating.
        """
        data = node.data
        taken_handle = data.true_output if outcome else data.false_output
        edges = self._definition.edges

        untaken: set[str] = set()
        kept: set[str] = set()
        for edge in edges:
            if edge.source != node.id:
                continue
            if edge.source_handle is not None and edge.source_handle != taken_handle:
                mark_downstream_for_skip(edge.target, edges, untaken)
            else:
                mark_downstream_for_skip(edge.target, edges, kept)

        ctx.skip |= untaken - kept

    async def _fan_out(self, ctx: RunContext, node: Node, result: NodeExecutionResult) -> None:
        """Run the branches below a parallel node concurrently."""
        data = node.data
        starts = list(data.branches) or self._definition.downstream(node.id)
        plans = plan_branches(
            starts,
            ctx.order,
            self._definition.edges,
            exclude=set(ctx.state.node_results),
        )
        if not plans:
            return

        tasks = {
            start: asyncio.create_task(self._run_branch(ctx, members), name=f"branch:{start}")
            for start, members in plans.items()
        }

        if data.wait_for_all:
            try:
                await asyncio.gather(*tasks.values())
            except BaseException:
                await self._cancel(tasks.values())
                raise
            result.output = {**result.output, "completedBranches": list(tasks)}
            return

        try:
            done, pending = await asyncio.wait(
                tasks.values(), return_when=asyncio.FIRST_COMPLETED
            )
        except BaseException:
            await self._cancel(tasks.values())
            raise
        await self._cancel(pending)

        finished = [start for start, task in tasks.items() if task in done]
        for start in finished:
            error = tasks[start].exception()
            if error is not None:
                raise error

        winner = finished[0]
        for start, task in tasks.items():
            if task in pending:
                await self._skip_unfinished(ctx, plans[start], "branch cancelled")
        result.output = {**result.output, "completedBranches": finished, "winner": winner}

    async def _run_branch(self, ctx: RunContext, members: list[str]) -> None:
        for node_id in members:
            if node_id in ctx.state.node_results:
                continue
            await self._visit(ctx, node_id)

    async def _skip_unfinished(self, ctx: RunContext, members: list[str], reason: str) -> None:
        for node_id in members:
            existing = ctx.state.node_results.get(node_id)
            if existing is None or existing.status in (NodeStatus.PENDING, NodeStatus.RUNNING):
                await self._record_skip(ctx, node_id, reason)

    @staticmethod
    async def _cancel(tasks: Iterable[asyncio.Task[None]]) -> None:
        tasks = list(tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
