"""Per-node execution.

The NodeExecutor runs a single node against the current run state and records
the outcome as a ``NodeExecutionResult``. It never decides whether the run
continues: that is left to the engine, which inspects the returned result.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from flowgraph.config import Settings
from flowgraph.core.conditions import evaluate_condition, to_number
from flowgraph.core.events import EventBus
from flowgraph.core.expressions import evaluate_expression
from flowgraph.core.references import (
    is_variable_reference,
    resolve_params,
    resolve_value,
)
from flowgraph.core.types import (
    ConditionNodeData,
    DelayNodeData,
    LoopNodeData,
    Node,
    NodeExecutionResult,
    NodeStatus,
    OutputNodeData,
    ParallelNodeData,
    ToolNodeData,
    TransformNodeData,
    TriggerNodeData,
    WorkflowEventType,
    WorkflowExecutionState,
    is_node_reference,
    utc_now,
)
from flowgraph.errors.exceptions import LoopSourceError, NodeError
from flowgraph.logging.logger import FlowGraphLogger
from flowgraph.resilience.retry import RetryPolicy

ToolExecutorFn = Callable[[str, dict[str, Any]], Awaitable[Any]]

_MISSING = object()


class NodeExecutor:
    """Executes nodes and records their results in the run state.

    Example:
        >>> executor = NodeExecutor(registry, EventBus(), nodes=definition.node_map(),
        ...                         settings=get_settings(), logger=get_logger())
        >>> result = await executor.execute(node, state)
        >>> result.status
        <NodeStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        tool_executor: ToolExecutorFn,
        events: EventBus,
        *,
        nodes: Mapping[str, Node],
        settings: Settings,
        logger: FlowGraphLogger,
    ) -> None:
        self._tool_executor = tool_executor
        self._events = events
        self._nodes = nodes
        self._settings = settings
        self._logger = logger

    async def execute(self, node: Node, state: WorkflowExecutionState) -> NodeExecutionResult:
        """Run ``node`` and record the result under its id.

        Failures are captured in the result rather than raised. Cancellation
        propagates and leaves the result ``running``.

        Args:
            node: Node to execute.
            state: Run state holding prior results and the variable bag.

        Returns:
            The node's result, ``completed`` or ``failed``.
        """
        result = await self._begin(node, state)
        try:
            output = await self._dispatch(node, state, result)
        except Exception as e:
            await self._fail(result, state, e)
        else:
            await self._complete(result, state, output)
        return result

    async def _begin(self, node: Node, state: WorkflowExecutionState) -> NodeExecutionResult:
        result = NodeExecutionResult(node_id=node.id)
        state.node_results[node.id] = result
        result.status = NodeStatus.RUNNING
        result.started_at = utc_now()
        self._logger.node_start(node.id, node.type)
        await self._events.emit(
            WorkflowEventType.NODE_START,
            state.id,
            node_id=node.id,
            data={"type": node.type},
        )
        return result

    async def _complete(
        self,
        result: NodeExecutionResult,
        state: WorkflowExecutionState,
        output: Any,
    ) -> None:
        result.output = output
        result.status = NodeStatus.COMPLETED
        result.completed_at = utc_now()
        self._logger.node_end(result.node_id, result.duration_ms)
        await self._events.emit(
            WorkflowEventType.NODE_COMPLETE,
            state.id,
            node_id=result.node_id,
            data={"output": output, "durationMs": result.duration_ms},
        )

    async def _fail(
        self,
        result: NodeExecutionResult,
        state: WorkflowExecutionState,
        error: Exception,
    ) -> None:
        result.status = NodeStatus.FAILED
        result.error = str(error)
        result.completed_at = utc_now()
        self._logger.node_error(result.node_id, result.error)
        await self._events.emit(
            WorkflowEventType.NODE_FAIL,
            state.id,
            node_id=result.node_id,
            data={"error": result.error, "retries": result.retries},
        )

    async def _dispatch(
        self,
        node: Node,
        state: WorkflowExecutionState,
        result: NodeExecutionResult,
    ) -> Any:
        data = node.data
        if isinstance(data, ToolNodeData):
            return await self._run_tool(node.id, data, state, result)
        elif isinstance(data, ConditionNodeData):
            return evaluate_condition(data.condition, state.node_results, state.variables)
        elif isinstance(data, TransformNodeData):
            return self._run_transform(node.id, data, state)
        elif isinstance(data, DelayNodeData):
            return await self._run_delay(node.id, data, state)
        elif isinstance(data, LoopNodeData):
            return await self._run_loop(node.id, data, state)
        elif isinstance(data, TriggerNodeData):
            return {"triggered": True, "config": data.trigger.model_dump(by_alias=True, mode="json")}
        elif isinstance(data, OutputNodeData):
            return {"type": data.output.type, "delivered": True}
        elif isinstance(data, ParallelNodeData):
            return {"branches": list(data.branches), "waitForAll": data.wait_for_all, "parallel": True}
        raise NodeError(f"Unsupported node type: {node.type}", node_id=node.id)

    async def _run_tool(
        self,
        node_id: str,
        data: ToolNodeData,
        state: WorkflowExecutionState,
        result: NodeExecutionResult,
    ) -> Any:
        """Invoke the tool executor with resolved params, retrying per config.

        ``result.retries`` tracks the index of the attempt in flight, so it
        ends as the index of the last attempt made.
        """
        params = resolve_params(data.params, state.node_results, state.variables)
        policy = RetryPolicy.from_config(
            data.retry_config,
            default_delay_ms=self._settings.default_retry_delay_ms,
            default_multiplier=self._settings.default_backoff_multiplier,
        )
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            result.retries = attempts
            attempts += 1
            return await self._tool_executor(data.tool_id, params)

        def on_retry(index: int, error: Exception, delay: float) -> None:
            self._logger.node_retry(node_id, index, delay * 1000, str(error))

        return await policy.execute(attempt, on_retry=on_retry)

    def _run_transform(
        self,
        node_id: str,
        data: TransformNodeData,
        state: WorkflowExecutionState,
    ) -> Any:
        inputs = resolve_params(data.transform.input_mapping, state.node_results, state.variables)
        return evaluate_expression(data.transform.expression, inputs, node_id=node_id)

    async def _run_delay(
        self,
        node_id: str,
        data: DelayNodeData,
        state: WorkflowExecutionState,
    ) -> dict[str, Any]:
        value = resolve_value(data.delay_ms, state.node_results, state.variables)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            delay_ms = value
        else:
            delay_ms = to_number(value)
        if math.isnan(delay_ms) or delay_ms < 0:
            raise NodeError(
                f"Delay must be a non-negative number of milliseconds, got {value!r}",
                node_id=node_id,
            )
        await asyncio.sleep(delay_ms / 1000)
        return {"delayed": delay_ms}

    async def _run_loop(
        self,
        node_id: str,
        data: LoopNodeData,
        state: WorkflowExecutionState,
    ) -> list[dict[str, Any]]:
        """Map the loop source into ``{index, item}`` records.

        With a body node, the body runs once per iteration with the loop
        variables bound, and each record also carries the body's output.
        The body's own result holds the list of per-iteration outputs.
        Condition, parallel and disabled bodies are rejected by
        ``validate_definition``.
        """
        loop = data.loop
        source = loop.items
        if is_node_reference(source) or is_variable_reference(source):
            source = resolve_value(source, state.node_results, state.variables)
        if not isinstance(source, (list, tuple)):
            raise LoopSourceError(source, node_id=node_id)

        cap = (
            loop.max_iterations
            if loop.max_iterations is not None
            else self._settings.default_max_iterations
        )
        items = list(source)[:cap]
        body = self._nodes.get(data.body_node_id) if data.body_node_id else None
        if body is None:
            records = []
            for index, item in enumerate(items):
                self._bind(state, loop.item_var, loop.index_var, item, index)
                records.append({"index": index, "item": item})
            return records
        return await self._run_loop_body(node_id, body, items, data, state)

    async def _run_loop_body(
        self,
        node_id: str,
        body: Node,
        items: list[Any],
        data: LoopNodeData,
        state: WorkflowExecutionState,
    ) -> list[dict[str, Any]]:
        loop = data.loop
        names = [loop.item_var] + ([loop.index_var] if loop.index_var else [])
        saved = {name: state.variables.get(name, _MISSING) for name in names}

        body_result = await self._begin(body, state)
        records: list[dict[str, Any]] = []
        try:
            for index, item in enumerate(items):
                self._bind(state, loop.item_var, loop.index_var, item, index)
                try:
                    output = await self._dispatch(body, state, body_result)
                except Exception as e:
                    await self._fail(body_result, state, e)
                    raise NodeError(
                        f"Loop body {body.id} failed at iteration {index}: {e}",
                        node_id=node_id,
                    ) from e
                records.append({"index": index, "item": item, "output": output})
        finally:
            for name, previous in saved.items():
                if previous is _MISSING:
                    state.variables.pop(name, None)
                else:
                    state.variables[name] = previous

        await self._complete(body_result, state, [r["output"] for r in records])
        return records

    @staticmethod
    def _bind(
        state: WorkflowExecutionState,
        item_var: str,
        index_var: str | None,
        item: Any,
        index: int,
    ) -> None:
        state.variables[item_var] = item
        if index_var:
            state.variables[index_var] = index
