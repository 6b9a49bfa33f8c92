"""FlowGraph core components."""

from flowgraph.core.types import (
    ConditionConfig,
    ConditionNodeData,
    DelayNodeData,
    Edge,
    ExecutionStatus,
    ExecutionTrigger,
    LoopConfig,
    LoopNodeData,
    Node,
    NodeExecutionResult,
    NodeReference,
    NodeStatus,
    OutputConfig,
    OutputNodeData,
    ParallelNodeData,
    RetryConfig,
    ToolNodeData,
    TransformConfig,
    TransformNodeData,
    TriggerConfig,
    TriggerNodeData,
    WorkflowDefinition,
    WorkflowEvent,
    WorkflowEventType,
    WorkflowExecutionState,
    WorkflowSettings,
    WorkflowVariable,
)
from flowgraph.core.references import resolve_params, resolve_reference, resolve_value
from flowgraph.core.conditions import compare, evaluate_condition
from flowgraph.core.expressions import evaluate_expression
from flowgraph.core.scheduler import (
    mark_downstream_for_skip,
    plan_branches,
    topological_sort,
    validate_definition,
)
from flowgraph.core.events import EventBus
from flowgraph.core.executor import NodeExecutor, ToolExecutorFn
from flowgraph.core.engine import WorkflowEngine

__all__ = [
    "ConditionConfig",
    "ConditionNodeData",
    "DelayNodeData",
    "Edge",
    "ExecutionStatus",
    "ExecutionTrigger",
    "LoopConfig",
    "LoopNodeData",
    "Node",
    "NodeExecutionResult",
    "NodeReference",
    "NodeStatus",
    "OutputConfig",
    "OutputNodeData",
    "ParallelNodeData",
    "RetryConfig",
    "ToolNodeData",
    "TransformConfig",
    "TransformNodeData",
    "TriggerConfig",
    "TriggerNodeData",
    "WorkflowDefinition",
    "WorkflowEvent",
    "WorkflowEventType",
    "WorkflowExecutionState",
    "WorkflowSettings",
    "WorkflowVariable",
    "resolve_params",
    "resolve_reference",
    "resolve_value",
    "compare",
    "evaluate_condition",
    "evaluate_expression",
    "mark_downstream_for_skip",
    "plan_branches",
    "topological_sort",
    "validate_definition",
    "EventBus",
    "NodeExecutor",
    "ToolExecutorFn",
    "WorkflowEngine",
]
