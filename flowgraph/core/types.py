"""Workflow data model.

Definitions are authored by the graph editor as camelCase JSON; every model
accepts both the camelCase alias and the snake_case field name, and
``model_dump(by_alias=True, mode="json")`` gives back the editor's shape.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class FlowModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NodeReference(FlowModel):
    """Placeholder resolved from a prior node's output at execution time.

    Example:
        >>> ref = NodeReference.model_validate({"$ref": "fetch.data.items"})
        >>> ref.node_id, ref.path
        ('fetch', ['data', 'items'])
    """

    ref: str = Field(alias="$ref")

    @property
    def node_id(self) -> str:
        return self.ref.split(".")[0]

    @property
    def path(self) -> list[str]:
        return self.ref.split(".")[1:]


def is_node_reference(value: Any) -> bool:
    """Check if a value is a node reference (model or raw ``{"$ref": ...}`` dict)."""
    if isinstance(value, NodeReference):
        return True
    return isinstance(value, dict) and "$ref" in value


class Position(FlowModel):
    """Editor canvas position. Presentation only."""

    x: float = 0.0
    y: float = 0.0


# Node configuration blocks

ErrorHandling = Literal["stop", "continue", "retry"]


class RetryConfig(FlowModel):
    """Retry settings for a tool node.

    Unset delay and multiplier fall back to the engine settings
    (1000ms, multiplier 1).
    """

    max_retries: int = Field(default=0, ge=0)
    delay_ms: float | None = Field(default=None, ge=0)
    backoff_multiplier: float | None = Field(default=None, ge=0)


class ConditionConfig(FlowModel):
    """A single comparison between two operands."""

    left_operand: Any = None
    operator: str
    right_operand: Any = None


class LoopConfig(FlowModel):
    """Iteration over an array source."""

    items: Any
    item_var: str
    index_var: str | None = None
    max_iterations: int | None = Field(default=None, ge=0)


class TransformConfig(FlowModel):
    """Expression evaluated over a mapping of resolved inputs."""

    expression: str
    input_mapping: dict[str, Any] = Field(default_factory=dict)


class TriggerConfig(FlowModel):
    """How a workflow is started."""

    type: Literal["manual", "cron", "webhook", "event"] = "manual"
    cron: str | None = None
    webhook_path: str | None = None
    event_type: str | None = None


class NotificationConfig(FlowModel):
    title: str
    message: str
    type: Literal["success", "error", "warning", "info"] = "info"


class OutputConfig(FlowModel):
    """Where a workflow result goes. Delivery is done by the consumer."""

    type: Literal["component", "data", "notification"]
    component_tree: Any = None
    data_path: str | None = None
    notification_config: NotificationConfig | None = None


# Node data (tagged union on ``type``)


class ToolNodeData(FlowModel):
    type: Literal["tool"] = "tool"
    tool_id: str
    params: dict[str, Any] = Field(default_factory=dict)
    on_error: ErrorHandling = "stop"
    retry_config: RetryConfig | None = None


class ConditionNodeData(FlowModel):
    type: Literal["condition"] = "condition"
    condition: ConditionConfig
    true_output: str = "true"
    false_output: str = "false"


class LoopNodeData(FlowModel):
    type: Literal["loop"] = "loop"
    loop: LoopConfig
    body_node_id: str | None = None


class TransformNodeData(FlowModel):
    type: Literal["transform"] = "transform"
    transform: TransformConfig


class TriggerNodeData(FlowModel):
    type: Literal["trigger"] = "trigger"
    trigger: TriggerConfig = Field(default_factory=TriggerConfig)


class OutputNodeData(FlowModel):
    type: Literal["output"] = "output"
    output: OutputConfig


class DelayNodeData(FlowModel):
    type: Literal["delay"] = "delay"
    delay_ms: int | float | NodeReference | str


class ParallelNodeData(FlowModel):
    type: Literal["parallel"] = "parallel"
    branches: list[str] = Field(default_factory=list)
    wait_for_all: bool = True


NodeData = Annotated[
    Union[
        ToolNodeData,
        ConditionNodeData,
        LoopNodeData,
        TransformNodeData,
        TriggerNodeData,
        OutputNodeData,
        DelayNodeData,
        ParallelNodeData,
    ],
    Field(discriminator="type"),
]


class Node(FlowModel):
    """A single typed step in a workflow."""

    id: str
    data: NodeData
    position: Position = Field(default_factory=Position)
    label: str | None = None
    description: str | None = None
    disabled: bool = False

    @property
    def type(self) -> str:
        return self.data.type


class Edge(FlowModel):
    """Directed connection between two nodes.

    ``source_handle`` selects the branch of a condition node.
    """

    id: str | None = None
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    label: str | None = None
    animated: bool = False


class WorkflowVariable(FlowModel):
    name: str
    type: Literal["string", "number", "boolean", "object", "array"] = "string"
    default_value: Any = None
    description: str | None = None


class WorkflowSettings(FlowModel):
    max_execution_time: float | None = Field(default=None, gt=0, description="Milliseconds")
    max_node_executions: int | None = Field(default=None, gt=0)
    enable_logging: bool = True


class WorkflowDefinition(FlowModel):
    """The static, user-authored graph. Read-only during a run."""

    id: str
    name: str
    description: str | None = None
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    variables: list[WorkflowVariable] = Field(default_factory=list)
    trigger_config: TriggerConfig | None = None
    settings: WorkflowSettings = Field(default_factory=WorkflowSettings)

    def node_map(self) -> dict[str, Node]:
        return {node.id: node for node in self.nodes}

    def upstream(self, node_id: str) -> list[str]:
        """Ids of nodes with an edge into ``node_id``."""
        return [e.source for e in self.edges if e.target == node_id]

    def downstream(self, node_id: str) -> list[str]:
        """Ids of nodes reachable by one outgoing edge of ``node_id``."""
        return [e.target for e in self.edges if e.source == node_id]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# Execution records


class NodeStatus(str, Enum):
    """Per-node status within one run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExecutionStatus(str, Enum):
    """Status of a whole run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExecutionTrigger(FlowModel):
    """External event or context that starts a run."""

    type: Literal["manual", "cron", "webhook", "event"] = "manual"
    user_id: str | None = None
    webhook_payload: Any = None
    event_payload: Any = None
    variables: dict[str, Any] = Field(default_factory=dict)


class NodeExecutionResult(FlowModel):
    """Outcome of one node in one run."""

    node_id: str
    status: NodeStatus = NodeStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    output: Any = None
    error: str | None = None
    retries: int | None = None

    @property
    def duration_ms(self) -> int | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    @property
    def is_terminal_success(self) -> bool:
        """Completed or skipped: downstream nodes may proceed."""
        return self.status in (NodeStatus.COMPLETED, NodeStatus.SKIPPED)


class WorkflowExecutionState(FlowModel):
    """Mutable record of one run, returned to the caller even on failure.

    Example:
        >>> state = await engine.execute(ExecutionTrigger(type="manual"))
        >>> state.status
        <ExecutionStatus.COMPLETED: 'completed'>
        >>> state.summary()
        {'completed': 3, 'failed': 0, 'skipped': 0, 'pending': 0, 'running': 0}
    """

    id: str
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    triggered_by: str = "manual"
    triggered_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    node_results: dict[str, NodeExecutionResult] = Field(default_factory=dict)
    variables: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED

    @property
    def duration_ms(self) -> int | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    def result(self, node_id: str) -> NodeExecutionResult | None:
        return self.node_results.get(node_id)

    def summary(self) -> dict[str, int]:
        """Count node results per status."""
        counts = {
            NodeStatus.COMPLETED.value: 0,
            NodeStatus.FAILED.value: 0,
            NodeStatus.SKIPPED.value: 0,
            NodeStatus.PENDING.value: 0,
            NodeStatus.RUNNING.value: 0,
        }
        for result in self.node_results.values():
            counts[result.status.value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class WorkflowEventType(str, Enum):
    """Lifecycle events emitted to subscribers."""

    EXECUTION_START = "execution:start"
    EXECUTION_COMPLETE = "execution:complete"
    EXECUTION_FAIL = "execution:fail"
    NODE_START = "node:start"
    NODE_COMPLETE = "node:complete"
    NODE_FAIL = "node:fail"
    NODE_SKIP = "node:skip"


class WorkflowEvent(FlowModel):
    """Observational event. Dropping one never affects execution."""

    type: WorkflowEventType
    execution_id: str
    node_id: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)
    data: Any = None
