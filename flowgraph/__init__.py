"""FlowGraph - async workflow execution engine.

FlowGraph executes declarative workflow graphs of typed nodes (tool calls,
conditions, loops, transforms, delays, parallel fan-out) authored by a
visual editor, resolving cross-node references and emitting lifecycle
events for observers.

Example:
    >>> from flowgraph import ToolRegistry, WorkflowDefinition, WorkflowEngine
    >>> registry = ToolRegistry({"echo": lambda **params: params})
    >>> definition = WorkflowDefinition.model_validate(json.loads(raw))
    >>> state = WorkflowEngine(definition, registry).execute_sync()
    >>> print(state.status.value)
"""

__version__ = "0.1.0"

# Core exports
from flowgraph.core.types import (
    ConditionConfig,
    Edge,
    ExecutionStatus,
    ExecutionTrigger,
    LoopConfig,
    Node,
    NodeExecutionResult,
    NodeReference,
    NodeStatus,
    RetryConfig,
    TransformConfig,
    WorkflowDefinition,
    WorkflowEvent,
    WorkflowEventType,
    WorkflowExecutionState,
    WorkflowSettings,
    WorkflowVariable,
)
from flowgraph.core.engine import WorkflowEngine
from flowgraph.core.events import EventBus
from flowgraph.config import Settings, get_settings

# Tool executors
from flowgraph.tools import RegistryToolExecutor, ToolRegistry, create_api_tool_executor

# Error exports
from flowgraph.errors.exceptions import (
    ConfigurationError,
    CycleDetectedError,
    ExpressionError,
    FlowGraphError,
    LoopSourceError,
    NodeError,
    NodeFailedError,
    NodeReferenceError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    WorkflowError,
    WorkflowTimeoutError,
    WorkflowValidationError,
)

# Logging exports
from flowgraph.logging import FlowGraphLogger, LogLevel, configure_logging, get_logger

__all__ = [
    # Version
    "__version__",
    # Core
    "ConditionConfig",
    "Edge",
    "ExecutionStatus",
    "ExecutionTrigger",
    "LoopConfig",
    "Node",
    "NodeExecutionResult",
    "NodeReference",
    "NodeStatus",
    "RetryConfig",
    "TransformConfig",
    "WorkflowDefinition",
    "WorkflowEvent",
    "WorkflowEventType",
    "WorkflowExecutionState",
    "WorkflowSettings",
    "WorkflowVariable",
    "WorkflowEngine",
    "EventBus",
    "Settings",
    "get_settings",
    # Tools
    "ToolRegistry",
    "RegistryToolExecutor",
    "create_api_tool_executor",
    # Errors
    "FlowGraphError",
    "ConfigurationError",
    "WorkflowError",
    "WorkflowValidationError",
    "CycleDetectedError",
    "WorkflowTimeoutError",
    "NodeFailedError",
    "NodeError",
    "NodeReferenceError",
    "ExpressionError",
    "LoopSourceError",
    "ToolError",
    "ToolNotFoundError",
    "ToolExecutionError",
    # Logging
    "FlowGraphLogger",
    "LogLevel",
    "configure_logging",
    "get_logger",
]
