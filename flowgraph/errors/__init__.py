"""FlowGraph errors."""

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

__all__ = [
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
]
