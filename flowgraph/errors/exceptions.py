"""FlowGraph exception hierarchy.

All exceptions inherit from FlowGraphError for easy catching.
Each exception includes a `retryable` flag to indicate if the operation can be retried.
"""

from __future__ import annotations


class FlowGraphError(Exception):
    """Base exception for all FlowGraph errors."""

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


# Configuration Errors
class ConfigurationError(FlowGraphError):
    """Configuration-related errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=False)


# Workflow Errors
class WorkflowError(FlowGraphError):
    """Base class for workflow-level errors."""

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message, retryable=retryable)


class WorkflowValidationError(WorkflowError):
    """Workflow definition is structurally invalid."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, retryable=False)
        self.message = message
        self.field = field


class CycleDetectedError(WorkflowError):
    """The node graph contains at least one cycle."""

    def __init__(self, node_ids: list[str]) -> None:
        super().__init__(
            f"Workflow contains cycles involving nodes: {', '.join(node_ids)}",
            retryable=False,
        )
        self.node_ids = node_ids


class WorkflowTimeoutError(WorkflowError):
    """Run exceeded the definition's max execution time."""

    def __init__(self, timeout_ms: float) -> None:
        super().__init__(
            f"Workflow exceeded max execution time of {timeout_ms:g}ms",
            retryable=True,
        )
        self.timeout_ms = timeout_ms


class NodeFailedError(WorkflowError):
    """A node failure that aborts the whole run."""

    def __init__(self, node_id: str, error: str | None) -> None:
        super().__init__(f"Node {node_id} failed: {error}", retryable=False)
        self.node_id = node_id
        self.error = error


# Node Errors
class NodeError(FlowGraphError):
    """Base class for errors raised while executing a single node."""

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, retryable=retryable)
        self.node_id = node_id


class NodeReferenceError(NodeError):
    """Reference points at a node that has not completed."""

    def __init__(self, node_id: str) -> None:
        super().__init__(
            f"Node {node_id} has not completed or failed",
            node_id=node_id,
        )


class ExpressionError(NodeError):
    """Transform or condition expression could not be evaluated."""

    def __init__(self, expression: str, reason: str, *, node_id: str | None = None) -> None:
        super().__init__(
            f"Invalid expression '{expression}': {reason}",
            node_id=node_id,
        )
        self.expression = expression
        self.reason = reason


class LoopSourceError(NodeError):
    """Loop items did not resolve to a list."""

    def __init__(self, got: object, *, node_id: str | None = None) -> None:
        super().__init__(
            f"Loop items must be an array, got {type(got).__name__}",
            node_id=node_id,
        )


# Tool Errors
class ToolError(FlowGraphError):
    """Base class for tool invocation errors."""

    def __init__(self, message: str, *, tool_id: str, retryable: bool = False) -> None:
        super().__init__(message, retryable=retryable)
        self.tool_id = tool_id


class ToolNotFoundError(ToolError):
    """No tool registered under the requested id."""

    def __init__(self, tool_id: str, available: list[str] | None = None) -> None:
        message = f"Tool '{tool_id}' not found"
        if available:
            message += f". Available tools: {', '.join(available)}"
        super().__init__(message, tool_id=tool_id, retryable=False)
        self.available = available or []


class ToolExecutionError(ToolError):
    """Tool invocation failed. Can be retried."""

    def __init__(
        self,
        message: str,
        *,
        tool_id: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, tool_id=tool_id, retryable=True)
        self.status_code = status_code
