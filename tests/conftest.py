"""Pytest configuration and fixtures for FlowGraph tests."""

from __future__ import annotations

from collections.abc import Callable
from io import StringIO
from typing import Any

import pytest
from rich.console import Console

from flowgraph.config import Settings
from flowgraph.core.engine import WorkflowEngine
from flowgraph.core.types import (
    Edge,
    Node,
    NodeExecutionResult,
    NodeStatus,
    WorkflowDefinition,
    WorkflowEvent,
)
from flowgraph.logging.logger import FlowGraphLogger, LogLevel


def make_node(node_id: str, data: dict[str, Any], **extra: Any) -> Node:
    """Build a node from editor-shaped (camelCase) data."""
    return Node.model_validate({"id": node_id, "data": data, **extra})


def tool_node(node_id: str, tool_id: str = "echo", params: dict[str, Any] | None = None, **data: Any) -> Node:
    return make_node(node_id, {"type": "tool", "toolId": tool_id, "params": params or {}, **data})


def condition_node(node_id: str, left: Any, operator: str, right: Any, **data: Any) -> Node:
    return make_node(
        node_id,
        {
            "type": "condition",
            "condition": {"leftOperand": left, "operator": operator, "rightOperand": right},
            **data,
        },
    )


def edge(source: str, target: str, handle: str | None = None) -> Edge:
    return Edge(id=f"{source}->{target}", source=source, target=target, source_handle=handle)


def make_definition(
    nodes: list[Node],
    edges: list[Edge] | None = None,
    **kwargs: Any,
) -> WorkflowDefinition:
    return WorkflowDefinition(
        id=kwargs.pop("id", "wf-test"),
        name=kwargs.pop("name", "Test workflow"),
        nodes=nodes,
        edges=edges or [],
        **kwargs,
    )


def completed(node_id: str, output: Any) -> NodeExecutionResult:
    return NodeExecutionResult(node_id=node_id, status=NodeStatus.COMPLETED, output=output)


class RecordingToolExecutor:
    """Tool executor that records calls.

    ``responses`` maps a tool id to a return value, an exception instance
    (raised on every call), or a callable taking the params.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def calls_for(self, tool_id: str) -> list[dict[str, Any]]:
        return [params for called, params in self.calls if called == tool_id]

    async def __call__(self, tool_id: str, params: dict[str, Any]) -> Any:
        self.calls.append((tool_id, params))
        response = self.responses.get(tool_id, params)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(params)
            if hasattr(response, "__await__"):
                response = await response
        return response


class EventRecorder:
    """Collects events emitted by an engine."""

    def __init__(self) -> None:
        self.events: list[WorkflowEvent] = []

    def __call__(self, event: WorkflowEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event.type.value for event in self.events]

    def for_node(self, node_id: str) -> list[str]:
        return [event.type.value for event in self.events if event.node_id == node_id]


@pytest.fixture
def tools() -> RecordingToolExecutor:
    return RecordingToolExecutor()


@pytest.fixture
def settings() -> Settings:
    """Settings with short retry delays."""
    return Settings(default_retry_delay_ms=1.0, default_max_iterations=1000)


@pytest.fixture
def log_output() -> StringIO:
    return StringIO()


@pytest.fixture
def logger(log_output: StringIO) -> FlowGraphLogger:
    console = Console(file=log_output, force_terminal=False, width=200)
    return FlowGraphLogger(level=LogLevel.DEBUG, console=console, show_timestamps=False)


@pytest.fixture
def make_engine(
    tools: RecordingToolExecutor,
    settings: Settings,
    logger: FlowGraphLogger,
) -> Callable[..., WorkflowEngine]:
    """Factory building an engine around the recording tool executor."""

    def factory(definition: WorkflowDefinition, tool_executor: Any = None) -> WorkflowEngine:
        return WorkflowEngine(
            definition,
            tools if tool_executor is None else tool_executor,
            settings=settings,
            logger=logger,
        )

    return factory
