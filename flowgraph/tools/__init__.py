"""Tool executors: in-process registry and HTTP registry client."""

from flowgraph.tools.http import RegistryToolExecutor, create_api_tool_executor
from flowgraph.tools.registry import ToolRegistry

__all__ = [
    "ToolRegistry",
    "RegistryToolExecutor",
    "create_api_tool_executor",
]
