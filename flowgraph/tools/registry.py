"""In-process tool registry."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

from flowgraph.errors.exceptions import ToolNotFoundError

ToolFunc = Callable[..., Any]


class ToolRegistry:
    """Maps tool ids to Python callables.

    A registry is itself a tool executor: awaiting ``registry(tool_id, params)``
    calls the registered function with ``params`` as keyword arguments. Both
    sync and async functions are supported.

    Example:
        >>> registry = ToolRegistry()
        >>> @registry.tool("weather.lookup")
        ... async def lookup(city: str) -> dict:
        ...     return {"city": city, "temp": 21}
        >>> await registry("weather.lookup", {"city": "Oslo"})
        {'city': 'Oslo', 'temp': 21}
    """

    def __init__(self, tools: dict[str, ToolFunc] | None = None) -> None:
        """Initialize with an optional mapping of tool id to function."""
        self._tools: dict[str, ToolFunc] = {}
        if tools:
            for tool_id, func in tools.items():
                self.register(tool_id, func)

    def register(self, tool_id: str, func: ToolFunc) -> None:
        """Register a tool. An existing registration is replaced."""
        self._tools[tool_id] = func

    def tool(self, tool_id: str) -> Callable[[ToolFunc], ToolFunc]:
        """Decorator form of ``register``."""

        def decorator(func: ToolFunc) -> ToolFunc:
            self.register(tool_id, func)
            return func

        return decorator

    def unregister(self, tool_id: str) -> bool:
        """Unregister a tool by id. Returns True if found."""
        if tool_id in self._tools:
            del self._tools[tool_id]
            return True
        return False

    def get(self, tool_id: str) -> ToolFunc | None:
        return self._tools.get(tool_id)

    @property
    def tool_ids(self) -> list[str]:
        """Ids of all registered tools."""
        return list(self._tools.keys())

    async def __call__(self, tool_id: str, params: dict[str, Any]) -> Any:
        """Execute a tool by id.

        Raises:
            ToolNotFoundError: If no tool is registered under ``tool_id``.
        """
        func = self._tools.get(tool_id)
        if func is None:
            raise ToolNotFoundError(tool_id, self.tool_ids)

        result = func(**params)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_id: str) -> bool:
        return tool_id in self._tools
