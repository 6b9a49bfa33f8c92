"""Event delivery to execution observers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from flowgraph.core.types import WorkflowEvent, WorkflowEventType

logger = logging.getLogger(__name__)

# Type aliases
SyncHandler = Callable[[WorkflowEvent], None]
AsyncHandler = Callable[[WorkflowEvent], Awaitable[None]]
EventHandler = SyncHandler | AsyncHandler


class EventBus:
    """Registry of event handlers.

    Supports both sync and async handlers, called in registration order.
    A failing handler is logged and never interrupts delivery to the others
    or the run that emitted the event.

    Example:
        >>> bus = EventBus()
        >>> unsubscribe = bus.subscribe(lambda e: print(e.type.value))
        >>> await bus.emit(WorkflowEventType.NODE_START, "exec-1", node_id="a")
        node:start
        >>> unsubscribe()
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for all events.

        Returns:
            Callable that removes the handler again.
        """
        self._handlers.append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(handler)

        return unsubscribe

    def unsubscribe(self, handler: EventHandler) -> bool:
        """Remove a handler. Returns True if it was registered."""
        try:
            self._handlers.remove(handler)
            return True
        except ValueError:
            return False

    def clear(self) -> None:
        self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)

    async def emit(
        self,
        event_type: WorkflowEventType,
        execution_id: str,
        node_id: str | None = None,
        data: Any = None,
    ) -> WorkflowEvent:
        """Build an event and deliver it to every handler."""
        event = WorkflowEvent(
            type=event_type,
            execution_id=execution_id,
            node_id=node_id,
            data=data,
        )
        # Snapshot so handlers may unsubscribe during delivery
        for handler in list(self._handlers):
            await self._deliver(handler, event)
        return event

    async def _deliver(self, handler: EventHandler, event: WorkflowEvent) -> None:
        try:
            result = handler(event)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("Event handler error for %s", event.type.value)
