"""Resilience patterns for tool invocation."""

from flowgraph.resilience.retry import RetryPolicy

__all__ = ["RetryPolicy"]
