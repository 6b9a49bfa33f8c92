"""Logging module for FlowGraph.

Provides structured logging with Rich console support.
"""

from flowgraph.logging.logger import LogLevel, FlowGraphLogger
from flowgraph.logging.config import configure_logging, get_logger, parse_level

__all__ = [
    "LogLevel",
    "FlowGraphLogger",
    "get_logger",
    "configure_logging",
    "parse_level",
]
