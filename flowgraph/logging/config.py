"""Global logger, built from ``Settings``."""

from __future__ import annotations

from rich.console import Console

from flowgraph.config import Settings, get_settings
from flowgraph.errors.exceptions import ConfigurationError
from flowgraph.logging.logger import FlowGraphLogger, LogLevel


_logger: FlowGraphLogger | None = None


def parse_level(value: LogLevel | str) -> LogLevel:
    """Convert a level name such as ``"DEBUG"`` to a LogLevel.

    Raises:
        ConfigurationError: If the name is not a known level.
    """
    if isinstance(value, LogLevel):
        return value
    try:
        return LogLevel(value.strip().lower())
    except ValueError:
        known = ", ".join(level.value for level in LogLevel)
        raise ConfigurationError(
            f"Invalid log level '{value}'. Expected one of: {known}"
        ) from None


def configure_logging(
    settings: Settings | None = None,
    *,
    console: Console | None = None,
    show_timestamps: bool = True,
) -> FlowGraphLogger:
    """Build the global logger from settings and install it.

    Args:
        settings: Source of ``log_level`` and ``log_enabled``
            (defaults to ``get_settings()``).
        console: Rich console to write to (stderr if None).
        show_timestamps: Whether to prefix lines with the time.

    Returns:
        The installed logger.

    Raises:
        ConfigurationError: If ``settings.log_level`` is not a known level.

    Example:
        >>> configure_logging(Settings(log_level="debug"), show_timestamps=False)
        >>> get_logger().node_start("fetch", "tool")
    """
    global _logger
    settings = settings or get_settings()
    _logger = FlowGraphLogger(
        level=parse_level(settings.log_level),
        console=console,
        show_timestamps=show_timestamps,
        enabled=settings.log_enabled,
    )
    return _logger


def get_logger() -> FlowGraphLogger:
    """Get the global logger, configuring it from settings on first use."""
    if _logger is None:
        return configure_logging()
    return _logger
