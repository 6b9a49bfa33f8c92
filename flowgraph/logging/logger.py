"""FlowGraph logger implementation."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from rich.console import Console
from rich.markup import escape


class LogLevel(str, Enum):
    """Log levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        """Get numeric rank for comparison."""
        ranks = {"debug": 0, "info": 1, "warning": 2, "error": 3}
        return ranks[self.value]


class FlowGraphLogger:
    """Structured logger for workflow runs.

    Provides Rich-formatted logging for run and node lifecycle tracking.

    Example:
        >>> logger = FlowGraphLogger(level=LogLevel.DEBUG)
        >>> logger.info("Loading definition", workflow="daily-report")
        >>> logger.node_start("fetch", "tool")
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        console: Console | None = None,
        show_timestamps: bool = True,
        show_level: bool = True,
        enabled: bool = True,
    ) -> None:
        """Initialize logger.

        Args:
            level: Minimum log level to display.
            console: Rich console instance (created if None).
            show_timestamps: Whether to show timestamps.
            show_level: Whether to show log level.
            enabled: Whether logging is enabled.
        """
        self._level = level
        self._console = console or Console(stderr=True)
        self._show_timestamps = show_timestamps
        self._show_level = show_level
        self._enabled = enabled

    @property
    def level(self) -> LogLevel:
        """Current log level."""
        return self._level

    @level.setter
    def level(self, value: LogLevel) -> None:
        self._level = value

    @property
    def enabled(self) -> bool:
        """Whether logging is enabled."""
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @property
    def console(self) -> Console:
        return self._console

    def _should_log(self, level: LogLevel) -> bool:
        return self._enabled and level.rank >= self._level.rank

    def _format_prefix(self, level: LogLevel) -> str:
        """Format log prefix with timestamp and level."""
        parts = []

        if self._show_timestamps:
            timestamp = datetime.now().strftime("%H:%M:%S")
            parts.append(f"[dim]{timestamp}[/]")

        if self._show_level:
            level_colors = {
                LogLevel.DEBUG: "dim",
                LogLevel.INFO: "blue",
                LogLevel.WARNING: "yellow",
                LogLevel.ERROR: "red bold",
            }
            color = level_colors.get(level, "white")
            parts.append(f"[{color}]{level.value.upper():7}[/]")

        return " ".join(parts)

    def _emit(self, level: LogLevel, line: str) -> None:
        if not self._should_log(level):
            return
        prefix = self._format_prefix(level)
        self._console.print(f"{prefix} {line}" if prefix else line)

    def _log(self, level: LogLevel, message: str, **context: Any) -> None:
        if context:
            context_str = " ".join(
                f"[dim]{k}=[/]{escape(str(v))}" for k, v in context.items()
            )
            message = f"{message} {context_str}"
        self._emit(level, message)

    def debug(self, message: str, **context: Any) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **context)

    def error(self, message: str, **context: Any) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, message, **context)

    # Run lifecycle

    def workflow_start(self, workflow_name: str, node_count: int, execution_id: str) -> None:
        self._emit(
            LogLevel.INFO,
            f"[bold cyan]◆ {escape(workflow_name)}[/] starting with {node_count} nodes "
            f"[dim]({execution_id})[/]",
        )

    def execution_order(self, order: list[str]) -> None:
        self._emit(LogLevel.DEBUG, f"  [dim]Order:[/] {escape(' → '.join(order))}")

    def workflow_end(
        self,
        workflow_name: str,
        duration_ms: int | None,
        summary: dict[str, int],
    ) -> None:
        """Log run completion with per-status node counts."""
        details = [f"{duration_ms}ms"] if duration_ms is not None else []
        details.extend(f"{count} {status}" for status, count in summary.items() if count)
        self._emit(
            LogLevel.INFO,
            f"[bold cyan]◆ {escape(workflow_name)}[/] completed ({' | '.join(details)})",
        )

    def workflow_error(self, workflow_name: str, error: str) -> None:
        self._emit(
            LogLevel.ERROR,
            f"[bold red]◆ {escape(workflow_name)}[/] failed: {escape(error)}",
        )

    # Node lifecycle

    def node_start(self, node_id: str, node_type: str) -> None:
        self._emit(
            LogLevel.INFO,
            f"[bold blue]▶ {escape(node_id)}[/] [dim]{node_type}[/] starting",
        )

    def node_end(self, node_id: str, duration_ms: int | None = None) -> None:
        duration = f" ({duration_ms}ms)" if duration_ms is not None else ""
        self._emit(LogLevel.INFO, f"[bold green]✓ {escape(node_id)}[/] completed{duration}")

    def node_error(self, node_id: str, error: str) -> None:
        self._emit(LogLevel.ERROR, f"[bold red]✗ {escape(node_id)}[/] failed: {escape(error)}")

    def node_skip(self, node_id: str, reason: str) -> None:
        self._emit(LogLevel.INFO, f"[yellow]↷ {escape(node_id)}[/] skipped ({escape(reason)})")

    def node_retry(self, node_id: str, attempt: int, delay_ms: float, error: str) -> None:
        """Log a failed tool attempt that will be retried."""
        self._emit(
            LogLevel.WARNING,
            f"  [yellow]↻ {escape(node_id)}[/] attempt {attempt + 1} failed, "
            f"retrying in {delay_ms:g}ms: {escape(error)}",
        )
