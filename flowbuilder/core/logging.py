"""Thread-safe logging system with circular buffer.

Provides a logging interface for the editor core that:
- Uses a circular buffer (max 200 entries) to prevent memory growth
- Notifies listeners so the log panel can follow new entries
- Formats log entries with timestamps and graph context
"""

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from threading import Lock
from typing import Any, Callable, Iterator, Optional

from .constants import LOG_BUFFER_SIZE


class LogLevel(Enum):
    """Log entry severity levels."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class LogEntry:
    """A single log entry.

    Attributes:
        timestamp: When the entry was created
        level: Severity level
        message: Log message content
        operation: Editor operation in progress (if applicable)
        node_count: Number of nodes after the operation (if applicable)
        edge_count: Number of edges after the operation (if applicable)
    """

    timestamp: datetime
    level: LogLevel
    message: str
    operation: Optional[str] = None
    node_count: Optional[int] = None
    edge_count: Optional[int] = None

    def format(self) -> str:
        """Format the log entry as a string."""
        time_str = self.timestamp.strftime("%H:%M:%S")
        parts = [f"[{time_str}]", f"[{self.level.name}]"]

        if self.operation:
            parts.append(f"[{self.operation}]")

        parts.append(self.message)

        if self.node_count is not None:
            parts.append(f"nodes={self.node_count}")

        if self.edge_count is not None:
            parts.append(f"edges={self.edge_count}")

        return " ".join(parts)


@dataclass
class LogBuffer:
    """Thread-safe circular buffer for log entries.

    Uses a deque with maxlen to automatically discard old entries.
    """

    max_size: int = LOG_BUFFER_SIZE
    _buffer: deque[LogEntry] = field(default_factory=lambda: deque(maxlen=LOG_BUFFER_SIZE))
    _lock: Lock = field(default_factory=Lock)
    _listeners: list[Callable[[LogEntry], None]] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Reinitialize buffer with correct maxlen if max_size differs."""
        if self._buffer.maxlen != self.max_size:
            self._buffer = deque(maxlen=self.max_size)

    def add(self, entry: LogEntry) -> None:
        """Add a log entry to the buffer (thread-safe)."""
        with self._lock:
            self._buffer.append(entry)

        # Notify outside the lock; listeners may read the buffer
        for listener in list(self._listeners):
            listener(entry)

    def get_all(self) -> list[LogEntry]:
        """Get all entries in the buffer (thread-safe)."""
        with self._lock:
            return list(self._buffer)

    def get_recent(self, count: int) -> list[LogEntry]:
        """Get the most recent N entries (thread-safe)."""
        with self._lock:
            if count >= len(self._buffer):
                return list(self._buffer)
            return list(self._buffer)[-count:]

    def clear(self) -> None:
        """Clear all entries (thread-safe)."""
        with self._lock:
            self._buffer.clear()

    def add_listener(self, callback: Callable[[LogEntry], None]) -> None:
        """Add a listener to be notified of new entries."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[LogEntry], None]) -> None:
        """Remove a listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def __len__(self) -> int:
        """Return current buffer size."""
        with self._lock:
            return len(self._buffer)


class Logger:
    """Main logging interface for the editor core.

    Provides convenience methods for logging at different levels
    with optional graph context (operation, node and edge counts).
    """

    def __init__(self, buffer: Optional[LogBuffer] = None) -> None:
        """Initialize logger with optional existing buffer."""
        self._buffer = buffer if buffer is not None else LogBuffer()
        self._current_operation: Optional[str] = None

    @property
    def buffer(self) -> LogBuffer:
        """Access the underlying log buffer."""
        return self._buffer

    def set_operation(self, operation: Optional[str]) -> None:
        """Set the operation name attached to subsequent entries."""
        self._current_operation = operation

    @contextmanager
    def operation(self, name: str) -> Iterator["Logger"]:
        """Attach ``name`` to entries logged inside the block."""
        previous = self._current_operation
        self._current_operation = name
        try:
            yield self
        finally:
            self._current_operation = previous

    def _log(
        self,
        level: LogLevel,
        message: str,
        node_count: Optional[int] = None,
        edge_count: Optional[int] = None,
    ) -> LogEntry:
        """Internal logging method."""
        entry = LogEntry(
            timestamp=datetime.now(),
            level=level,
            message=message,
            operation=self._current_operation,
            node_count=node_count,
            edge_count=edge_count,
        )
        self._buffer.add(entry)
        return entry

    def debug(self, message: str, **kwargs: Any) -> LogEntry:
        """Log a debug message."""
        return self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> LogEntry:
        """Log an info message."""
        return self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> LogEntry:
        """Log a warning message."""
        return self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> LogEntry:
        """Log an error message."""
        return self._log(LogLevel.ERROR, message, **kwargs)

    def graph_changed(self, operation: str, node_count: int, edge_count: int) -> LogEntry:
        """Log a committed store mutation."""
        return self.debug(
            f"{operation} committed",
            node_count=node_count,
            edge_count=edge_count,
        )

    def layout_result(self, area_count: int, placed: int, overflow: int) -> LogEntry:
        """Log the outcome of an auto-layout pass."""
        msg = f"Auto-layout arranged {placed} node(s) in {area_count} area(s)"
        if overflow:
            msg += f", {overflow} unassigned action(s) moved to overflow"
        return self.info(msg)


# Global logger instance for convenience
_global_logger: Optional[Logger] = None


def get_logger() -> Logger:
    """Get the global logger instance, creating one if needed."""
    global _global_logger
    if _global_logger is None:
        _global_logger = Logger()
    return _global_logger


def set_logger(logger: Logger) -> None:
    """Set the global logger instance."""
    global _global_logger
    _global_logger = logger
