"""Tests for the logging ring buffer.

Verifies that:
- Entries carry operation and graph counts
- The buffer drops the oldest entries past its size
- Listeners see every new entry
"""

from datetime import datetime

from flowbuilder.core.logging import LogBuffer, LogEntry, Logger, LogLevel, get_logger, set_logger


class TestLogEntry:
    """Test entry formatting."""

    def test_format_with_context(self) -> None:
        entry = LogEntry(
            timestamp=datetime(2024, 1, 1, 12, 30, 5),
            level=LogLevel.INFO,
            message="add_node committed",
            operation="add_node",
            node_count=3,
            edge_count=1,
        )
        assert entry.format() == "[12:30:05] [INFO] [add_node] add_node committed nodes=3 edges=1"

    def test_format_plain(self) -> None:
        entry = LogEntry(timestamp=datetime(2024, 1, 1, 8, 0, 0), level=LogLevel.ERROR, message="boom")
        assert entry.format() == "[08:00:00] [ERROR] boom"


class TestLogBuffer:
    """Test the circular buffer."""

    def test_empty_buffer_is_used(self) -> None:
        """An empty buffer passed in is kept, not replaced."""
        buffer = LogBuffer()
        logger = Logger(buffer)
        assert logger.buffer is buffer
        logger.info("hello")
        assert [e.message for e in buffer.get_all()] == ["hello"]

    def test_oldest_entries_dropped(self) -> None:
        buffer = LogBuffer(max_size=3)
        logger = Logger(buffer)
        for i in range(5):
            logger.info(f"msg {i}")
        assert [e.message for e in buffer.get_all()] == ["msg 2", "msg 3", "msg 4"]
        assert len(buffer) == 3

    def test_recent(self) -> None:
        logger = Logger(LogBuffer())
        for i in range(4):
            logger.debug(str(i))
        assert [e.message for e in logger.buffer.get_recent(2)] == ["2", "3"]

    def test_listener_notified(self) -> None:
        buffer = LogBuffer()
        seen: list[LogEntry] = []
        buffer.add_listener(seen.append)
        Logger(buffer).warning("careful")
        buffer.remove_listener(seen.append)
        Logger(buffer).warning("unseen")
        assert [e.message for e in seen] == ["careful"]


class TestLogger:
    """Test Logger helpers."""

    def test_operation_context(self) -> None:
        """Entries inside the block carry the operation name."""
        logger = Logger(LogBuffer())
        with logger.operation("apply_layout"):
            logger.info("inside")
        logger.info("outside")
        entries = logger.buffer.get_all()
        assert entries[0].operation == "apply_layout"
        assert entries[1].operation is None

    def test_graph_changed(self) -> None:
        logger = Logger(LogBuffer())
        entry = logger.graph_changed("add_edge", 4, 2)
        assert entry.level == LogLevel.DEBUG
        assert (entry.node_count, entry.edge_count) == (4, 2)

    def test_layout_result_mentions_overflow(self) -> None:
        logger = Logger(LogBuffer())
        assert "overflow" in logger.layout_result(1, 4, 2).message
        assert "overflow" not in logger.layout_result(1, 4, 0).message

    def test_global_logger(self) -> None:
        logger = Logger(LogBuffer())
        previous = get_logger()
        set_logger(logger)
        try:
            assert get_logger() is logger
        finally:
            set_logger(previous)
