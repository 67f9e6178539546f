"""In-memory ring buffer of recent log records for the admin log viewer."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone


class RingBufferHandler(logging.Handler):
    """Keeps the newest ``capacity`` records; older ones fall off."""

    def __init__(self, capacity: int = 200, level: int = logging.WARNING):
        super().__init__(level=level)
        self._records: deque[dict] = deque(maxlen=capacity)
        self._mutex = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "timestamp": datetime.fromtimestamp(
                    record.created, tz=timezone.utc
                ).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            if record.exc_info and record.exc_info[0] is not None:
                entry["exception"] = (
                    self.formatter or logging.Formatter()
                ).formatException(record.exc_info)
            with self._mutex:
                self._records.append(entry)
        except Exception:
            self.handleError(record)

    def entries(self) -> list[dict]:
        """Newest first."""
        with self._mutex:
            return list(reversed(self._records))

    def clear(self) -> None:
        with self._mutex:
            self._records.clear()


_handler: RingBufferHandler | None = None


def install(capacity: int, level: str = "WARNING") -> RingBufferHandler:
    """Attach the buffer to the root logger once and return it."""
    global _handler
    if _handler is None:
        _handler = RingBufferHandler(capacity, logging.getLevelName(level.upper()))
        logging.getLogger().addHandler(_handler)
    return _handler


def get_buffer() -> RingBufferHandler:
    if _handler is None:
        raise RuntimeError("Log buffer not installed")
    return _handler
