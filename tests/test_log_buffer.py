"""Ring buffer behind the admin log viewer."""

import logging

from src.infrastructure.log_buffer import RingBufferHandler


def _logger(handler, name="tests.log_buffer"):
    log = logging.getLogger(name)
    log.addHandler(handler)
    log.setLevel(logging.DEBUG)
    return log


class TestRingBufferHandler:
    def test_keeps_newest_first(self):
        handler = RingBufferHandler(capacity=10)
        log = _logger(handler, "tests.order")
        try:
            log.warning("first")
            log.error("second")
        finally:
            log.removeHandler(handler)

        entries = handler.entries()
        assert [e["message"] for e in entries] == ["second", "first"]
        assert entries[0]["level"] == "ERROR"
        assert entries[0]["logger"] == "tests.order"

    def test_below_level_is_ignored(self):
        handler = RingBufferHandler(capacity=10, level=logging.WARNING)
        log = _logger(handler, "tests.level")
        try:
            log.info("noise")
        finally:
            log.removeHandler(handler)
        assert handler.entries() == []

    def test_capacity_drops_oldest(self):
        handler = RingBufferHandler(capacity=3)
        log = _logger(handler, "tests.capacity")
        try:
            for i in range(5):
                log.warning("msg %d", i)
        finally:
            log.removeHandler(handler)
        assert [e["message"] for e in handler.entries()] == ["msg 4", "msg 3", "msg 2"]

    def test_exception_text_is_captured(self):
        handler = RingBufferHandler(capacity=3)
        log = _logger(handler, "tests.exc")
        try:
            try:
                raise ValueError("boom")
            except ValueError:
                log.exception("failed")
        finally:
            log.removeHandler(handler)
        assert "ValueError: boom" in handler.entries()[0]["exception"]

    def test_clear(self):
        handler = RingBufferHandler(capacity=3)
        log = _logger(handler, "tests.clear")
        try:
            log.warning("x")
        finally:
            log.removeHandler(handler)
        handler.clear()
        assert handler.entries() == []
