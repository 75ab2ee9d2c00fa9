"""Tests for structured logging."""
import json
import logging
import sys

from docchat.utils.logger import JSONFormatter, LOGGER_NAME, set_log_level


def make_record(**extra):
    record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, "Answer ready", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_known_extra_fields_are_included(self):
        line = JSONFormatter().format(make_record(room_id="room-1", cache_hit=True, unrelated="x"))
        data = json.loads(line)

        assert data["message"] == "Answer ready"
        assert data["level"] == "INFO"
        assert data["room_id"] == "room-1"
        assert data["cache_hit"] is True
        assert "unrelated" not in data

    def test_exception_is_formatted(self):
        try:
            raise ValueError("bad chunk")
        except ValueError:
            record = logging.LogRecord(LOGGER_NAME, logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad chunk" in data["exception"]


def test_set_log_level():
    logger = logging.getLogger(LOGGER_NAME)
    previous = logger.level
    try:
        set_log_level("debug")
        assert logger.level == logging.DEBUG
        set_log_level("nonsense")
        assert logger.level == logging.INFO
    finally:
        logger.setLevel(previous)
