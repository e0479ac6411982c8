"""Tests for perch.server.logs — handler setup and request id stamping."""

import io
import logging

import pytest

from perch.context import request_id_var
from perch.server.logs import RequestIdFilter, configure_logging


@pytest.fixture
def perch_logger():
    logger = logging.getLogger("perch")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


def _record() -> logging.LogRecord:
    return logging.LogRecord("perch.test", logging.INFO, __file__, 1, "hello", None, None)


class TestRequestIdFilter:
    def test_outside_request(self) -> None:
        record = _record()
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "-"

    def test_inside_request(self) -> None:
        token = request_id_var.set("abc123")
        try:
            record = _record()
            RequestIdFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert record.request_id == "abc123"

    def test_explicit_value_kept(self) -> None:
        record = _record()
        record.request_id = "given"
        RequestIdFilter().filter(record)
        assert record.request_id == "given"


class TestConfigureLogging:
    def test_writes_formatted_lines(self, perch_logger: logging.Logger) -> None:
        stream = io.StringIO()
        configure_logging("debug", stream=stream)
        logging.getLogger("perch.server").debug("started")

        line = stream.getvalue()
        assert "DEBUG" in line
        assert "perch.server [-] started" in line
        assert perch_logger.level == logging.DEBUG

    def test_replaces_previous_handler(self, perch_logger: logging.Logger) -> None:
        first = configure_logging("info", stream=io.StringIO())
        second = configure_logging("warning", stream=io.StringIO())
        assert first not in perch_logger.handlers
        assert second in perch_logger.handlers

    def test_unknown_level(self, perch_logger: logging.Logger) -> None:
        with pytest.raises(ValueError, match="loud"):
            configure_logging("loud")
