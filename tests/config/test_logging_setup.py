"""Unit tests for log formatting and the logger manager."""

import json
import logging
import sys
from io import StringIO

import pytest

from netstate.config import LoggingConfig
from netstate.logging_setup import ROOT_LOGGER_NAME, LoggerManager, StructuredFormatter, TextFormatter


def make_record(msg="Test message", args=(), **extra):
    record = logging.LogRecord(
        name="netstate.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    @pytest.fixture
    def formatter(self):
        return StructuredFormatter()

    def test_format_basic_message(self, formatter):
        data = json.loads(formatter.format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "netstate.test"
        assert data["message"] == "Test message"
        assert data["timestamp"].endswith("+00:00")

    def test_format_with_args(self, formatter):
        data = json.loads(formatter.format(make_record("Value is %s", ("hello",))))
        assert data["message"] == "Value is hello"

    def test_extra_fields_from_record(self, formatter):
        data = json.loads(formatter.format(make_record(service_path="/service/wifi1")))
        assert data["service_path"] == "/service/wifi1"

    def test_static_extra_fields(self):
        formatter = StructuredFormatter(extra_fields={"component": "cli"})
        data = json.loads(formatter.format(make_record()))
        assert data["component"] == "cli"

    def test_source_location(self):
        formatter = StructuredFormatter(include_source_location=True)
        data = json.loads(formatter.format(make_record()))
        assert data["source"]["line"] == 42

    def test_exception(self, formatter):
        try:
            raise ValueError("broken")
        except ValueError:
            record = logging.LogRecord(
                name="netstate.test",
                level=logging.ERROR,
                pathname="test.py",
                lineno=1,
                msg="failed",
                args=(),
                exc_info=sys.exc_info(),
            )

        data = json.loads(formatter.format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "broken"

    def test_unserializable_extra(self, formatter):
        data = json.loads(formatter.format(make_record(payload=object())))
        assert data["payload"].startswith("<object object")

    def test_secret_fields_redacted(self, formatter):
        data = json.loads(formatter.format(make_record(passphrase="hunter22", service_path="/service/wifi1")))
        assert data["passphrase"] == "***"
        assert data["service_path"] == "/service/wifi1"


class TestTextFormatter:
    """Tests for TextFormatter."""

    def test_format(self):
        output = TextFormatter().format(make_record())
        assert "INFO" in output
        assert "[netstate.test]" in output
        assert output.endswith("Test message")

    def test_service_path(self):
        output = TextFormatter().format(make_record(service_path="/service/wifi1"))
        assert "[/service/wifi1] Test message" in output

    def test_device_and_service_path(self):
        output = TextFormatter().format(make_record(service_path="/service/cell", device_path="/device/cellular0"))
        assert "[/device/cellular0] [/service/cell] Test message" in output


class TestLoggerManager:
    """Tests for LoggerManager."""

    @pytest.fixture
    def manager(self):
        manager = LoggerManager(LoggingConfig(level="DEBUG"))
        yield manager
        manager.shutdown()
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.NOTSET)

    def test_configure_attaches_handler(self, manager):
        manager.configure()

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        assert manager.is_configured
        assert manager.handler in root_logger.handlers
        assert root_logger.level == logging.DEBUG
        assert not root_logger.propagate

    def test_configure_is_idempotent(self, manager):
        manager.configure()
        handler = manager.handler
        manager.configure()
        assert manager.handler is handler
        assert logging.getLogger(ROOT_LOGGER_NAME).handlers.count(handler) == 1

    def test_shutdown_removes_handler(self):
        manager = LoggerManager(LoggingConfig())
        manager.configure()
        handler = manager.handler

        manager.shutdown()

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        assert handler not in root_logger.handlers
        assert root_logger.propagate
        assert not manager.is_configured

    def test_json_output(self, manager):
        manager.config.format = "json"
        manager.configure()
        stream = StringIO()
        manager.handler.setStream(stream)

        manager.get_logger("library").info("ready")

        data = json.loads(stream.getvalue())
        assert data["logger"] == "netstate.library"
        assert data["message"] == "ready"

    def test_file_output(self, tmp_path):
        log_file = tmp_path / "netstate.log"
        manager = LoggerManager(LoggingConfig(output_file=str(log_file)))
        manager.configure()
        try:
            manager.get_logger("netstate.test").warning("written")
        finally:
            manager.shutdown()

        assert "written" in log_file.read_text()

    def test_get_logger_prefix(self, manager):
        assert manager.get_logger("library").name == "netstate.library"
        assert manager.get_logger("netstate.parser").name == "netstate.parser"

    def test_set_level(self, manager):
        manager.configure()
        manager.set_level("error")
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.ERROR
