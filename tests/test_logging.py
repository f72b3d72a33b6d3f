"""Tests for library log silencing and setup_logging."""

import importlib
import json
import logging

import pytest
from loguru import logger
from samples import CALCULATOR_WSDL, RecordingTransport

import wsproxy
from wsproxy import DynamicProxy
from wsproxy.logging_config import HTTP_LOGGERS, setup_logging


@pytest.fixture()
def records():
    """Messages from every loguru record, captured at DEBUG."""
    seen = []
    sink_id = logger.add(lambda message: seen.append(message.record["message"]), level="DEBUG")
    yield seen
    try:
        logger.remove(sink_id)
    except ValueError:
        pass


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    logger.remove()
    logger.disable("wsproxy")
    for name in HTTP_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = []
        stdlib_logger.propagate = True


class TestLibraryDefaults:
    def test_import_disables_package_records(self, records):
        logger.enable("wsproxy")
        importlib.reload(wsproxy)
        DynamicProxy(CALCULATOR_WSDL, transport=RecordingTransport())
        assert not any(m.startswith(("Parsed description", "Proxy ready")) for m in records)

    def test_host_records_are_untouched(self, records):
        importlib.reload(wsproxy)
        logger.info("host message")
        assert records == ["host message"]


class TestSetupLogging:
    def test_enables_package_records(self):
        sink_id = setup_logging(level="DEBUG")
        assert isinstance(sink_id, int)

        seen = []
        logger.add(lambda message: seen.append(message.record["message"]), level="DEBUG")
        DynamicProxy(CALCULATOR_WSDL, transport=RecordingTransport())
        assert any(m.startswith("Parsed description: 1 service(s)") for m in seen)

    def test_replaces_existing_sinks(self, records):
        setup_logging(level="DEBUG")
        logger.info("after setup")
        assert records == []

    def test_json_lines(self, capsys):
        setup_logging(level="INFO", json=True)
        logger.info("structured")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        assert json.loads(line)["record"]["message"] == "structured"

    def test_level_filters(self, capsys):
        setup_logging(level="WARNING")
        logger.info("quiet")
        logger.warning("loud")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "loud" in err

    def test_http_loggers_are_intercepted(self):
        setup_logging(level="DEBUG")
        seen = []
        logger.add(lambda message: seen.append(message.record["message"]), level="DEBUG")
        logging.getLogger("httpx").warning("HTTP Request: POST http://t.test/ 500")
        assert seen == ["HTTP Request: POST http://t.test/ 500"]
        assert logging.getLogger("httpcore").propagate is False
