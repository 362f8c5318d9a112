# tests/test_util_logger.py
import json
import logging

import pytest

from config import get_app_config
from util_logger import (
    ComponentType,
    JSONFormatter,
    LogContext,
    LogLevel,
    LoggerFactory,
    is_debug_logging,
    log_exceptions,
)


def test_log_level_from_string():
    assert LogLevel.from_string("warning") is LogLevel.WARNING
    assert LogLevel.ERROR.to_python_level() == logging.ERROR


def test_context_drops_empty_fields():
    context = LogContext(operation="List Entities", entity_id="room1")
    assert context.to_dict() == {"operation": "List Entities", "entity_id": "room1"}


def test_formatter_emits_json():
    record = logging.LogRecord("client.Ngsi2Client", logging.INFO, __file__, 10, "GET %s", ("/v2",), None)
    record.custom_dimensions = {"component_type": "client"}
    payload = json.loads(JSONFormatter().format(record))
    assert payload["message"] == "GET /v2"
    assert payload["level"] == "INFO"
    assert payload["customDimensions"] == {"component_type": "client"}


def test_formatter_truncates_long_messages():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "a" * 20, None, None)
    payload = json.loads(JSONFormatter(max_message_length=5).format(record))
    assert payload["message"] == "aaaaa..."


def test_logger_injects_component_dimensions(caplog):
    logger = LoggerFactory.create_with_context(ComponentType.SERVICE, "TestService", operation="Create Entity")
    assert logger.name == "service.TestService"
    with caplog.at_level(logging.INFO, logger="service.TestService"):
        logger.info("created")
    record = caplog.records[-1]
    assert record.custom_dimensions == {
        "operation": "Create Entity",
        "component_type": "service",
        "component_name": "TestService",
    }


def test_log_exceptions_reraises(caplog):
    logger = LoggerFactory.create_logger(ComponentType.PARSER, "TestParser")

    @log_exceptions(logger=logger)
    def parse():
        raise ValueError("bad coords")

    with caplog.at_level(logging.ERROR, logger="parser.TestParser"):
        with pytest.raises(ValueError):
            parse()
    assert caplog.records[-1].custom_dimensions["exception_type"] == "ValueError"


@pytest.fixture
def debug_environment(monkeypatch):
    monkeypatch.setenv("DEBUG_LOGGING", "true")
    get_app_config.cache_clear()
    yield
    get_app_config.cache_clear()


def test_debug_logging_lowers_default_levels(debug_environment):
    assert is_debug_logging() is True
    logger = LoggerFactory.create_logger(ComponentType.CLIENT, "DebugClient")
    assert logger.level == logging.DEBUG


def test_default_level_without_debug_logging(monkeypatch):
    monkeypatch.delenv("DEBUG_LOGGING", raising=False)
    get_app_config.cache_clear()
    try:
        logger = LoggerFactory.create_logger(ComponentType.CLIENT, "QuietClient")
    finally:
        get_app_config.cache_clear()
    assert logger.level == logging.INFO
