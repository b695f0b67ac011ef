"""Tests for the loguru logging setup."""

import logging
import sys

import pytest
from loguru import logger

import onemit
from onemit.hub import EventHub
from onemit.logging import InterceptHandler, setup_logging


@pytest.fixture
def restore_logging():
    """Put loguru and stdlib logging back to the library defaults after the test."""
    yield
    logger.remove()
    logger.add(sys.__stderr__)
    logger.disable(onemit.__name__)
    logging.basicConfig(handlers=[], force=True)


@pytest.fixture
def captured(restore_logging):
    """Enable onemit logging and collect every message in a list."""
    messages = []
    setup_logging("DEBUG")
    logger.add(messages.append, level="TRACE", format="{level}|{name}|{message}")
    return messages


def test_package_is_silent_by_default():
    messages = []
    sink_id = logger.add(messages.append, level="TRACE")
    try:
        EventHub().on("foo", lambda event: None)
    finally:
        logger.remove(sink_id)
    assert messages == []


def test_setup_logging_enables_package(captured):
    hub = EventHub()
    hub.on("foo", lambda event: None)
    hub.off("foo")

    text = "\n".join(str(message) for message in captured)
    assert "EventHub initialized" in text
    assert "Registered handler for 'foo'" in text
    assert "Removed 1 listener(s) for 'foo'" in text


def test_stdlib_logging_is_intercepted(captured):
    logging.getLogger("some.library").warning("hello from stdlib")

    assert any("hello from stdlib" in str(message) for message in captured)
    assert any(isinstance(handler, InterceptHandler) for handler in logging.getLogger().handlers)


def test_setup_logging_defaults_to_settings(monkeypatch: pytest.MonkeyPatch, capsys, restore_logging):
    from onemit.settings import get_settings

    get_settings.cache_clear()
    monkeypatch.setenv("ONEMIT_LOG_LEVEL", "error")
    try:
        setup_logging()
        EventHub()
        logging.getLogger("some.library").error("stdlib failure")
    finally:
        get_settings.cache_clear()

    err = capsys.readouterr().err
    assert "stdlib failure" in err
    assert "EventHub initialized" not in err
