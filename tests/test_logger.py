"""Tests for the logger wrapper."""

import logging
from unittest.mock import patch

import pytest

import recordlayer.logger as logger_module
from recordlayer.logger import _LEVELS, Logger, get_logger, setup_global_logging
from recordlayer.settings import settings


@pytest.fixture
def unconfigured():
    """Reset the one-time logging configuration flag around a test."""
    previous = logger_module._configured
    logger_module._configured = False
    yield
    logger_module._configured = previous


class TestSetupGlobalLogging:
    @pytest.mark.parametrize(
        "level,expected",
        [
            ("DEBUG", logging.DEBUG),
            ("info", logging.INFO),
            ("WARNING", logging.WARNING),
            ("CRITICAL", logging.CRITICAL),
            ("VERBOSE", logging.INFO),
        ],
    )
    def test_level_mapping(self, unconfigured, level, expected):
        with patch("logging.basicConfig") as basic_config:
            setup_global_logging(level)
        assert basic_config.call_args.kwargs["level"] == expected

    def test_configures_once(self, unconfigured):
        with patch("logging.basicConfig") as basic_config:
            setup_global_logging()
            setup_global_logging("DEBUG")
        basic_config.assert_called_once()


class TestLogger:
    @pytest.fixture
    def logger(self, unconfigured):
        with patch("logging.basicConfig"):
            return Logger("recordlayer.tests")

    def test_name(self, logger):
        assert logger.name == "recordlayer.tests"

    def test_get_logger(self, unconfigured):
        with patch("logging.basicConfig"):
            assert get_logger("transactions").name == "transactions"
            assert get_logger().name

    def test_init_configures_logging(self, unconfigured):
        with patch("recordlayer.logger.setup_global_logging") as setup:
            Logger("x")
        setup.assert_called_once_with(settings.LOG_LEVEL)

    @pytest.mark.parametrize("method", ["debug", "info", "warning", "error", "critical", "exception"])
    def test_delegates(self, logger, method):
        with patch.object(logger._logger, method) as target:
            getattr(logger, method)("Transaction %s", "t1", extra={"k": "v"})
        target.assert_called_once_with("Transaction %s", "t1", extra={"k": "v"})

    @pytest.mark.parametrize("level,method", [("DEBUG", "debug"), ("debug", "debug"), ("INFO", "info"), ("", "info")])
    def test_message_follows_low_levels(self, logger, level, method):
        with patch.object(settings, "LOG_LEVEL", level), patch.object(logger, method) as target:
            logger.message("Processed %d operation(s)", 3)
        target.assert_called_once_with("Processed %d operation(s)", 3)

    @pytest.mark.parametrize("level", ["WARNING", "ERROR", "CRITICAL"])
    def test_message_follows_high_levels(self, logger, level):
        with patch.object(settings, "LOG_LEVEL", level), patch.object(logger._logger, "log") as log:
            logger.message("Processed")
        assert log.call_args.args[0] == _LEVELS[level]
