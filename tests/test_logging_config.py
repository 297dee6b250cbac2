"""Tests for logging setup."""

import logging

import pytest

from src.logging_config import (
    OUTPUT_LOGGER_NAME,
    get_logging_config,
    set_log_level,
    setup_logging,
)


class TestLoggingConfig:
    """Test the logging configuration helpers."""

    def teardown_method(self):
        """Undo handlers and levels installed by the tests."""
        names = list(get_logging_config(None)["loggers"]) + ["tests.example"]
        for name in names:
            logger = logging.getLogger(name)
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)
            logger.propagate = True
        logging.getLogger().handlers.clear()

    def test_file_handler_optional(self):
        """Test the rotating file handler is only added with a log file."""
        with_file = get_logging_config("session.log")
        without_file = get_logging_config(None)

        assert with_file["handlers"]["file"]["filename"] == "session.log"
        assert "file" not in without_file["handlers"]
        assert without_file["loggers"]["src.sapf_server"]["handlers"] == ["console"]

    def test_output_logger_is_bare(self):
        """Test sapf output is logged without a record prefix."""
        config = get_logging_config(None)
        output = config["loggers"][OUTPUT_LOGGER_NAME]

        assert output["handlers"] == ["output"]
        assert config["handlers"]["output"]["formatter"] == "bare"
        assert not output["propagate"]

    def test_setup_logging_debug(self):
        """Test debug mode lowers the session loggers to DEBUG."""
        setup_logging(log_file=None, debug=True)
        assert logging.getLogger("src.sapf_server").level == logging.DEBUG
        assert logging.getLogger("src.sapf_server.process").level == logging.DEBUG

    def test_set_log_level(self):
        """Test levels can be changed by name."""
        set_log_level("tests.example", "warning")
        assert logging.getLogger("tests.example").level == logging.WARNING

    def test_set_unknown_log_level(self):
        """Test unknown level names are rejected."""
        with pytest.raises(ValueError):
            set_log_level("tests.example", "LOUD")
