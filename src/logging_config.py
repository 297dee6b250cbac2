"""Centralized logging configuration for the SAPF server.

This module provides a single point for configuring logging across the entire
application.
"""

import logging
import logging.config
import sys
from typing import Any, Dict, Optional

from .config import get_config, is_debug_mode

# Logger that receives sapf's response lines for operator visibility
OUTPUT_LOGGER_NAME = "src.sapf_server.output"

# Loggers switched to DEBUG by --debug or DEBUG=true
SESSION_LOGGERS = ("src.sapf_server", "src.sapf_server.process")


def get_logging_config(log_file: Optional[str] = "sapf_server.log") -> Dict[str, Any]:
    """Get the logging configuration dictionary.

    Args:
        log_file: Path of the rotating log file, or None to log to console only

    Returns:
        Dictionary suitable for logging.config.dictConfig()
    """
    config = get_config()

    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "standard",
            "stream": sys.stdout,
        },
        # sapf output is shown verbatim, without the record prefix
        "output": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "bare",
            "stream": sys.stdout,
        },
    }
    default_handlers = ["console"]
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "detailed",
            "filename": log_file,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
        }
        default_handlers.append("file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": config.logging.format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "bare": {"format": "%(message)s"},
        },
        "handlers": handlers,
        "loggers": {
            "src.sapf_server": {
                "level": config.logging.session_log_level,
                "handlers": default_handlers,
                "propagate": False,
            },
            "src.sapf_server.process": {
                "level": config.logging.process_log_level,
                "handlers": default_handlers,
                "propagate": False,
            },
            OUTPUT_LOGGER_NAME: {
                "level": "INFO",
                "handlers": ["output"] + default_handlers[1:],
                "propagate": False,
            },
            "src.midi_player": {
                "level": config.logging.midi_log_level,
                "handlers": default_handlers,
                "propagate": False,
            },
        },
        "root": {
            "level": config.logging.level,
            "handlers": default_handlers,
        },
    }


def setup_logging(
    log_file: Optional[str] = "sapf_server.log", debug: Optional[bool] = None
) -> None:
    """Configure logging for the session and its front ends.

    Args:
        log_file: Path of the rotating log file, or None to log to console only
        debug: Force DEBUG on the session loggers, defaults to the DEBUG setting
    """
    logging.config.dictConfig(get_logging_config(log_file))

    if debug is None:
        debug = is_debug_mode()
    if debug:
        for name in SESSION_LOGGERS:
            set_log_level(name, "DEBUG")

    logging.getLogger(__name__).debug("Logging configuration initialized")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance, typically for ``__name__``."""
    return logging.getLogger(name)


def set_log_level(logger_name: str, level: str) -> None:
    """Change the level of one logger at runtime.

    Args:
        logger_name: Name of the logger to modify
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValueError: If the level name is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")
    logging.getLogger(logger_name).setLevel(numeric_level)
