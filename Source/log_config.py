"""
Logging setup for Splitbill

Usage:
    from log_config import get_logger
    logger = get_logger(__name__)

Environment variables:
    SPLITBILL_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR. Default: WARNING
"""

import logging
import os
import sys

DEFAULT_LOG_LEVEL = logging.WARNING

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
LOG_FORMAT_DEBUG = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"

ROOT_LOGGER_NAME = "splitbill"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

_logging_configured = False


def configure_logging(level=None) -> None:
    """Attach a stderr handler to the splitbill logger namespace (once)"""
    global _logging_configured

    if _logging_configured:
        return

    if level is None:
        env_level = os.environ.get("SPLITBILL_LOG_LEVEL", "").upper()
        level = _LEVELS.get(env_level, DEFAULT_LOG_LEVEL)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_DEBUG if level == logging.DEBUG else LOG_FORMAT))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    root_logger.propagate = False

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the splitbill namespace"""
    configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_log_level(level: int) -> None:
    """Change the log level at runtime"""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setFormatter(logging.Formatter(LOG_FORMAT_DEBUG if level == logging.DEBUG else LOG_FORMAT))
