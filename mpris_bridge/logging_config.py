"""Logging configuration for the bridge."""

from __future__ import annotations

import logging

from .config import AppConfig

LOGGER_NAME = "mpris_bridge"

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
_FILE_FORMAT = (
    "%(asctime)s | %(levelname)s | %(threadName)s | %(module)s:%(lineno)d | "
    "%(funcName)s | %(message)s"
)


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _route_to_file(name: str, file_handler: logging.Handler) -> None:
    routed = logging.getLogger(name)
    routed.setLevel(logging.DEBUG)
    routed.propagate = False
    _reset_handlers(routed)
    routed.addHandler(file_handler)


def setup_logging(config: AppConfig) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    _reset_handlers(logger)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(config.log_level)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
    file_handler.setLevel(config.file_log_level)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    logging.captureWarnings(True)
    _route_to_file("py.warnings", file_handler)
    # dbus-fast logs unhandled handler errors and connection loss here.
    _route_to_file("dbus_fast", file_handler)
    return logger
