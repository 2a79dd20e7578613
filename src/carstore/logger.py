"""
Logger setup.

``setup_logger(env)`` returns the ``carstore`` logger configured for one of
the three environments:

    local -> human readable text, DEBUG
    dev   -> JSON lines, DEBUG
    prod  -> JSON lines, INFO

The returned logger is passed to the app and the service explicitly.
"""

import json
import logging
import sys
from typing import Any

LOGGER_NAME = "carstore"

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = set(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Formats records as one JSON object per line, including ``extra`` fields."""

    def __init__(self, *, env: str | None = None, datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env

    def format(self, record: logging.LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "env": self.env,
        }
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_") or key in log_record:
                continue
            log_record[key] = value

        # default=str keeps dataclasses and other non-JSON values loggable
        return json.dumps(log_record, ensure_ascii=False, default=str)


def setup_logger(env: str, stream=None) -> logging.Logger:
    """
    Configure and return the application logger for an environment.

    Args:
        env: One of "local", "dev", "prod"
        stream: Output stream, stdout by default
    """
    if env == "local":
        formatter: logging.Formatter = logging.Formatter(TEXT_FORMAT)
        level = logging.DEBUG
    elif env == "dev":
        formatter = JsonFormatter(env=env)
        level = logging.DEBUG
    elif env == "prod":
        formatter = JsonFormatter(env=env)
        level = logging.INFO
    else:
        raise ValueError(f"unknown environment {env!r}")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
