"""Structured JSON logging.

Every line is one JSON object with `timestamp`, `level`, `logger`, `event`
and the service identity; anything passed via `extra=` (session_id, user_id,
request_id, ...) is merged in as top-level keys.
"""

import logging
import sys
from typing import Any

from pythonjsonlogger import jsonlogger

from practice_service.core.config import settings

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "alembic": logging.INFO,
}


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter for practice service log lines."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["event"] = log_record.pop("message", record.getMessage())
        log_record["service"] = settings.PROJECT_NAME
        log_record["env"] = settings.ENV
        log_record.pop("asctime", None)


def setup_logging(level: str | None = None) -> None:
    """Install the JSON handler on the root logger (replaces existing handlers)."""
    level_name = (level or settings.LOG_LEVEL).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
