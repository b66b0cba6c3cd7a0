"""
JSON logging for the service.

Every record carries the correlation id of the snapshot cycle, event-listener
run or HTTP request that produced it.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

from shared.logging.correlation import get_correlation_id

LOG_FILE_NAME = "companion.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

QUIET_LOGGERS = ("uvicorn.access", "asyncio")


class CorrelationIdFilter(logging.Filter):
    """Attach the current correlation id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Flat JSON lines: timestamp, level, logger, message, correlation_id."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = self.formatTime(record)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name

        cid = getattr(record, 'correlation_id', None)
        if cid:
            log_record['correlation_id'] = cid
        else:
            log_record.pop('correlation_id', None)

        if record.exc_info and not log_record.get('exc_info'):
            log_record['exception'] = self.formatException(record.exc_info)
        for duplicate in ('levelname', 'name'):
            log_record.pop(duplicate, None)


def _attach(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())
    root.addHandler(handler)


def setup_logging(level: str = "INFO", log_dir: Optional[str] = "logs") -> None:
    """
    Route all logging to stdout as JSON, plus a rotating file under ``log_dir``.

    Args:
        level: Root log level name; unknown names fall back to INFO
        log_dir: Directory for the rotating log file, None for stdout only
    """
    formatter = CustomJsonFormatter(fmt='%(timestamp)s %(level)s %(logger)s %(message)s')

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    _attach(root, logging.StreamHandler(sys.stdout), formatter)

    if log_dir:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                str(Path(log_dir) / LOG_FILE_NAME),
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding='utf-8',
            )
        except OSError as e:
            root.warning("File logging disabled: %s", e)
        else:
            _attach(root, file_handler, formatter)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
