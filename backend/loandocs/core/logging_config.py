"""
Logging setup for the loan document vault backend.

Every record carries the id of the HTTP request it was emitted under, so the
per-file lines of one upload batch can be pulled out of a shared log.
"""
import logging
import logging.handlers
import os
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() == "true"
LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))

# Set by RequestIDMiddleware for the duration of a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s %(filename)s:%(lineno)d: %(message)s"

_QUIET_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "httpx", "passlib", "multipart")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def setup_logging(
    log_level: str = LOG_LEVEL,
    log_file: Optional[str] = None,
    enable_file_logging: bool = LOG_TO_FILE
) -> None:
    """
    Configure the root logger.

    Args:
        log_level: Level name for the console handler
        log_file: Log file path (defaults to logs/loan-documents.log)
        enable_file_logging: Also write DEBUG and above to a rotating file
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    request_filter = RequestIdFilter()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if enable_file_logging else level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    console_handler.addFilter(request_filter)
    root_logger.addHandler(console_handler)

    if enable_file_logging:
        path = Path(log_file) if log_file else LOG_DIR / "loan-documents.log"
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.addFilter(request_filter)
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger (pass ``__name__``)."""
    return logging.getLogger(name)
