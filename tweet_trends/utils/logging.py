from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes present on every LogRecord; anything else arrived through ``extra``.
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class ExtraFormatter(logging.Formatter):
    """Append ``extra`` fields to the message as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extras = {key: value for key, value in vars(record).items() if key not in _RESERVED}
        if not extras:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{message} [{pairs}]"


def configure_logging(
    level: str = "INFO",
    filename: Optional[str] = None,
    *,
    fmt: str = DEFAULT_FORMAT,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    formatter = ExtraFormatter(fmt)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if filename:
        handlers.append(RotatingFileHandler(filename, maxBytes=max_bytes, backupCount=backup_count))
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level.upper(), handlers=handlers, force=True)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
