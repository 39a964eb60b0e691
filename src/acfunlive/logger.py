"""
Logging for AcFun Live Directory.

Records may carry request context as ``extra`` fields: the broadcaster
(``streamer``), the supervised ``operation`` with its ``attempt`` number,
and the live list ``cursor``. Both formatters render whichever are present.
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


ROOT_LOGGER = 'acfunlive'

# Rendered in this order after the message
CONTEXT_FIELDS = ('operation', 'attempt', 'cursor')


class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


def format_context(record: logging.LogRecord) -> str:
    """``key=value`` pairs for the context fields set on a record."""
    pairs = []
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            pairs.append(f"{name}={value!r}" if name == 'cursor' else f"{name}={value}")
    return " ".join(pairs)


class ConsoleFormatter(logging.Formatter):
    """Short colored lines: time, level, [streamer], message, context."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.MAGENTA,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        parts = [
            f"{Colors.GRAY}{datetime.fromtimestamp(record.created):%H:%M:%S}{Colors.RESET}",
            f"{color}{record.levelname:8}{Colors.RESET}",
        ]

        streamer = getattr(record, 'streamer', None)
        if streamer:
            parts.append(f"{Colors.CYAN}[{streamer}]{Colors.RESET}")
        parts.append(record.getMessage())

        context = format_context(record)
        if context:
            parts.append(f"{Colors.GRAY}({context}){Colors.RESET}")

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class FileFormatter(logging.Formatter):
    """Pipe-separated lines with the logger name and request context."""

    def format(self, record: logging.LogRecord) -> str:
        columns = [
            f"{datetime.fromtimestamp(record.created):%Y-%m-%d %H:%M:%S}",
            f"{record.levelname:8}",
            f"{record.name:22}",
            f"{getattr(record, 'streamer', None) or '-':24}",
            record.getMessage(),
        ]
        context = format_context(record)
        if context:
            columns.append(context)

        line = " | ".join(columns)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextAdapter(logging.LoggerAdapter):
    """Adds fixed context fields; fields passed per call take precedence."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size_mb: int = 10,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the ``acfunlive`` logger.

    Args:
        level: Logging level name, case-insensitive.
        log_file: Rotating log file path. If None, logs only to console.
        max_size_mb: Size at which the log file rotates.
        backup_count: Rotated files to keep.

    Returns:
        The configured root logger of the package.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers = [(logging.StreamHandler(sys.stdout), ConsoleFormatter())]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            path,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
        handlers.append((rotating, FileFormatter()))

    for handler, formatter in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Package logger, or its ``acfunlive.<name>`` child."""
    return logging.getLogger(f'{ROOT_LOGGER}.{name}' if name else ROOT_LOGGER)


def get_streamer_logger(streamer: str) -> ContextAdapter:
    """Logger that tags every record with a broadcaster label, usually ``name(uid)``."""
    return ContextAdapter(get_logger('streamer'), {'streamer': streamer})
