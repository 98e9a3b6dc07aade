"""
Centralized logging configuration for nisync.

Every module gets its logger from ``create_logger``: coloured console
output on stdout, plus a plain text file when a log directory or file is
configured.
"""

import logging
import os
import sys
from typing import Optional, Union

import colorlog

CONSOLE_FORMAT = "%(log_color)s[%(levelname)s]%(reset)s %(blue)s[%(name)s]%(reset)s %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}
TROUBLESHOOTING = (
    "Troubleshooting:",
    "  1. Review the discrepancy and change reports",
    "  2. Verify area ids and years of the edits",
    "  3. Download a fresh snapshot and reapply the edits",
)


def _console_handler(level) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(CONSOLE_FORMAT, log_colors=LOG_COLORS))
    return handler


def _file_handler(path: str, level) -> logging.Handler:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def create_logger(
    name: Optional[str] = None,
    log_level: Union[int, str, None] = None,
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
):
    """
    Create a color-coded logger, optionally also writing to a file.

    Level and log directory default to the ``NISYNC_LOG_LEVEL`` and
    ``NISYNC_LOG_DIR`` environment variables. Calling it again for the
    same name replaces the handlers instead of adding more.

    :param name: Name of the logger (typically __name__)
    :param log_level: Logging level (default: INFO)
    :param log_dir: Directory for the log file (optional)
    :param log_file: Log file name, defaults to ``<name>.log`` (optional)
    :return: Configured logger instance
    """
    level = log_level or os.getenv("NISYNC_LOG_LEVEL", "INFO").upper()
    log_dir = log_dir or os.getenv("NISYNC_LOG_DIR") or None

    logger = colorlog.getLogger(name or "nisync")
    logger.setLevel(level)
    logger.propagate = False
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.addHandler(_console_handler(level))

    if log_dir or log_file:
        path = log_file or f"{name or 'nisync'}.log"
        if log_dir:
            path = os.path.join(log_dir, path)
        logger.addHandler(_file_handler(path, level))

    return logger


def log_exception(logger, e, context=None):
    """
    Standardized exception logging with optional context.

    :param logger: Logger instance
    :param e: Exception object
    :param context: Optional additional context for the error
    """
    logger.critical("🚨 UPLOAD BLOCKED 🚨")
    logger.critical(f"{type(e).__name__}: {e}")
    if context:
        logger.critical(f"Context: {context}")
    for step in TROUBLESHOOTING:
        logger.critical(step)
