"""Logging setup for applications embedding GridSync.

The library itself only creates module-level loggers; hosts call
``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")
FILE_HANDLER_NAME = "gridsync-file"
CONSOLE_HANDLER_NAME = "gridsync-console"


def _drop_handler(root_logger: logging.Logger, name: str) -> None:
    for handler in root_logger.handlers[:]:
        if handler.get_name() == name:
            root_logger.removeHandler(handler)
            handler.close()


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """Configure the root logger.

    Args:
        level: File log level name; falls back to ``GRIDSYNC_LOG_LEVEL`` then DEBUG
        log_file: Optional rotating log file
        console_level: Threshold for the console handler

    Returns:
        The ``gridsync`` package logger
    """
    level_name = (level or os.getenv("GRIDSYNC_LOG_LEVEL", "DEBUG")).upper()
    file_log_level = getattr(logging, level_name, logging.DEBUG)

    root_logger = logging.getLogger()
    root_logger.setLevel(min(file_log_level, console_level))

    # Repeated calls replace our handlers instead of stacking them
    _drop_handler(root_logger, FILE_HANDLER_NAME)
    _drop_handler(root_logger, CONSOLE_HANDLER_NAME)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.set_name(FILE_HANDLER_NAME)
        file_handler.setLevel(file_log_level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    ))
    root_logger.addHandler(console_handler)

    # Suppress verbose third-party library logs
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("gridsync")
    logger.info(f"Logging configured: file={log_file}, console={logging.getLevelName(console_level)}+")
    return logger
