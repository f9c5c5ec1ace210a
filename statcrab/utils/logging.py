"""
Logging configuration utilities for Statcrab.

Provides configurable logging with file rotation support. Console output
goes to stderr; stdout carries command output only.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from ..config import DEFAULT_LOG_FORMAT, StatcrabConfig


def setup_logging(config: Optional[StatcrabConfig] = None) -> None:
    """
    Configure logging based on StatcrabConfig settings.

    Args:
        config: StatcrabConfig instance. If None, uses sensible defaults.

    Example:
        config = StatcrabConfig.load("statcrab.yaml")
        setup_logging(config)
    """
    if config is None:
        _configure_root(logging.INFO, DEFAULT_LOG_FORMAT, None, 10485760, 3)
        return

    _configure_root(
        getattr(logging, config.log_level.upper(), logging.INFO),
        config.log_format,
        config.log_file or None,
        config.log_max_bytes,
        config.log_backup_count,
    )


def _configure_root(
    level: int,
    log_format: str,
    log_file: Optional[str],
    max_bytes: int,
    backup_count: int,
) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)
