"""
Logging configuration and utilities.

Provides centralized logging setup for the application.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from bite.config.settings import LoggingConfig
from bite.errors import ConfigurationError


def setup_logging(config: LoggingConfig, logger_name: Optional[str] = "bite") -> logging.Logger:
    """
    Set up logging for the application.

    Args:
        config: Logging configuration.
        logger_name: Logger to configure. Defaults to the package logger.

    Returns:
        Configured logger instance.

    Raises:
        ConfigurationError: If the log file can't be opened.
    """
    logger = logging.getLogger(logger_name)
    level = getattr(logging, config.level.upper(), logging.WARNING)
    logger.setLevel(level)

    logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    if config.console:
        # stderr keeps tables on stdout clean
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if config.file:
        try:
            config.file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(config.file, encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Can't open log file {config.file}: {e}") from e
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance by name.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
