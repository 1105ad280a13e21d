"""Settings and logging configuration."""

from bite.config.logging_config import get_logger, setup_logging
from bite.config.settings import LoggingConfig, ProgressConfig, Settings, StorageConfig

__all__ = [
    "LoggingConfig",
    "ProgressConfig",
    "Settings",
    "StorageConfig",
    "get_logger",
    "setup_logging",
]
