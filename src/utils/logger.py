"""
Logging utility with loguru.
Provides structured logging with optional file rotation.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from src.config.settings import settings


def setup_logger(
    level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_dir: Optional[str] = None,
):
    """
    Configure loguru logger with console and (optionally) file outputs.

    Args:
        level: Console log level (defaults to settings.log_level)
        log_to_file: Also write a rotating log file (defaults to settings.log_to_file)
        log_dir: Directory for the log file (defaults to settings.log_dir_resolved)
    """
    logger.remove()

    logger.add(
        sys.stdout,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level or settings.log_level,
    )

    if log_to_file if log_to_file is not None else settings.log_to_file:
        directory = Path(log_dir or settings.log_dir_resolved)
        directory.mkdir(parents=True, exist_ok=True)

        logger.add(
            directory / "chat.log",
            rotation="10 MB",
            retention="1 week",
            compression="zip",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",
        )

    logger.debug("Logger initialized")
    return logger
