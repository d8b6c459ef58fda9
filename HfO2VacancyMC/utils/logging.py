"""Logging infrastructure for the vacancy simulation."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = 'hfo2_vacancy_mc'


def setup_logger(
    name: str = LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG
) -> logging.Logger:
    """Set up logger with console and optional file output.

    Args:
        name: Logger name
        level: Overall logging level
        log_file: Optional path to log file
        console_level: Logging level for console output
        file_level: Logging level for file output

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Replace the console handler and any handler on the same log file;
    # file handlers of other runs keep receiving records
    target = os.path.abspath(log_file) if log_file else None
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler) and handler.baseFilename != target:
            continue
        handler.close()
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(file_level)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get existing logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
