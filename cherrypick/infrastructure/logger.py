"""
Centralized logger for CherryPick.
"""

import logging
import sys


LOGGER_NAME = 'CherryPick'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str = LOGGER_NAME, level: int = logging.INFO) -> logging.Logger:
    """
    Create (or return) the package logger with a single stream handler.

    Args:
        name: Logger name
        level: Initial logging level

    Returns:
        Configured logger instance
    """
    _logger = logging.getLogger(name)

    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _logger.addHandler(handler)

    _logger.setLevel(level)
    return _logger


logger = setup_logger()
