"""Centralized logging configuration for Reminder Dispatcher.

One rotating file per component (cron.log, push.log, api.log, ...) plus
console output. Level and directory come from settings (LOG_LEVEL, LOG_DIR).
"""

import logging
from logging.handlers import RotatingFileHandler
import os

from config import settings

LOG_DIR = settings.LOG_DIR or os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
os.makedirs(LOG_DIR, exist_ok=True)

LOG_FORMAT = '[%(asctime)s] %(levelname)s - %(message)s'


def setup_logger(name: str, log_file: str = 'dispatcher.log') -> logging.Logger:
    """Return a logger writing to logs/<log_file> and the console.

    Args:
        name: Logger name (usually __name__)
        log_file: Log file name (e.g., 'cron.log', 'push.log')
    """
    logger = logging.getLogger(name)

    # Already configured by an earlier import
    if logger.handlers:
        return logger

    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    # 10MB per file, 5 backups
    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, log_file),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    console_handler = logging.StreamHandler()

    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def configure_root_logger():
    """Reduce third-party library noise."""
    for noisy in ('uvicorn', 'uvicorn.access', 'fastapi', 'sqlalchemy', 'httpx', 'httpcore'):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# Auto-configure on import
configure_root_logger()
