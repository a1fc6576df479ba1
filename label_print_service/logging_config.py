"""
Logging setup for the print service process.

Library modules only create ``logging.getLogger(__name__)`` loggers; this is
called once by the entry point to attach handlers.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

from .config import LOG_DIR, LOG_LEVEL

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_dir: Optional[Union[str, Path]] = None, level: Optional[str] = None,
                  console: bool = True) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        log_dir: Directory for log files (default LOG_DIR)
        level: Log level name (default LOG_LEVEL)
        console: Also log to stdout

    Returns:
        The root logger
    """
    log_dir = Path(log_dir or LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # Main service log (daily rotation)
    service_handler = logging.handlers.TimedRotatingFileHandler(
        log_dir / 'print-service.log',
        when='midnight',
        interval=1,
        backupCount=30,
        encoding='utf-8',
    )
    service_handler.setLevel(level)
    service_handler.setFormatter(formatter)
    logger.addHandler(service_handler)

    # Errors only: dead letters, bridge failures
    error_handler = logging.FileHandler(log_dir / 'errors.log', encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    logger.addHandler(error_handler)

    # Werkzeug logs every request at INFO
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    return logger
