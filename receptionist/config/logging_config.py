"""
Logging setup for the receptionist service.

Every module logs through the single ``receptionist`` logger. Output always goes
to stdout; a size-rotated file under ``LOG_DIR`` is added when that directory is
writable, so call transcripts of a running server can be inspected afterwards.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from receptionist.config.constants import LOGGER_NAME

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE_NAME = "receptionist.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def _file_handler(log_dir: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_dir / LOG_FILE_NAME, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT)
    handler.setFormatter(formatter)
    return handler


def configure_logging(level: Optional[str] = None, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure the service logger. Safe to call more than once: previous
    handlers are replaced, never duplicated.

    Args:
        level: Level name such as ``DEBUG``; defaults to the LOG_LEVEL env var
        log_dir: Directory for the rotating log file; defaults to LOG_DIR

    Returns:
        logging.Logger: The configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    level_name = (level or LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Read-only deployments still get console output
    try:
        logger.addHandler(_file_handler(log_dir or LOG_DIR, formatter))
    except OSError as e:
        logger.warning(f"Could not set up file logging: {e}")

    # Keep call logs out of the root logger (uvicorn configures that one)
    logger.propagate = False

    logger.info(f"Logging configured at {logging.getLevelName(logger.level)}")
    return logger
