"""
Logging setup for JewelryTryOn.

Everything logs under the "JewelryTryOn" logger. The console gets short
lines; the rotating log file (per-user app data directory unless
--log-dir is given) gets full records including the call site.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from .config import (
    LOG_FILENAME,
    LOG_MAX_BYTES,
    LOG_BACKUP_COUNT,
    LOG_APP_DIR_NAME,
    THIRD_PARTY_LOGGERS,
)

LOGGER_NAME = "JewelryTryOn"

CONSOLE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%H:%M:%S"
)
FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s.%(funcName)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)


def default_log_directory() -> Path:
    """%APPDATA%/JewelryTryOn/logs on Windows, ~/.jewelry_tryon/logs elsewhere."""
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata) / LOG_APP_DIR_NAME / "logs"
    return Path.home() / ".jewelry_tryon" / "logs"


def _file_handler(log_dir: Path) -> RotatingFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(FILE_FORMAT)
    return handler


def setup_logging(
    debug: bool = False,
    log_to_file: bool = True,
    log_dir: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """
    Configure the application logger.

    Safe to call more than once; earlier handlers are closed and replaced.
    MediaPipe's own loggers are held at WARNING unless debugging.

    Args:
        debug: Log DEBUG records to the console as well.
        log_to_file: Add the rotating file handler.
        log_dir: Directory for the log file (default: default_log_directory()).

    Returns:
        The "JewelryTryOn" logger.
    """
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_to_file else level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(CONSOLE_FORMAT)
    logger.addHandler(console_handler)

    if log_to_file:
        file_handler = _file_handler(Path(log_dir) if log_dir else default_log_directory())
        logger.addHandler(file_handler)
        logger.debug(f"Logging to file: {file_handler.baseFilename}")

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Child of the application logger, e.g. get_logger("Camera")."""
    base_logger = logging.getLogger(LOGGER_NAME)
    return base_logger.getChild(name) if name else base_logger
