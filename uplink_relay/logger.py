# ============================================
#   Uplink — Central logger
#   Rotating file always, console too outside prod
# ============================================

import os
import logging
from logging.handlers import TimedRotatingFileHandler

from uplink_relay.config import IS_PROD, LOG_DIR, LOG_FILE, LOG_LEVEL

ROOT_LOGGER_NAME = os.getenv("UPLINK_LOGGER_NAME", "uplink")

FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _configure_root_logger() -> logging.Logger:
    """
    Configure the root Uplink logger once (idempotent).
    Daily rotating file with 30 days of history; dev also echoes to stderr.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    formatter = logging.Formatter(FORMAT, datefmt=DATE_FORMAT)

    os.makedirs(os.path.dirname(LOG_FILE) or LOG_DIR, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        LOG_FILE,
        when="midnight",
        backupCount=30,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if not IS_PROD:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    # Room ids and names only; ciphertext never goes through here
    logger.propagate = False
    return logger


def get_logger(module_name: str) -> logging.Logger:
    """uplink.<module_name>, e.g. get_logger("rooms") → uplink.rooms"""
    return _configure_root_logger().getChild(module_name)


def log_info(module: str, message: str):
    get_logger(module).info(message)


def log_warning(module: str, message: str):
    get_logger(module).warning(message)


def log_error(module: str, message: str):
    get_logger(module).error(message)


def log_exception(module: str, message: str):
    """Log with traceback. To be used inside except blocks."""
    get_logger(module).exception(message)
