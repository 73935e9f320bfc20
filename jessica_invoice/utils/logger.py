"""Named loggers for the store, dashboard, API and scheduler."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import get_config


def _file_handler(log_file: str, formatter: logging.Formatter) -> RotatingFileHandler:
    config = get_config()
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_file,
        maxBytes=config.logging.max_bytes,
        backupCount=config.logging.backup_count,
        encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logger(name: str, log_file: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Return the logger ``name``, attaching handlers on first use.

    Output goes to stdout, plus a rotating ``log_file`` outside production.
    ``level`` overrides the configured level for this logger only.
    """
    config = get_config()

    logger = logging.getLogger(name)
    logger.setLevel((level or config.logging.level).upper())

    if logger.handlers:
        return logger

    formatter = logging.Formatter(config.logging.format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # production logs are collected from stdout
    if log_file and not config.is_production:
        logger.addHandler(_file_handler(log_file, formatter))

    return logger


def get_store_logger() -> logging.Logger:
    """Store, catalogue, invoice and company services."""
    return setup_logger("store", get_config().logging.files.store)


def get_dashboard_logger() -> logging.Logger:
    """Dashboard aggregation and report export."""
    return setup_logger("dashboard", get_config().logging.files.dashboard)


def get_error_logger() -> logging.Logger:
    return setup_logger("error", get_config().logging.files.error, "ERROR")


def get_api_logger() -> logging.Logger:
    return setup_logger("api", get_config().logging.files.api)


def get_scheduler_logger() -> logging.Logger:
    """APScheduler's own logger, so job failures in worker threads are visible."""
    return setup_logger("apscheduler")
