"""Tests for logger setup."""

import logging

from jessica_invoice.utils.logger import setup_logger


def test_level_override_and_single_handler_set(tmp_path):
    log_file = str(tmp_path / "logs" / "reports.log")

    logger = setup_logger("test-reports", log_file, "error")
    again = setup_logger("test-reports", log_file, "error")

    assert again is logger
    assert logger.level == logging.ERROR
    assert len(logger.handlers) == 2
    assert (tmp_path / "logs").is_dir()


def test_console_only_without_log_file():
    logger = setup_logger("test-console")

    assert [type(handler) for handler in logger.handlers] == [logging.StreamHandler]
