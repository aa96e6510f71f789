import logging

import pytest

from jewelry_tryon.config import LOG_FILENAME
from jewelry_tryon.logger import LOGGER_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def test_file_gets_debug_records(tmp_path):
    setup_logging(debug=False, log_dir=tmp_path)
    get_logger("Session").debug("anchors pushed")

    for handler in logging.getLogger(LOGGER_NAME).handlers:
        handler.flush()
    text = (tmp_path / LOG_FILENAME).read_text(encoding="utf-8")
    assert "JewelryTryOn.Session" in text
    assert "anchors pushed" in text


def test_console_only(tmp_path):
    logger = setup_logging(log_to_file=False, log_dir=tmp_path)
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
    assert not (tmp_path / LOG_FILENAME).exists()


def test_repeated_setup_replaces_handlers(tmp_path):
    setup_logging(log_dir=tmp_path)
    logger = setup_logging(log_dir=tmp_path)
    assert len(logger.handlers) == 2


def test_mediapipe_loggers_quiet_unless_debug():
    setup_logging(log_to_file=False)
    assert logging.getLogger("absl").level == logging.WARNING
    setup_logging(debug=True, log_to_file=False)
    assert logging.getLogger("absl").level == logging.DEBUG


def test_child_logger_name():
    assert get_logger("Camera").name == "JewelryTryOn.Camera"
    assert get_logger().name == LOGGER_NAME
