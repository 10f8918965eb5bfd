"""Tests for logging configuration module."""

import logging
import logging.handlers
from unittest.mock import patch

import pytest

from bitcoind_regtest.logging_config import ColorFilter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def clean_root_logger():
    yield
    logger = logging.getLogger("bitcoind_regtest")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


class TestSetupLogging:
    """Test logging setup functionality."""

    def test_setup_logging_default(self):
        logger = setup_logging()

        assert logger.name == "bitcoind_regtest"
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1

    def test_setup_logging_verbose(self):
        logger = setup_logging(verbose=True)

        assert logger.level == logging.DEBUG
        assert "funcName" in logger.handlers[0].formatter._fmt

    def test_setup_logging_quiet(self):
        assert setup_logging(quiet=True).level == logging.ERROR

    def test_setup_logging_invalid_level(self):
        assert setup_logging(level="INVALID").level == logging.INFO

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "node.log"

        logger = setup_logging(log_file=str(log_file))

        file_handler = next(
            (h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)), None
        )
        assert file_handler is not None
        assert file_handler.maxBytes == 10 * 1024 * 1024
        assert file_handler.backupCount == 5
        assert log_file.parent.exists()

    @patch("pathlib.Path.mkdir", side_effect=PermissionError("Permission denied"))
    def test_setup_logging_file_error(self, mock_mkdir, tmp_path):
        logger = setup_logging(log_file=str(tmp_path / "denied" / "node.log"))

        assert len(logger.handlers) == 1


class TestGetLogger:
    """Test get_logger naming."""

    def test_prefixes_plain_names(self):
        assert get_logger("cli").name == "bitcoind_regtest.cli"

    def test_keeps_module_names(self):
        assert get_logger("bitcoind_regtest.bitcoind").name == "bitcoind_regtest.bitcoind"

    def test_default_is_root(self):
        assert get_logger().name == "bitcoind_regtest"


def test_color_filter_strips_ansi():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "\x1b[31mred\x1b[0m text", None, None)

    assert ColorFilter().filter(record) is True
    assert record.msg == "red text"
