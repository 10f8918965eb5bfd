"""
Logging configuration for the bitcoind regtest fixture.

Library modules only ask for loggers through get_logger(); handlers are
installed by setup_logging(), which the command line front end (or a test
harness) calls once.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "bitcoind_regtest"

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


class ColorFilter(logging.Filter):
    """Strip colorama escape sequences from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _ANSI_ESCAPE.sub("", record.msg)
        return True


def setup_logging(
    level: str = "INFO", log_file: Optional[str] = None, verbose: bool = False, quiet: bool = False
) -> logging.Logger:
    """
    Set up logging for the package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to
        verbose: Enable verbose output (DEBUG level)
        quiet: Suppress all output except errors

    Returns:
        The configured package root logger
    """
    if verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.ERROR
    else:
        log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    if verbose:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        )
    else:
        formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ColorFilter())
    logger.addHandler(console_handler)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
            )
            file_handler.setLevel(logging.DEBUG)  # Always log debug to file
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            logger.info(f"Logging to file: {log_file}")
        except OSError as e:
            logger.warning(f"Could not set up file logging: {e}")

    logger.debug(f"Logging configured with level: {logging.getLevelName(log_level)}")

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger under the package root logger.

    Args:
        name: Logger name; module names already under the package are used as is

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
