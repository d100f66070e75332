# =============================================================================
# POLYGON CTF SCANNER - LOGGING CONFIGURATION
# =============================================================================
#
# Console logs go to stderr so JSON written to stdout stays machine-readable.
# Optional file logs go to logs/scanner_<timestamp>.log.
#
# =============================================================================

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers configured by setup_logging()
_PACKAGE_LOGGERS = ("chain", "gamma", "shared", "cockpit")

# Third-party loggers that are chatty at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "web3", "requests")


def _get_project_root() -> Path:
    """Get the project root directory."""
    # This file is at shared/logging_config.py
    return Path(__file__).parent.parent


def get_log_dir() -> Path:
    return _get_project_root() / "logs"


def setup_logging(
    level: int = logging.INFO,
    console_output: bool = True,
    file_output: bool = False,
    log_dir: Optional[Path] = None,
) -> Optional[Path]:
    """
    Configure logging for the scanner packages.

    Args:
        level: Logging level
        console_output: Whether to log to stderr
        file_output: Whether to log to a timestamped file
        log_dir: Override for the log directory

    Returns:
        Path of the log file, if file output is enabled
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = []

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    log_file = None
    if file_output:
        directory = log_dir or get_log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = directory / f"scanner_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for name in _PACKAGE_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        # Remove existing handlers to avoid duplicates
        logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_file:
        logging.getLogger("chain").debug(f"Log file: {log_file}")

    return log_file
