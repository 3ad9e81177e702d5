"""Configuration for browsersuite.

Settings are read from the environment when the module is imported, except for
the default test server port which is looked up on every call so a suite can
change it between runs.
"""

import logging
import os
import sys

# Server configuration
HOST = os.environ.get("BROWSERSUITE_HOST", "127.0.0.1")
DEFAULT_TEST_SERVER_PORT = 19001
SERVER_STARTUP_TIMEOUT = float(os.environ.get("BROWSERSUITE_STARTUP_TIMEOUT", "10.0"))
SERVER_LOG_LEVEL = os.environ.get("BROWSERSUITE_SERVER_LOG_LEVEL", "warning").lower()

# Browser configuration
BROWSER = os.environ.get("BROWSERSUITE_BROWSER", "chromium").lower()
HEADLESS = os.environ.get("BROWSERSUITE_HEADLESS", "true").lower() not in ("0", "false", "no")

# Patience for integration tests: default Playwright timeout and eventually() retry cadence
TIMEOUT_MS = float(os.environ.get("BROWSERSUITE_TIMEOUT_MS", "15000"))
RETRY_INTERVAL_MS = float(os.environ.get("BROWSERSUITE_RETRY_INTERVAL_MS", "150"))

# Logging configuration
# Valid values: DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_LEVEL_STR = os.environ.get("BROWSERSUITE_LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_STR, logging.INFO)
LOG_FILE = os.environ.get("BROWSERSUITE_LOG_FILE")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def default_server_port() -> int:
    """Return the port test servers listen on unless a suite overrides it.

    Reads ``TESTSERVER_PORT`` from the environment, falling back to 19001.

    Raises:
        ValueError: If ``TESTSERVER_PORT`` is not an integer.
    """
    value = os.environ.get("TESTSERVER_PORT")
    if not value:
        return DEFAULT_TEST_SERVER_PORT
    return int(value)


def setup_logging() -> logging.Logger:
    """Configure logging for browsersuite command-line use.

    Sets up a stderr handler, plus a file handler when BROWSERSUITE_LOG_FILE
    is set. The level comes from BROWSERSUITE_LOG_LEVEL.

    Returns:
        The root logger for the browsersuite package.
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    logger = logging.getLogger("browsersuite")
    logger.setLevel(LOG_LEVEL)

    # Avoid duplicate handlers if setup is called multiple times
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if LOG_FILE:
        try:
            file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
            file_handler.setLevel(LOG_LEVEL)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning("Could not set up file logging to %s: %s", LOG_FILE, e)

    logger.propagate = False

    return logger
