"""
Logging utilities for the managed instance group adapter.

The CLI logs plain text to stdout and a log file. The Cloud Function logs
one JSON object per line to stdout, which Cloud Logging parses into
structured entries.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
STRUCTURED_LOG_FORMAT = (
    '{"severity": "%(levelname)s", "logger": "%(name)s", '
    '"message": "%(message)s", "timestamp": "%(asctime)s"}'
)

# HTTP transport loggers; their DEBUG output would bury the request bodies
QUIET_LOGGERS = ("urllib3", "google.auth", "google.auth.transport")


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = "igm-adapter.log",
    structured: bool = False,
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        verbose: Enable verbose (DEBUG) logging, including the JSON bodies
            of insert and patch requests
        log_file: Path to log file, or None to log to stdout only
        structured: Emit JSON lines instead of plain text

    Returns:
        Logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=STRUCTURED_LOG_FORMAT if structured else LOG_FORMAT,
        handlers=handlers,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger(__name__)
