"""
Logging Configuration Module
============================

Application logging for Cloud-Sweeper.

Console output goes through Rich on stderr so it never interleaves with
reports written to stdout. An optional plain-text log file records the
worker thread of every line, which tells parallel region scans apart.

Application logs are diagnostics only. What a deletion run did is
recorded separately by :mod:`cloud_sweeper.cleaners.audit`.

Example
-------
>>> from cloud_sweeper.core.logging import setup_logging, get_logger
>>> setup_logging(level="DEBUG", log_file="cloud-sweeper.log")
>>> logger = get_logger(__name__)
>>> logger.info("Scanning us-east-1")

See Also
--------
rich.logging.RichHandler : Console handler used here.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from cloud_sweeper.core.exceptions import ConfigurationError

CONSOLE_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# SDK loggers that flood DEBUG output with wire traffic
QUIET_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


def parse_level(level: Union[str, int]) -> int:
    """
    Resolve a level name or number.

    Raises
    ------
    ConfigurationError
        If ``level`` is not a known level name.
    """
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name not in LEVELS:
        raise ConfigurationError(
            f"Unknown log level '{level}'",
            details={"allowed": list(LEVELS)},
        )
    return getattr(logging, name)


def setup_logging(
    level: Union[str, int] = "WARNING",
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Configure the root logger.

    Replaces any handlers already installed, so repeated calls (one per
    CLI invocation in tests) do not stack output.

    Parameters
    ----------
    level : str or int, default="WARNING"
        Threshold for both handlers.
    log_file : str, optional
        Also append plain-text lines to this file.
    console : Console, optional
        Rich console for the console handler. Defaults to stderr.
    """
    level = parse_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    sdk_level = max(level, logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    root_logger.debug(
        f"Logging at {logging.getLevelName(level)}"
        + (f", also to {log_file}" if log_file else "")
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, normally called with ``__name__``."""
    return logging.getLogger(name)
