"""Shared logger for the whole package."""
import logging
import sys
from typing import Union


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(processName)s %(name)s: %(message)s"

logger: logging.Logger = logging.getLogger("sigfig_calculator")

# Worker processes re-import this module, guard against stacking handlers
if not logger.handlers:
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(logging.INFO)


def configure_logging(level: Union[int, str]) -> None:
    """
    Set the level of the package logger.

    :param int|str level: Logging level, numeric or by name (e.g. "DEBUG")
    """
    logger.setLevel(level.upper() if isinstance(level, str) else level)
