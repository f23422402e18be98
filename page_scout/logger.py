# === FILE: page_scout/logger.py ===
"""Project-wide logging for **PageScout**.

Highlights
----------
* Unified format for console and optional file output (with rotation).
* Single, importable instance :data:`logger`::

      from page_scout.logger import logger
      logger.info("Runtime scan started")
* :func:`log_swallowed`: the one place where fire-and-forget failures
  (storage tiers, listener hooks, dropped runtime events) are reported,
  tagged with their error class so they stay visible in the logs.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "PageScout"

_LevelT = Union[int, str]


# --------------------------------------------------------------------------- #
# Handlers                                                                    #
# --------------------------------------------------------------------------- #


def _stdout_handler(fmt: str) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=str(file),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the PageScout logger.

    Parameters
    ----------
    level
        Numeric or textual logging level (e.g. ``"DEBUG"``).
    log_file
        Path to a logfile. *None* → console-only output.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        *True* – remove existing handlers; *False* – just append new one(s).
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        lg.handlers.clear()

    lg.addHandler(_stdout_handler(log_format))

    if log_file is not None:
        lg.addHandler(_file_handler(log_file, log_format))

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Entry-point variant of :func:`configure` used by the CLI."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def log_swallowed(error: BaseException, during: str, *, level: int = logging.WARNING) -> None:
    """Report a failure that is deliberately not propagated.

    The message starts with the error class (``StorageUnavailable``,
    ``ExtractionFailure``, ...) so swallowed failures can be grepped by kind.
    """
    reason = getattr(error, "reason", None) or str(error) or type(error).__name__
    logging.getLogger(LOGGER_NAME).log(level, "%s during %s: %s", type(error).__name__, during, reason)


logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "log_swallowed", "LOGGER_NAME", "DEFAULT_FORMAT"]
