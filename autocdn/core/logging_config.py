"""Root logging setup for the ``autocdn`` command line."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional, TextIO, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 512 * 1024
LOG_BACKUP_COUNT = 3

# Libraries that are chatty at DEBUG and never interesting to an operator
QUIET_LOGGERS = ("asyncio",)

_LEVEL_ALIASES = {"warn": "WARNING", "fatal": "CRITICAL"}

# Handlers installed by configure_logging(); anything else on the root
# logger (pytest's capture handlers, for one) is left alone.
_installed: List[logging.Handler] = []


def resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    name = _LEVEL_ALIASES.get(level.strip().lower(), level.strip().upper())
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level '{level}'")
    return value


def _remove_installed(root: logging.Logger) -> None:
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    log_file: Optional[Union[str, Path]] = None,
    stream: Optional[TextIO] = None,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """(Re)install the console handler and, optionally, a rotating log file.

    The console handler writes to ``stream`` (stderr by default) so that a
    run's own output on stdout stays clean. Calling again replaces the
    handlers from the previous call.
    """
    numeric_level = resolve_level(level)
    root = logging.getLogger()
    _remove_installed(root)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setFormatter(formatter)
    _installed.append(console)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        _installed.append(file_handler)

    for handler in _installed:
        handler.setLevel(numeric_level)
        root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


__all__ = ["LOG_DATEFMT", "LOG_FORMAT", "configure_logging", "resolve_level"]
