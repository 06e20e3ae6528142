# ecoroute/infra/logging.py
# -*- coding: utf-8 -*-

"""
Logging setup for the eco-route engine.

Library modules only do

    _log = get_logger(__name__)

and never configure handlers. Entry points (the CLI, a service embedding the
resolver) call `init_logging()` once at startup.

Environment
-----------
- ECOROUTE_LOG_LEVEL : overrides the `level` argument (e.g. DEBUG while
  chasing rate-limit waits or cache misses).
- ECOROUTE_LOG_FILE  : if set and no `log_file` is passed, records are also
  appended to this file.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional, TextIO, Union

# [YYYY-MM-DD HH:MM:SS][LEVEL][logger.name] message
LOG_FORMAT = "[{asctime}][{levelname}][{name}] {message}"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at INFO/DEBUG (connection pool, retries)
_NOISY_LOGGERS = ("urllib3", "requests")

_active_log_file: Optional[Path] = None


def _level_from(value: Union[str, int]) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def get_current_log_path() -> Optional[Path]:
    """
    Path of the file handler installed by the last init_logging(), if any.
    """
    return _active_log_file


def init_logging(
      level: Union[str, int] = "INFO"
    , *
    , log_file: Optional[Path] = None
    , stream: Optional[TextIO] = None
    , force: bool = True
) -> logging.Logger:
    """
    Configure the root logger.

    Parameters
    ----------
    level : str | int, default "INFO"
        Level name or number; ECOROUTE_LOG_LEVEL wins when set.
    log_file : Optional[Path]
        Extra file destination (parent directories are created). Falls back
        to ECOROUTE_LOG_FILE.
    stream : Optional[TextIO]
        Console stream, stdout by default.
    force : bool, default True
        Drop (and close) handlers installed earlier on the root logger.

    Returns
    -------
    logging.Logger
        The root logger.
    """
    global _active_log_file

    effective = _level_from(os.getenv("ECOROUTE_LOG_LEVEL") or level)
    root = logging.getLogger()

    if force:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(effective)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT, style="{")

    console = logging.StreamHandler(stream=stream or sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    _active_log_file = None
    target = log_file or os.getenv("ECOROUTE_LOG_FILE") or None
    if target:
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(path, encoding="utf-8")
        to_file.setFormatter(formatter)
        root.addHandler(to_file)
        _active_log_file = path.resolve()

    # keep HTTP internals quiet unless we are debugging
    noisy_level = effective if effective <= logging.DEBUG else max(effective, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    get_logger(__name__).info(
        "logging ready (level=%s, file=%s)",
        logging.getLevelName(effective), _active_log_file or "-"
    )
    return root


def log_banner(log: logging.Logger, msg: str, *, char: str = "=", width: int = 60) -> None:
    """
    Log `msg` framed by two separator lines.
    """
    rule = char * width
    for line in (rule, msg, rule):
        log.info(line)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "ecoroute")
