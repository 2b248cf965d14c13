"""Logger tree for claudesidebar.

Everything logs under the ``claudesidebar`` logger. Two levels sit beside
the standard ones:

    VERBOSE (15)  lifecycle detail: sessions spawned, watcher decisions
    TRACE (5)     per-event detail: PTY chunks, watcher polls

``-v`` on the command line counts up from errors only (0) to trace (4).
Output goes to the configured file (or ``CS_LOG``); with neither, it goes
to stderr when stderr is a terminal and nowhere otherwise.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from claudesidebar.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

ROOT_NAME = "claudesidebar"
LOG_FILE_ENV = "CS_LOG"

logger = logging.getLogger(ROOT_NAME)

_NAMED_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "verbose": VERBOSE,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# Index is the -v count
_VERBOSITY = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

_handlers: list[logging.Handler] = []


class _LowercaseLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Pick the effective log level; ``verbose`` wins over ``level``."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY[max(0, min(config.verbose, len(_VERBOSITY) - 1))]
    if config.level:
        return _NAMED_LEVELS.get(config.level.lower(), logging.INFO)
    return logging.INFO


def _open_handlers(log_path: str | None) -> list[logging.Handler]:
    if log_path:
        try:
            return [logging.FileHandler(os.path.expanduser(log_path), encoding="utf-8")]
        except OSError as e:
            print(f"[claudesidebar] cannot open log file {log_path}: {e}", file=sys.stderr)
            return [logging.StreamHandler(sys.stderr)]
    if sys.stderr.isatty():
        return [logging.StreamHandler(sys.stderr)]
    return []


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach handlers to the claudesidebar logger.

    Only the first call has an effect until ``reset_logging`` runs.
    """
    if _handlers:
        return

    level = resolve_level(config)
    logger.setLevel(level)

    log_path = config.file if config and config.file else os.environ.get(LOG_FILE_ENV)
    formatter = _LowercaseLevelFormatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
    )
    for handler in _open_handlers(log_path) or [logging.NullHandler()]:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        _handlers.append(handler)


def reset_logging() -> None:
    """Detach and close the handlers ``setup_logging`` added."""
    while _handlers:
        handler = _handlers.pop()
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the root claudesidebar logger, or its child ``name``."""
    if name:
        return logger.getChild(name)
    return logger


def trace(log: logging.Logger, msg: str, *args: Any) -> None:
    if log.isEnabledFor(TRACE):
        log.log(TRACE, msg, *args)


def verbose(log: logging.Logger, msg: str, *args: Any) -> None:
    if log.isEnabledFor(VERBOSE):
        log.log(VERBOSE, msg, *args)
