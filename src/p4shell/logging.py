"""Logging for p4shell.

Everything logs under the ``p4shell`` logger. Output goes to a file (config
``logging.file`` or ``P4SHELL_LOG``) and to stderr when it is a terminal.

Verbosity (``-v`` count or ``logging.verbose``):
    0 = error
    1 = warning (default)
    2 = info, one line per p4 command run
    3 = verbose, login/trust recovery and cache hits
    4 = trace, every p4 argv as spawned
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from p4shell.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("p4shell")

_installed: list[logging.Handler] = []

_LEVEL_NAMES = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_VERBOSITY = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

# p4 global options whose value is a secret
_SECRET_OPTIONS = frozenset({"-P"})


def redact_argv(argv: Sequence[str]) -> list[str]:
    """Copy of ``argv`` with the value of ``-P`` masked."""
    result = list(argv)
    for i, arg in enumerate(result[:-1]):
        if arg in _SECRET_OPTIONS:
            result[i + 1] = "****"
    return result


class _RedactFilter(logging.Filter):
    """Masks passwords in argv lists passed as log arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, tuple) and record.args:
            record.args = tuple(
                redact_argv(arg) if _is_argv(arg) else arg for arg in record.args
            )
        return True


def _is_argv(value: object) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


class _Formatter(logging.Formatter):
    """``HH:MM:SS level: message`` with lowercase level names."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Log level from config; ``verbose`` wins over ``level``."""
    if config is None:
        return logging.WARNING
    if config.verbose is not None:
        return _VERBOSITY[max(0, min(config.verbose, len(_VERBOSITY) - 1))]
    if config.level:
        return _LEVEL_NAMES.get(config.level.upper(), logging.WARNING)
    return logging.WARNING


def _handlers(config: LoggingConfig | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    log_path = (config.file if config else None) or os.environ.get("P4SHELL_LOG")
    if log_path:
        try:
            handlers.append(
                logging.FileHandler(os.path.expanduser(log_path), mode="a", encoding="utf-8")
            )
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[p4shell] Failed to open log file: {e}", file=sys.stderr)
    if sys.stderr.isatty() and not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))
    return handlers


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install handlers once; later calls do nothing until reset_logging()."""
    if _installed:
        return

    level = resolve_level(config)
    logger.setLevel(level)
    formatter = _Formatter()
    redact = _RedactFilter()
    for handler in _handlers(config) or [logging.NullHandler()]:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(redact)
        logger.addHandler(handler)
        _installed.append(handler)


def reset_logging() -> None:
    """Remove the handlers setup_logging() installed (tests)."""
    while _installed:
        handler = _installed.pop()
        logger.removeHandler(handler)
        handler.close()


def get_logger(name: str | None = None) -> logging.Logger:
    """The ``p4shell`` logger, or its child ``p4shell.<name>``."""
    return logger.getChild(name) if name else logger
