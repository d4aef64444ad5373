"""
Logging utilities for kira-dependencies.

All package loggers live under the ``kira_dependencies`` namespace and
are configured once by :func:`setup_logging`. Records pass through a
:class:`SecretFilter` so that access tokens registered with
:func:`register_secret` never reach the output, even when they appear in
a URL or an exception message.

Typical usage::

    setup_logging(level=level_for_verbosity(2))
    register_secret(config.gitlab_token)
    logger = get_logger("runner")
"""

from __future__ import annotations

import os
import sys
import logging
import threading
from typing import IO, Optional, Set

from kira_dependencies.constants import (
    LOG_DATE_FORMAT,
    LOG_DEFAULT_FORMAT,
    LOG_VERBOSE_FORMAT,
)

ROOT_LOGGER_NAME = "kira_dependencies"

MASK = "***"

_lock = threading.Lock()
_secrets: Set[str] = set()


def register_secret(value: Optional[str]) -> None:
    """Mask ``value`` in every log record from now on."""
    if value:
        with _lock:
            _secrets.add(value)


def clear_secrets() -> None:
    with _lock:
        _secrets.clear()


def mask_secrets(text: str) -> str:
    """Return ``text`` with every registered secret replaced by ``***``."""
    for secret in sorted(_secrets, key=len, reverse=True):
        text = text.replace(secret, MASK)
    return text


class SecretFilter(logging.Filter):
    """Rewrite records so that registered secrets are masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        if _secrets:
            record.msg = mask_secrets(record.getMessage())
            record.args = None
        return True


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str,
        *,
        datefmt: Optional[str] = None,
        use_color: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color and colors_supported()

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname) if self.use_color else None
        if color:
            # Other handlers must still see the plain level name
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return mask_secrets(super().format(record))


def colors_supported(stream: Optional[IO[str]] = None) -> bool:
    """Whether ANSI colours may be written to ``stream`` (stderr by default)."""
    if os.environ.get("NO_COLOR") or os.environ.get("CI"):
        return False
    try:
        return (stream or sys.stderr).isatty()
    except (AttributeError, OSError, ValueError):
        return False


def level_for_verbosity(verbose: int) -> int:
    """Map the number of ``-v`` flags to a logging level."""
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    *,
    level: int = logging.WARNING,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Configure the package logger; safe to call more than once.

    Debug level switches to the verbose format with timestamps and logger
    names.

    Returns:
        The configured ``kira_dependencies`` logger.
    """
    with _lock:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.handlers.clear()
        root_logger.setLevel(level)
        root_logger.propagate = False

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(level)
        handler.addFilter(SecretFilter())
        handler.setFormatter(
            ColoredFormatter(
                LOG_VERBOSE_FORMAT if level <= logging.DEBUG else LOG_DEFAULT_FORMAT,
                datefmt=LOG_DATE_FORMAT,
                use_color=stream is None,
            )
        )
        root_logger.addHandler(handler)
    return root_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger within the ``kira_dependencies`` namespace.

    Args:
        name: Short (``"runner"``) or fully qualified logger name.
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


# Library default: stay silent until the CLI configures output
logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())
