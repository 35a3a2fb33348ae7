"""Shared logger for trailer runs."""

from __future__ import annotations

import sys
import threading
from typing import TextIO


_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}
_ALIASES = {"WARNING": "WARN", "CRITICAL": "ERROR"}


def _level_value(level: str) -> int:
    name = str(level or "").strip().upper()
    name = _ALIASES.get(name, name)
    return _LEVELS.get(name, _LEVELS["INFO"])


class Logger:
    """Level-filtered logger writing plain lines to a stream.

    Writes are serialized so lines from a run and from a concurrent
    stats/reset call never interleave.
    """

    def __init__(self, level: str = "INFO", stream: TextIO | None = None) -> None:
        self._level = _level_value(level)
        self._stream = stream
        self._lock = threading.Lock()

    def set_stream(self, stream: TextIO | None) -> None:
        self._stream = stream

    def set_level(self, level: str) -> None:
        self._level = _level_value(level)

    def is_enabled(self, level: str) -> bool:
        return self._level <= _level_value(level)

    def _write(self, message: str) -> None:
        with self._lock:
            stream = self._stream or sys.stdout
            print(message, file=stream, flush=True)

    def debug(self, message: str) -> None:
        if self._level <= _LEVELS["DEBUG"]:
            self._write(message)

    def info(self, message: str) -> None:
        if self._level <= _LEVELS["INFO"]:
            self._write(message)

    def warn(self, message: str) -> None:
        if self._level <= _LEVELS["WARN"]:
            self._write(f"WARN: {message}")

    warning = warn

    def error(self, message: str) -> None:
        if self._level <= _LEVELS["ERROR"]:
            self._write(f"ERROR: {message}")


_LOGGER = Logger()


def get_logger() -> Logger:
    """Return the shared logger instance."""
    return _LOGGER
