"""Thread-safe, timestamped event logging to a file or standard error."""

from __future__ import annotations

import sys
import threading
import time
from enum import IntEnum
from typing import IO, Any


class LogLevel(IntEnum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3


def _level_name(level: int) -> str:
    try:
        return LogLevel(level).name
    except ValueError:
        return "UNKNOWN"


class EventLog:
    """Writes "[timestamp] [LEVEL] message" lines to an appended file, or to stderr."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._file: IO[str] | None = None

    def __enter__(self) -> EventLog:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def open(self, filename: str) -> None:
        """Send further lines to filename, appending; closes any file already open."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
            self._file = open(filename, "a", encoding="utf-8")

    def close(self) -> None:
        """Close the log file; further lines go to stderr."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def log(self, level: int, fmt: str, *args: Any) -> None:
        """Write one line; fmt is %-formatted with args when args are given."""
        text = fmt % args if args else fmt
        with self._lock:
            stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
            output = self._file if self._file is not None else sys.stderr
            output.write(f"[{stamp}] [{_level_name(level)}] {text}\n")
            output.flush()

    def debug(self, fmt: str, *args: Any) -> None:
        self.log(LogLevel.DEBUG, fmt, *args)

    def info(self, fmt: str, *args: Any) -> None:
        self.log(LogLevel.INFO, fmt, *args)

    def warn(self, fmt: str, *args: Any) -> None:
        self.log(LogLevel.WARN, fmt, *args)

    def error(self, fmt: str, *args: Any) -> None:
        self.log(LogLevel.ERROR, fmt, *args)


_default = EventLog()


def log_init(filename: str) -> None:
    """Direct the shared log to filename."""
    _default.open(filename)


def log_cleanup() -> None:
    """Close the shared log's file."""
    _default.close()


def log_message(level: int, fmt: str, *args: Any) -> None:
    """Write one line to the shared log."""
    _default.log(level, fmt, *args)