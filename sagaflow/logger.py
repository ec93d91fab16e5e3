"""Loggers accepted by sagas and step groups."""

from __future__ import annotations

import sys
import threading
from datetime import datetime, timezone
from enum import IntFlag
from typing import Protocol, TextIO


class Logger(Protocol):
    """Anything with a printf-style method can serve as a logger."""

    def printf(self, fmt: str, *args: object) -> None:
        """Write a message formatted with %-style arguments."""


class LogFlag(IntFlag):
    """Header fields that a StdLogger writes before each message."""

    DATE = 1
    TIME = 2
    MICROSECONDS = 4
    UTC = 32
    MSG_PREFIX = 64
    STD = DATE | TIME


class StdLogger:
    """Write timestamped lines to a stream, standard output by default."""

    def __init__(
        self,
        prefix: str = "",
        stream: TextIO | None = None,
        flags: int = LogFlag.STD,
    ) -> None:
        self.prefix = prefix
        self._stream = stream
        self._flags = LogFlag(flags)
        self._lock = threading.Lock()

    def _header(self) -> str:
        flags = self._flags
        if not flags & (LogFlag.DATE | LogFlag.TIME | LogFlag.MICROSECONDS):
            return ""
        now = datetime.now(timezone.utc) if flags & LogFlag.UTC else datetime.now()
        parts = []
        if flags & LogFlag.DATE:
            parts.append(now.strftime("%Y/%m/%d "))
        if flags & (LogFlag.TIME | LogFlag.MICROSECONDS):
            stamp = "%H:%M:%S.%f " if flags & LogFlag.MICROSECONDS else "%H:%M:%S "
            parts.append(now.strftime(stamp))
        return "".join(parts)

    def printf(self, fmt: str, *args: object) -> None:
        """Format the message and write it as one line."""
        message = fmt % args if args else fmt
        header = self._header()
        if self._flags & LogFlag.MSG_PREFIX:
            line = f"{header}{self.prefix}{message}"
        else:
            line = f"{self.prefix}{header}{message}"
        if not line.endswith("\n"):
            line += "\n"
        stream = self._stream if self._stream is not None else sys.stdout
        with self._lock:
            stream.write(line)

    def with_output(self, stream: TextIO) -> StdLogger:
        """Send further output to the given stream and return this logger."""
        self._stream = stream
        return self

    def with_flags(self, flags: int) -> StdLogger:
        """Replace the header flags and return this logger."""
        self._flags = LogFlag(flags)
        return self


class NoOpLogger:
    """A logger that discards everything."""

    def printf(self, fmt: str, *args: object) -> None:
        """Discard the message."""