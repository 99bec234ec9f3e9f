"""Levelled, structured logging that records the calling source location."""

import copy
import datetime
import enum
import json
import os
import re
import sys
import threading
from typing import Any, Mapping, Optional, TextIO


class Level(enum.Enum):
    """Logging levels, from the most to the least severe."""

    PANIC = "panic"
    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"

    @property
    def severity(self) -> int:
        """Rank of the level; lower numbers are more severe."""
        return list(Level).index(self)

    @classmethod
    def parse(cls, text: "str | Level") -> "Level":
        """Turn a level name (case-insensitive, ``warn`` accepted) into a Level."""
        if isinstance(text, Level):
            return text
        key = str(text).lower()
        if key == "warn":
            key = "warning"
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f'not a valid log level: "{text}"') from None


_PLAIN_VALUE = re.compile(r"^[A-Za-z0-9\-._/@^+]+$")


def _quote(value: Any) -> str:
    text = value if isinstance(value, str) else str(value)
    if _PLAIN_VALUE.match(text):
        return text
    return json.dumps(text)


class _Core:
    """State shared by a logger and every logger derived from it."""

    def __init__(self, level: Level) -> None:
        self.level = level
        self.stream: Optional[TextIO] = None
        self.lock = threading.Lock()


class Logger:
    """A logger that writes ``key=value`` lines carrying fields and a source location."""

    def __init__(self, fields: Optional[Mapping[str, Any]] = None, level: "str | Level" = Level.INFO) -> None:
        self._fields = dict(fields or {})
        self._core = _Core(Level.parse(level))

    @property
    def stream(self) -> TextIO:
        return self._core.stream or sys.stderr

    @stream.setter
    def stream(self, value: Optional[TextIO]) -> None:
        self._core.stream = value

    @property
    def level(self) -> Level:
        return self._core.level

    @property
    def fields(self) -> dict:
        return dict(self._fields)

    def _emit(self, level: Level, msg: Any, args: tuple) -> str:
        text = str(msg) % args if args else str(msg)
        if level.severity > self._core.level.severity:
            return text
        try:
            frame = sys._getframe(2)
            source = f"{os.path.basename(frame.f_code.co_filename)}:{frame.f_lineno}"
        except ValueError:
            source = "<???>:1"
        fields = {**self._fields, "src": source}
        timestamp = datetime.datetime.now(datetime.timezone.utc).astimezone().isoformat(timespec="seconds")
        parts = [f"time={_quote(timestamp)}", f"level={level.value}", f"msg={_quote(text)}"]
        parts.extend(f"{key}={_quote(fields[key])}" for key in sorted(fields))
        with self._core.lock:
            self.stream.write(" ".join(parts) + "\n")
            self.stream.flush()
        return text

    def debug(self, msg: Any, *args: Any) -> None:
        self._emit(Level.DEBUG, msg, args)

    def info(self, msg: Any, *args: Any) -> None:
        self._emit(Level.INFO, msg, args)

    def warning(self, msg: Any, *args: Any) -> None:
        self._emit(Level.WARNING, msg, args)

    def error(self, msg: Any, *args: Any) -> None:
        self._emit(Level.ERROR, msg, args)

    def fatal(self, msg: Any, *args: Any) -> None:
        """Log the message and exit with status 1."""
        self._emit(Level.FATAL, msg, args)
        raise SystemExit(1)

    def panic(self, msg: Any, *args: Any) -> None:
        """Log the message and raise it as a RuntimeError."""
        text = self._emit(Level.PANIC, msg, args)
        raise RuntimeError(text)

    def with_field(self, key: str, value: Any) -> "Logger":
        """Return a logger that adds ``key=value`` to every entry and shares this one's level."""
        child = copy.copy(self)
        child._fields = {**self._fields, key: value}
        return child

    def set_level(self, level: "str | Level") -> None:
        """Change the level; raises ValueError for an unknown level name."""
        self._core.level = Level.parse(level)


class DummyLogger:
    """A logger that discards every entry, only counting them; mostly useful in tests."""

    def __init__(self, fields: Optional[Mapping[str, Any]] = None) -> None:
        self.fields = dict(fields or {})
        self.level: "str | Level | None" = None
        self.discarded = 0

    def _discard(self) -> None:
        self.discarded += 1

    def debug(self, msg: Any, *args: Any) -> None:
        self._discard()

    def info(self, msg: Any, *args: Any) -> None:
        self._discard()

    def warning(self, msg: Any, *args: Any) -> None:
        self._discard()

    def error(self, msg: Any, *args: Any) -> None:
        self._discard()

    def fatal(self, msg: Any, *args: Any) -> None:
        """Discard the entry; unlike Logger, never exits."""
        self._discard()

    def panic(self, msg: Any, *args: Any) -> None:
        """Discard the entry; unlike Logger, never raises."""
        self._discard()

    def with_field(self, key: str, value: Any) -> "DummyLogger":
        """Return a dummy logger carrying the extra field."""
        return DummyLogger({**self.fields, key: value})

    def set_level(self, level: "str | Level") -> None:
        """Remember the level; any value is accepted."""
        self.level = level


DUMMY = DummyLogger()

_BASE = Logger()


def base() -> Logger:
    """Return the process-wide base logger."""
    return _BASE