"""Leveled terminal logging for the watch loop.

Lines emitted while a commit is being processed carry its short sha, so the
interleaved pytest, black, report and issue output of a batch can be read
back per commit::

    [abc1234] pytest failed (1)
    [abc1234] published reports to app-reports/abc1234...-1700000000

The level comes from ``--log-level``, else ``CIWATCH_TRACE=1`` (trace), else
``CIWATCH_LOG_LEVEL``, else ``info``.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from enum import IntEnum

from rich.console import Console
from rich.text import Text


class LogLevel(IntEnum):
    TRACE = 10
    DEBUG = 20
    INFO = 30
    SUCCESS = 35
    WARNING = 40
    ERROR = 50


LOG_LEVEL_NAMES = tuple(level.name.lower() for level in LogLevel)

_ALIASES = {"warn": LogLevel.WARNING}
_STYLES = {
    LogLevel.TRACE: "dim",
    LogLevel.DEBUG: "cyan",
    LogLevel.INFO: "",
    LogLevel.SUCCESS: "green",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "bold red",
}
_COMMIT_STYLE = "magenta"
_DEFAULT_LEVEL = LogLevel.INFO

_configured_level: LogLevel | None = None
_no_color_override: bool | None = None
_commit_prefix: str | None = None


def parse_level(value: str | None) -> LogLevel:
    """Map a level name onto :class:`LogLevel`; unknown names mean ``info``.

    Example:
        >>> parse_level(" Warn ")
        <LogLevel.WARNING: 40>
    """
    name = (value or "").strip().lower()
    if name in _ALIASES:
        return _ALIASES[name]
    if name in LOG_LEVEL_NAMES:
        return LogLevel[name.upper()]
    return _DEFAULT_LEVEL


def configured_level() -> LogLevel:
    global _configured_level
    if _configured_level is None:
        if os.environ.get("CIWATCH_TRACE", "0").strip() == "1":
            _configured_level = LogLevel.TRACE
        else:
            _configured_level = parse_level(os.environ.get("CIWATCH_LOG_LEVEL"))
    return _configured_level


def set_level(value: str | None) -> None:
    global _configured_level
    _configured_level = parse_level(value)


def set_no_color(value: bool) -> None:
    """Force colors off (or restore env-driven behavior with ``False``)."""
    global _no_color_override
    _no_color_override = True if value else None


def is_enabled(level: LogLevel) -> bool:
    return level >= configured_level()


def _no_color() -> bool:
    if _no_color_override is not None:
        return _no_color_override
    return bool(os.environ.get("NO_COLOR") or os.environ.get("CIWATCH_NO_COLOR"))


@contextmanager
def commit_scope(sha: str) -> Iterator[None]:
    """Prefix every line logged inside the block with ``[<short sha>]``."""
    global _commit_prefix
    previous = _commit_prefix
    _commit_prefix = sha[:7]
    try:
        yield
    finally:
        _commit_prefix = previous


def emit(level: LogLevel, message: str) -> None:
    """Print ``message`` if ``level`` is enabled; warnings and errors go to stderr."""
    if not is_enabled(level):
        return
    text = Text()
    if _commit_prefix:
        text.append(f"[{_commit_prefix}] ", style=_COMMIT_STYLE)
    text.append(message, style=_STYLES[level])
    console = Console(
        file=sys.stderr if level >= LogLevel.WARNING else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=_no_color(),
    )
    console.print(text)


def trace(message: str) -> None:
    emit(LogLevel.TRACE, message)


def debug(message: str) -> None:
    emit(LogLevel.DEBUG, message)


def info(message: str) -> None:
    emit(LogLevel.INFO, message)


def success(message: str) -> None:
    emit(LogLevel.SUCCESS, message)


def warning(message: str) -> None:
    emit(LogLevel.WARNING, message)


def error(message: str) -> None:
    emit(LogLevel.ERROR, message)
