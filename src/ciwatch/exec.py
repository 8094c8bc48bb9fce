"""Subprocess helpers for running git, pytest and black."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from . import log

TIMEOUT_RETURNCODE = 124


@dataclass(frozen=True)
class CommandRequest:
    """Typed command invocation request."""

    argv: tuple[str, ...]
    cwd: Path | None = None
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class CommandResult:
    """Typed command execution result.

    A command killed by its timeout reports ``TIMEOUT_RETURNCODE`` (the
    ``timeout(1)`` convention) with whatever output it produced so far.
    """

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


@dataclass(frozen=True)
class CommandExecutionError(RuntimeError):
    """Raised when a required command is missing or exits non-zero."""

    request: CommandRequest
    detail: str
    result: CommandResult | None = None

    def __str__(self) -> str:
        return self.detail


def _text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value if isinstance(value, str) else ""


def execute(request: CommandRequest) -> CommandResult | None:
    """Run ``request`` and capture its output; ``None`` if the executable is missing."""
    log.trace(f"$ {' '.join(request.argv)}")
    try:
        completed = subprocess.run(
            list(request.argv),
            cwd=request.cwd,
            check=False,
            capture_output=True,
            text=True,
            timeout=request.timeout_seconds,
        )
    except FileNotFoundError:
        return None
    except subprocess.TimeoutExpired as exc:
        log.trace(f"timed out after {request.timeout_seconds}s: {request.argv[0]}")
        return CommandResult(
            argv=request.argv,
            returncode=TIMEOUT_RETURNCODE,
            stdout=_text(exc.stdout),
            stderr=_text(exc.stderr),
            timed_out=True,
        )
    return CommandResult(
        argv=request.argv,
        returncode=completed.returncode,
        stdout=_text(completed.stdout),
        stderr=_text(completed.stderr),
    )


def _missing_command_detail(request: CommandRequest) -> str:
    if not request.argv:
        return "missing required command"
    return f"missing required command: {request.argv[0]}"


def _command_failure_detail(request: CommandRequest, result: CommandResult) -> str:
    output = (result.stderr or result.stdout or "").strip()
    command_text = " ".join(request.argv)
    if output:
        return f"command failed: {command_text}\n{output}"
    return f"command failed: {command_text}"


def run_status(
    cmd: Sequence[str],
    *,
    cwd: Path | None = None,
    timeout_seconds: float | None = None,
) -> CommandResult:
    """Run a command whose exit status is an outcome rather than an error.

    Raises:
        CommandExecutionError: The executable could not be found.
    """
    request = CommandRequest(argv=tuple(cmd), cwd=cwd, timeout_seconds=timeout_seconds)
    result = execute(request)
    if result is None:
        raise CommandExecutionError(request=request, detail=_missing_command_detail(request))
    return result


def run_checked(cmd: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
    """Run a command and raise when it is missing or does not succeed.

    Example:
        >>> run_checked(["true"]).returncode
        0
    """
    request = CommandRequest(argv=tuple(cmd), cwd=cwd)
    result = execute(request)
    if result is None:
        raise CommandExecutionError(request=request, detail=_missing_command_detail(request))
    if not result.ok:
        raise CommandExecutionError(
            request=request,
            result=result,
            detail=_command_failure_detail(request, result),
        )
    return result


def command_exists(name: str) -> bool:
    """Return whether an executable is available on ``PATH``."""
    return shutil.which(name) is not None
