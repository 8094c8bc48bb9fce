"""Command-line entry point for ciwatch."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from . import __version__, config, watcher
from . import log as ciwatch_log
from .io import die, say
from .log import LOG_LEVEL_NAMES
from .models import FIRST_RUN_VALUES
from .services.errors import ServiceFailure
from .services.preflight import PreflightRequest, PreflightService

app = typer.Typer(
    add_completion=False,
    help=(
        "Watch a branch, run pytest and black on every new commit, publish the"
        " reports to a GitHub Pages repository and open issues for failures."
    ),
)


def _version_callback(value: bool) -> None:
    if value:
        say(f"ciwatch {__version__}")
        raise typer.Exit()


def _validate_log_level(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in LOG_LEVEL_NAMES:
        raise typer.BadParameter(f"expected one of: {', '.join(LOG_LEVEL_NAMES)}")
    return normalized


def _validate_first_run(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in FIRST_RUN_VALUES:
        raise typer.BadParameter(f"expected one of: {', '.join(FIRST_RUN_VALUES)}")
    return normalized


@app.command()
def main(
    code_repo_url: str = typer.Argument(..., help="Code repository to watch."),
    code_branch: str = typer.Argument(..., help="Branch of the code repository."),
    report_repo_url: str = typer.Argument(..., help="Repository that stores reports."),
    report_branch: str = typer.Argument(..., help="Branch the reports are pushed to."),
    interval: Optional[float] = typer.Option(
        None, "--interval", min=0, help="Seconds between polls (default 15)."
    ),
    first_run: Optional[str] = typer.Option(
        None,
        "--first-run",
        callback=_validate_first_run,
        help="baseline: start from the current tip; history: check every commit.",
    ),
    max_cycles: Optional[int] = typer.Option(
        None, "--max-cycles", min=1, help="Stop after this many poll cycles."
    ),
    check_timeout: Optional[float] = typer.Option(
        None, "--check-timeout", min=1, help="Seconds before a hung check counts as failed."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Settings file (JSON)."
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        callback=_validate_log_level,
        help=f"One of: {', '.join(LOG_LEVEL_NAMES)}.",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    ),
) -> None:
    """Run the watcher until interrupted."""
    if log_level is not None:
        ciwatch_log.set_level(log_level)
    if no_color:
        ciwatch_log.set_no_color(True)
    try:
        settings = config.load_settings(
            config_path,
            {
                "poll_interval": interval,
                "first_run": first_run,
                "max_cycles": max_cycles,
                "check_timeout": check_timeout,
            },
        )
        watch_config = config.build_watch_config(
            code_repo_url, code_branch, report_repo_url, report_branch, settings
        )
        PreflightService()(PreflightRequest(config=watch_config))
        watcher.watch(watch_config)
    except ServiceFailure as exc:
        die(str(exc), hint=exc.recovery_hint)
    except KeyboardInterrupt:
        die("interrupted", code=130)
