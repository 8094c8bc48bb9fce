from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

import ciwatch.cli as cli
import ciwatch.log as ciwatch_log
from ciwatch.services.errors import UnexpectedStateError

ARGS = [
    "git@github.com:octo/app.git",
    "main",
    "git@github.com:octo/app-reports.git",
    "gh-pages",
]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "token")
    monkeypatch.delenv("GITHUB_API_URL", raising=False)
    monkeypatch.setattr("ciwatch.paths.default_config_path", lambda: tmp_path / "config.json")


def test_cli_runs_preflight_then_watch() -> None:
    runner = CliRunner()
    with (
        patch("ciwatch.cli.PreflightService") as preflight,
        patch("ciwatch.cli.watcher.watch") as watch,
    ):
        result = runner.invoke(cli.app, [*ARGS, "--interval", "2", "--first-run", "History"])

    assert result.exit_code == 0, result.output
    preflight.return_value.assert_called_once()
    watch_config = watch.call_args.args[0]
    assert watch_config.code.slug == "octo/app"
    assert watch_config.report.name == "app-reports"
    assert watch_config.settings.poll_interval == 2.0
    assert watch_config.settings.first_run == "history"
    assert watch_config.token == "token"


def test_cli_forwards_check_timeout() -> None:
    with (
        patch("ciwatch.cli.PreflightService"),
        patch("ciwatch.cli.watcher.watch") as watch,
    ):
        result = CliRunner().invoke(cli.app, [*ARGS, "--check-timeout", "600"])

    assert result.exit_code == 0, result.output
    assert watch.call_args.args[0].settings.check_timeout == 600.0

def test_cli_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_PERSONAL_ACCESS_TOKEN")
    runner = CliRunner()
    with patch("ciwatch.cli.watcher.watch") as watch:
        result = runner.invoke(cli.app, ARGS)

    assert result.exit_code == 1
    assert "GITHUB_PERSONAL_ACCESS_TOKEN environment variable is missing" in result.output
    watch.assert_not_called()


def test_cli_requires_all_four_arguments() -> None:
    result = CliRunner().invoke(cli.app, ARGS[:3])

    assert result.exit_code == 2


def test_cli_reports_preflight_failure_with_exit_code_one() -> None:
    runner = CliRunner()
    with (
        patch("ciwatch.cli.PreflightService") as preflight,
        patch("ciwatch.cli.watcher.watch") as watch,
    ):
        preflight.return_value.side_effect = UnexpectedStateError(
            "Branch 'main' does not exist in repository: git@github.com:octo/app.git"
        )
        result = runner.invoke(cli.app, ARGS)

    assert result.exit_code == 1
    assert "Branch 'main' does not exist in repository" in result.output
    watch.assert_not_called()


def test_cli_interrupt_exits_130() -> None:
    runner = CliRunner()
    with (
        patch("ciwatch.cli.PreflightService"),
        patch("ciwatch.cli.watcher.watch", side_effect=KeyboardInterrupt),
    ):
        result = runner.invoke(cli.app, ARGS)

    assert result.exit_code == 130
    assert "interrupted" in result.output


def test_cli_log_level_and_no_color() -> None:
    runner = CliRunner()
    with patch("ciwatch.cli.PreflightService"), patch("ciwatch.cli.watcher.watch"):
        result = runner.invoke(cli.app, [*ARGS, "--log-level", "DEBUG", "--no-color"])

    assert result.exit_code == 0, result.output
    assert ciwatch_log.configured_level() is ciwatch_log.LogLevel.DEBUG
    assert ciwatch_log._no_color() is True


@pytest.mark.parametrize(
    "extra",
    [
        ["--log-level", "verbose"],
        ["--first-run", "everything"],
        ["--interval", "-1"],
        ["--max-cycles", "0"],
        ["--check-timeout", "0"],
    ],
)
def test_cli_rejects_invalid_options(extra: list[str]) -> None:
    with patch("ciwatch.cli.watcher.watch") as watch:
        result = CliRunner().invoke(cli.app, [*ARGS, *extra])

    assert result.exit_code == 2
    watch.assert_not_called()


def test_cli_version() -> None:
    result = CliRunner().invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert result.output.startswith("ciwatch ")
