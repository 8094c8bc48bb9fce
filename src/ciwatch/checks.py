"""Run the test and formatting checks against a checked-out commit."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import DiffLexer, TextLexer

from . import exec as exec_util
from . import log
from .records import NO_TESTS_COLLECTED, CheckOutcome, CheckOutcomes

TEST_REPORT_FILENAME = "pytest.html"
FORMAT_REPORT_FILENAME = "black.html"
DIFF_HTML_STYLE = "solarized-light"


def pytest_argv(command: Sequence[str], report_path: Path) -> list[str]:
    """Append the self-contained HTML report flags to the pytest command.

    Example:
        >>> pytest_argv(["pytest"], Path("/tmp/r.html"))
        ['pytest', '--html=/tmp/r.html', '--self-contained-html']
    """
    return [*command, f"--html={report_path}", "--self-contained-html"]


def render_diff_html(diff_text: str, *, title: str = "black --diff") -> str:
    """Render a unified diff as a standalone HTML page."""
    formatter = HtmlFormatter(full=True, style=DIFF_HTML_STYLE, title=title)
    return highlight(diff_text, DiffLexer(), formatter)


def render_text_html(text: str, *, title: str) -> str:
    formatter = HtmlFormatter(full=True, style=DIFF_HTML_STYLE, title=title)
    return highlight(text, TextLexer(), formatter)


def run_tests(
    checkout: Path,
    artifacts: Path,
    command: Sequence[str],
    *,
    timeout_seconds: float | None = None,
) -> CheckOutcome:
    """Run the test suite; the HTML report is always the outcome's artifact."""
    report_path = artifacts / TEST_REPORT_FILENAME
    result = exec_util.run_status(
        pytest_argv(command, report_path), cwd=checkout, timeout_seconds=timeout_seconds
    )
    for output in (result.stdout, result.stderr):
        if output.strip():
            log.debug(output.rstrip())
    if result.timed_out:
        log.warning(f"pytest timed out after {timeout_seconds} seconds")
    elif result.returncode == 0:
        log.success(f"pytest succeeded ({result.returncode})")
    elif result.returncode == NO_TESTS_COLLECTED:
        log.warning(f"pytest collected no tests ({result.returncode})")
    else:
        log.warning(f"pytest failed ({result.returncode})")
    if not report_path.exists():
        # Collection errors and timeouts can end the run before pytest-html writes anything.
        output = result.stdout or result.stderr
        if result.timed_out:
            output = f"{output}\n\npytest timed out after {timeout_seconds} seconds\n"
        report_path.write_text(render_text_html(output, title="pytest output"), encoding="utf-8")
    return CheckOutcome(status=result.returncode, artifact=report_path)


def run_format_check(
    checkout: Path,
    artifacts: Path,
    command: Sequence[str],
    *,
    timeout_seconds: float | None = None,
) -> CheckOutcome:
    """Run the formatter in check mode and render its diff on failure."""
    result = exec_util.run_status(list(command), cwd=checkout, timeout_seconds=timeout_seconds)
    if result.ok:
        log.success("black succeeded (0)")
        return CheckOutcome(status=0)
    if result.timed_out:
        log.warning(f"black timed out after {timeout_seconds} seconds")
    else:
        log.warning(f"black failed ({result.returncode})")
    report_path = artifacts / FORMAT_REPORT_FILENAME
    report_path.write_text(render_diff_html(result.stdout), encoding="utf-8")
    return CheckOutcome(status=result.returncode, artifact=report_path)


def run_checks(
    checkout: Path,
    artifacts: Path,
    *,
    pytest_command: Sequence[str],
    black_command: Sequence[str],
    timeout_seconds: float | None = None,
) -> CheckOutcomes:
    """Run both checks; neither short-circuits the other.

    ``timeout_seconds`` bounds each check separately; a check that hits it
    counts as failed.
    """
    tests = run_tests(checkout, artifacts, pytest_command, timeout_seconds=timeout_seconds)
    formatting = run_format_check(
        checkout, artifacts, black_command, timeout_seconds=timeout_seconds
    )
    log.info(f"pytest={tests.status} black={formatting.status}")
    return CheckOutcomes(tests=tests, formatting=formatting)
