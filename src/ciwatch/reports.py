"""Publish per-commit check reports to the report repository."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from . import git, log
from .checks import FORMAT_REPORT_FILENAME, TEST_REPORT_FILENAME
from .records import CheckOutcomes, RepoTarget, ReportRecord
from .services.errors import ExternalCommandFailedError, ReportSinkUnavailableError


def report_path_for(sha: str, timestamp: int) -> str:
    """Return the directory name a commit's reports are stored under.

    Example:
        >>> report_path_for("abc1234", 1700000000)
        'abc1234-1700000000'
    """
    return f"{sha}-{timestamp}"


def report_url(owner: str, report_repo: str, report_path: str, filename: str) -> str:
    """Return the GitHub Pages URL of a published report file.

    Example:
        >>> report_url("octo", "reports", "abc-1", "pytest.html")
        'https://octo.github.io/reports/abc-1/pytest.html'
    """
    return f"https://{owner}.github.io/{report_repo}/{report_path}/{filename}"


@dataclass
class ReportSink:
    """Single-writer working copy of the report repository.

    Attributes:
        target: Report repository URL and branch.
        pages_owner: Account whose GitHub Pages domain serves the reports.
        worktree: Local clone, reused across the run once populated.
    """

    target: RepoTarget
    pages_owner: str
    worktree: Path

    def ensure_checkout(self) -> None:
        """Clone the report repository unless the working copy is populated."""
        if self.worktree.exists() and any(self.worktree.iterdir()):
            log.trace(f"{self.worktree} is not empty; skipping clone")
        else:
            try:
                git.git_clone(self.target.url, self.worktree)
            except ExternalCommandFailedError as exc:
                raise ReportSinkUnavailableError(
                    str(exc),
                    recovery_hint="check access to the report repository",
                ) from exc
        git.git_switch(self.worktree, self.target.branch)

    def publish(self, sha: str, outcomes: CheckOutcomes, *, timestamp: int) -> ReportRecord:
        """Copy the commit's artifacts into the sink, then commit and push them.

        The test report is always published; the format report only when the
        format check failed.
        """
        self.ensure_checkout()
        report_path = report_path_for(sha, timestamp)
        destination = self.worktree / report_path
        destination.mkdir(parents=True, exist_ok=True)

        test_artifact = outcomes.tests.artifact
        if test_artifact is None or not test_artifact.exists():
            raise ExternalCommandFailedError(f"test report for {sha} was not produced")
        shutil.copyfile(test_artifact, destination / TEST_REPORT_FILENAME)

        format_url = None
        format_artifact = outcomes.formatting.artifact
        if not outcomes.formatting.passed and format_artifact is not None:
            shutil.copyfile(format_artifact, destination / FORMAT_REPORT_FILENAME)
            format_url = report_url(
                self.pages_owner, self.target.name, report_path, FORMAT_REPORT_FILENAME
            )

        git.git_add(self.worktree, report_path)
        git.git_commit(self.worktree, f"{sha} report.")
        git.git_push(self.worktree)
        log.info(f"published reports to {self.target.name}/{report_path}")
        return ReportRecord(
            commit_sha=sha,
            report_path=report_path,
            test_report_url=report_url(
                self.pages_owner, self.target.name, report_path, TEST_REPORT_FILENAME
            ),
            format_report_url=format_url,
        )
