"""Immutable records produced while processing one commit."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

NO_TESTS_COLLECTED = 5


@dataclass(frozen=True)
class RepoTarget:
    """A watched remote: URL, branch, and the GitHub coordinates parsed from it."""

    url: str
    branch: str
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class Commit:
    sha: str
    author_email: str
    position: int = 0

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


@dataclass(frozen=True)
class CheckOutcome:
    """Exit status of one check plus the artifact it produced, if any."""

    status: int
    artifact: Path | None = None

    @property
    def passed(self) -> bool:
        return self.status == 0


@dataclass(frozen=True)
class CheckOutcomes:
    tests: CheckOutcome
    formatting: CheckOutcome

    @property
    def all_passed(self) -> bool:
        return self.tests.passed and self.formatting.passed


@dataclass(frozen=True)
class ReportRecord:
    commit_sha: str
    report_path: str
    test_report_url: str
    format_report_url: str | None = None


@dataclass(frozen=True)
class Notification:
    title: str
    body: str
    labels: tuple[str, ...] = ()
    assignee: str | None = None

    def payload(self) -> dict[str, object]:
        """Return the JSON body for ``POST /repos/{owner}/{repo}/issues``."""
        data: dict[str, object] = {"title": self.title, "body": self.body}
        if self.labels:
            data["labels"] = list(self.labels)
        if self.assignee:
            data["assignees"] = [self.assignee]
        return data
