from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pytest

import ciwatch.git as git
from ciwatch.config import WatchConfig
from ciwatch.models import CreatedIssue, GithubUser, UserSearchResponse, WatchSettings
from ciwatch.records import CheckOutcome, CheckOutcomes, RepoTarget
from ciwatch.services.errors import ExternalCommandFailedError

CODE_URL = "git@github.com:octo/app.git"
REPORT_URL = "git@github.com:octo/app-reports.git"
NOW = 1_700_000_000


def make_config(**settings: object) -> WatchConfig:
    return WatchConfig(
        code=RepoTarget(url=CODE_URL, branch="main", owner="octo", name="app"),
        report=RepoTarget(url=REPORT_URL, branch="gh-pages", owner="octo", name="app-reports"),
        token="token",
        settings=WatchSettings(**settings),
    )


class FakeGit:
    """In-memory stand-in for the git helpers used by the watcher and sink."""

    def __init__(self, history: Sequence[tuple[str, str]]) -> None:
        self.history = list(history)
        self.checked_out: str | None = None
        self.checkouts: list[str] = []
        self.tags: dict[str, str] = {}
        self.pushed_tags: list[dict[str, str]] = []
        self.clones: list[str] = []
        self.added: list[str] = []
        self.report_commits: list[str] = []
        self.report_pushes = 0
        self.fail_report_push = False
        self.fail_tag_push = False
        self.fail_clone_of: str | None = None

    @property
    def shas(self) -> list[str]:
        return [sha for sha, _ in self.history]

    def push_commit(self, sha: str, email: str = "dev@example.com") -> None:
        self.history.append((sha, email))

    def install(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(git, "git_clone", self.clone)
        monkeypatch.setattr(git, "git_switch", lambda repo_dir, branch: None)
        monkeypatch.setattr(git, "git_fetch", self.fetch)
        monkeypatch.setattr(git, "git_rev_parse", self.rev_parse)
        monkeypatch.setattr(git, "git_commits_between", self.commits_between)
        monkeypatch.setattr(git, "git_checkout", self.checkout)
        monkeypatch.setattr(git, "git_author_email", self.author_email)
        monkeypatch.setattr(git, "git_is_ancestor", self.is_ancestor)
        monkeypatch.setattr(git, "git_remote_name", lambda repo_dir: "origin")
        monkeypatch.setattr(git, "git_tag_force", self.tag_force)
        monkeypatch.setattr(git, "git_push_tags_force", self.push_tags_force)
        monkeypatch.setattr(git, "git_add", lambda repo_dir, path: self.added.append(path))
        monkeypatch.setattr(
            git, "git_commit", lambda repo_dir, message: self.report_commits.append(message)
        )
        monkeypatch.setattr(git, "git_push", self.push)

    def clone(self, url: str, dest: Path) -> None:
        if url == self.fail_clone_of:
            raise ExternalCommandFailedError(f"clone of {url} failed")
        self.clones.append(url)
        (dest / ".git").mkdir(parents=True, exist_ok=True)

    def fetch(self, repo_dir: Path, url: str, branch: str) -> str:
        return self.history[-1][0]

    def rev_parse(self, repo_dir: Path, ref: str) -> str | None:
        prefix = "refs/tags/"
        if ref.startswith(prefix):
            return self.tags.get(ref[len(prefix) :])
        return ref if ref in self.shas else None

    def commits_between(self, repo_dir: Path, since: str | None, until: str) -> list[str]:
        shas = self.shas
        start = shas.index(since) + 1 if since else 0
        return shas[start : shas.index(until) + 1]

    def checkout(self, repo_dir: Path, sha: str) -> None:
        self.checked_out = sha
        self.checkouts.append(sha)

    def author_email(self, repo_dir: Path, ref: str = "HEAD") -> str:
        return dict(self.history)[self.checked_out or ""]

    def is_ancestor(self, repo_dir: Path, ancestor: str, descendant: str) -> bool:
        return self.shas.index(ancestor) <= self.shas.index(descendant)

    def tag_force(self, repo_dir: Path, name: str, sha: str) -> None:
        self.tags[name] = sha

    def push_tags_force(self, repo_dir: Path, remote: str) -> None:
        if self.fail_tag_push:
            raise ExternalCommandFailedError("push of tags failed")
        self.pushed_tags.append(dict(self.tags))

    def push(self, repo_dir: Path) -> None:
        if self.fail_report_push:
            raise ExternalCommandFailedError("push failed: rejected")
        self.report_pushes += 1


class FakeChecks:
    """Check runner returning canned statuses for the checked-out commit."""

    def __init__(self, fake_git: FakeGit, statuses: dict[str, tuple[int, int]]) -> None:
        self.fake_git = fake_git
        self.statuses = statuses
        self.calls: list[str] = []
        self.timeouts: list[float | None] = []

    def __call__(
        self,
        checkout: Path,
        artifacts: Path,
        *,
        pytest_command: Sequence[str],
        black_command: Sequence[str],
        timeout_seconds: float | None = None,
    ) -> CheckOutcomes:
        sha = self.fake_git.checked_out or ""
        self.calls.append(sha)
        self.timeouts.append(timeout_seconds)
        test_status, format_status = self.statuses.get(sha, (0, 0))
        test_report = artifacts / "pytest.html"
        test_report.write_text(f"<html>tests for {sha}</html>", encoding="utf-8")
        format_report = None
        if format_status != 0:
            format_report = artifacts / "black.html"
            format_report.write_text(f"<html>diff for {sha}</html>", encoding="utf-8")
        return CheckOutcomes(
            tests=CheckOutcome(status=test_status, artifact=test_report),
            formatting=CheckOutcome(status=format_status, artifact=format_report),
        )


class FakeIssueApi:
    def __init__(self, users: dict[str, list[str]] | None = None) -> None:
        self.users = users or {}
        self.searches: list[str] = []
        self.created: list[tuple[str, dict[str, object]]] = []
        self.fail_create = False
        self.fail_search = False

    def search_users(self, query: str) -> UserSearchResponse:
        self.searches.append(query)
        if self.fail_search:
            raise ExternalCommandFailedError("GitHub API GET /search/users failed (403)")
        logins = self.users.get(query, [])
        return UserSearchResponse(
            total_count=len(logins), items=[GithubUser(login=login) for login in logins]
        )

    def create_issue(self, repo_slug: str, payload: dict[str, object]) -> CreatedIssue:
        if self.fail_create:
            raise ExternalCommandFailedError("GitHub API POST /repos/octo/app/issues failed (500)")
        self.created.append((repo_slug, payload))
        number = len(self.created)
        return CreatedIssue(
            number=number, html_url=f"https://github.com/{repo_slug}/issues/{number}"
        )
