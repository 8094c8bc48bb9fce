"""Decide whether a processed commit needs an issue, and file it.

The decision is a pure function of the two check statuses:

=============  =============  ======  =======================
pytest status  black status   issue   labels
=============  =============  ======  =======================
0              0              no      none
0              non-zero       yes     ci-black
5              any            yes     none (informational)
other          0              yes     ci-pytest
other          non-zero       yes     ci-pytest, ci-black
=============  =============  ======  =======================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from . import log
from .models import CreatedIssue, LabelSection, UserSearchResponse
from .records import NO_TESTS_COLLECTED, Commit, Notification, RepoTarget, ReportRecord
from .services.base import BaseService
from .services.errors import ServiceFailure

DISCLAIMER = "Automatically generated message"
NO_TESTS_SENTENCE = (
    "Unit tests do not exist in the repository or do not work correctly"
    " and formatting test {format_result}."
)


@dataclass(frozen=True)
class Decision:
    """Which notification, if any, a pair of check statuses calls for."""

    notify: bool
    sentence: str | None = None
    labels: tuple[str, ...] = ()


def decide(
    test_status: int, format_status: int, *, labels: LabelSection | None = None
) -> Decision:
    """Map ``(pytest status, black status)`` onto the notification table.

    Example:
        >>> decide(1, 0).labels
        ('ci-pytest',)
        >>> decide(0, 0).notify
        False
    """
    names = labels or LabelSection()
    format_failed = format_status != 0
    if test_status == 0:
        if not format_failed:
            return Decision(notify=False)
        return Decision(notify=True, sentence="failed formatting test.", labels=(names.formatting,))
    if test_status == NO_TESTS_COLLECTED:
        format_result = "failed" if format_failed else "passed"
        return Decision(notify=True, sentence=NO_TESTS_SENTENCE.format(format_result=format_result))
    if format_failed:
        return Decision(
            notify=True,
            sentence="failed unit and formatting tests.",
            labels=(names.tests, names.formatting),
        )
    return Decision(notify=True, sentence="failed unit tests.", labels=(names.tests,))


def build_notification(
    sha: str,
    decision: Decision,
    report: ReportRecord,
    *,
    assignee: str | None = None,
) -> Notification:
    """Build the issue title, body and labels for a failing commit."""
    if not decision.notify or decision.sentence is None:
        raise ValueError(f"commit {sha} passed both checks; nothing to notify")
    lines = [
        DISCLAIMER,
        f"{sha} {decision.sentence}",
        f"Pytest report: {report.test_report_url}",
    ]
    if report.format_report_url:
        lines.append(f"Black report: {report.format_report_url}")
    return Notification(
        title=f"{sha[:7]} {decision.sentence}",
        body="".join(f"{line}\n" for line in lines),
        labels=decision.labels,
        assignee=assignee,
    )


class IssueApi(Protocol):
    """The slice of the GitHub API the dispatcher depends on."""

    def search_users(self, query: str) -> UserSearchResponse: ...

    def create_issue(self, repo_slug: str, payload: dict[str, object]) -> CreatedIssue: ...


def resolve_assignee(api: IssueApi, email: str) -> str | None:
    """Return the login of the only account matching ``email``.

    Zero or several matches are ambiguous and leave the issue unassigned, as
    does a failed search.
    """
    if not email:
        return None
    try:
        response = api.search_users(email)
    except ServiceFailure as exc:
        log.warning(f"user search for {email} failed; issue stays unassigned: {exc}")
        return None
    if response.total_count != 1 or not response.items:
        log.debug(f"{response.total_count} accounts match {email}; issue stays unassigned")
        return None
    return response.items[0].login


@dataclass(frozen=True)
class DispatchRequest:
    commit: Commit
    test_status: int
    format_status: int
    report: ReportRecord


class IssueDispatchService(BaseService[DispatchRequest, CreatedIssue | None]):
    """File an issue for a failing commit.

    API failures are logged and swallowed into ``None`` so that the next
    commit still gets its own attempt.
    """

    def __init__(self, api: IssueApi, code_repo: RepoTarget, labels: LabelSection) -> None:
        self._api = api
        self._code_repo = code_repo
        self._labels = labels

    def _run(self, request: DispatchRequest) -> CreatedIssue | None:
        decision = decide(request.test_status, request.format_status, labels=self._labels)
        if not decision.notify:
            return None
        notification = build_notification(
            request.commit.sha,
            decision,
            request.report,
            assignee=resolve_assignee(self._api, request.commit.author_email),
        )
        issue = self._api.create_issue(self._code_repo.slug, notification.payload())
        log.info(issue.html_url or f"created issue for {request.commit.short_sha}")
        return issue

    def _handle_failure(self, error: ServiceFailure) -> CreatedIssue | None:
        log.error(f"failed to file issue: {error}")
        return None
