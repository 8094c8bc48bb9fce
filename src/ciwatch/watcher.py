"""Poll the code branch and process each new commit in order.

One thread of control owns the code checkout, the report checkout and the
artifact directory for the whole run. Commits are handled strictly one after
another, oldest first; the branch pointer moves to the fetched tip before the
batch is processed, and the success marker only ever moves forward.
"""

from __future__ import annotations

import shutil
import signal
import tempfile
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Protocol

from . import checks, git, log, paths
from .config import WatchConfig
from .github import GithubClient
from .models import CreatedIssue
from .notifications import DispatchRequest, IssueApi, IssueDispatchService
from .records import CheckOutcomes, Commit, ReportRecord
from .reports import ReportSink
from .services.errors import ReportSinkUnavailableError, ServiceFailure


class WatchInterrupted(KeyboardInterrupt):
    """Raised from the SIGTERM handler so scoped cleanup runs."""


class CheckRunner(Protocol):
    def __call__(
        self,
        checkout: Path,
        artifacts: Path,
        *,
        pytest_command: Sequence[str],
        black_command: Sequence[str],
        timeout_seconds: float | None = None,
    ) -> CheckOutcomes: ...


@dataclass(frozen=True)
class WatchState:
    """Explicit loop state; the remotes remain the durable checkpoint.

    Attributes:
        last_seen: Branch pointer, the most recently fetched tip.
        success_marker: Commit the ``-ci-success`` tag points at, if known.
        cycles: Completed iterations.
    """

    last_seen: str | None = None
    success_marker: str | None = None
    cycles: int = 0


@dataclass(frozen=True)
class CommitResult:
    commit: Commit
    outcomes: CheckOutcomes
    report: ReportRecord
    issue: CreatedIssue | None = None
    marker_advanced: bool = False


@dataclass(frozen=True)
class WatchWorkspace:
    root: Path
    code_dir: Path
    report_dir: Path
    artifacts_dir: Path


@dataclass
class WatchContext:
    config: WatchConfig
    workspace: WatchWorkspace
    sink: ReportSink
    dispatcher: IssueDispatchService
    run_checks: CheckRunner = checks.run_checks
    clock: Callable[[], float] = time.time

    @property
    def code_dir(self) -> Path:
        return self.workspace.code_dir


@contextmanager
def watch_workspace() -> Iterator[WatchWorkspace]:
    """Create the run's scratch directories and remove them on every exit path."""
    root = Path(tempfile.mkdtemp(prefix=paths.WORKDIR_PREFIX))
    try:
        workspace = WatchWorkspace(
            root=root,
            code_dir=root / "code",
            report_dir=root / "reports",
            artifacts_dir=root / "artifacts",
        )
        for directory in (workspace.code_dir, workspace.report_dir, workspace.artifacts_dir):
            directory.mkdir()
        yield workspace
    finally:
        log.info("Cleaning up...")
        shutil.rmtree(root, ignore_errors=True)


@contextmanager
def terminate_on_sigterm() -> Iterator[None]:
    """Turn SIGTERM into :class:`WatchInterrupted` for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise(signum: int, frame: object) -> None:
        raise WatchInterrupted(f"received signal {signum}")

    previous = signal.getsignal(signal.SIGTERM)
    signal.signal(signal.SIGTERM, _raise)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def open_context(
    config: WatchConfig,
    workspace: WatchWorkspace,
    *,
    api: IssueApi | None = None,
    run_checks: CheckRunner = checks.run_checks,
    clock: Callable[[], float] = time.time,
) -> WatchContext:
    """Clone the code branch and wire the sink and dispatcher for the run."""
    git.git_clone(config.code.url, workspace.code_dir)
    git.git_switch(workspace.code_dir, config.code.branch)
    issue_api = api or GithubClient(token=config.token, api_url=config.settings.api_url)
    return WatchContext(
        config=config,
        workspace=workspace,
        sink=ReportSink(
            target=config.report,
            pages_owner=config.code.owner,
            worktree=workspace.report_dir,
        ),
        dispatcher=IssueDispatchService(issue_api, config.code, config.settings.labels),
        run_checks=run_checks,
        clock=clock,
    )


def initial_state(ctx: WatchContext) -> WatchState:
    """Derive the starting state from the remote.

    With the ``baseline`` first-run policy the current tip becomes the
    pointer and nothing is processed until the branch moves; with
    ``history`` the pointer starts empty so the whole branch is processed.
    """
    code = ctx.config.code
    marker = git.git_rev_parse(ctx.code_dir, f"refs/tags/{ctx.config.success_tag}")
    if ctx.config.settings.first_run == "history":
        log.info(f"processing full history of {code.branch}")
        return WatchState(last_seen=None, success_marker=marker)
    tip = git.git_fetch(ctx.code_dir, code.url, code.branch)
    log.info(f"watching {code.slug}@{code.branch} from {tip[:7]}")
    return WatchState(last_seen=tip, success_marker=marker)


def advance_success_marker(ctx: WatchContext, sha: str, current: str | None) -> bool:
    """Force-move the success tag to ``sha`` and push it.

    The tag is never moved onto a strict ancestor of the commit it already
    marks, nor moved at all when ancestry cannot be determined. Push failures
    are reported and leave the loop running.
    """
    tag = ctx.config.success_tag
    if current and current != sha:
        is_ancestor = git.git_is_ancestor(ctx.code_dir, sha, current)
        if is_ancestor is None:
            log.warning(f"cannot order {sha[:7]} against {current[:7]}; leaving {tag} in place")
            return False
        if is_ancestor:
            log.warning(
                f"{tag} already marks {current[:7]}, a descendant of {sha[:7]}; not moving it"
            )
            return False
    try:
        git.git_tag_force(ctx.code_dir, tag, sha)
        git.git_push_tags_force(ctx.code_dir, git.git_remote_name(ctx.code_dir))
    except ServiceFailure as exc:
        log.warning(f"failed to publish {tag}: {exc}")
        return False
    log.success(f"{tag} -> {sha[:7]}")
    return True


def process_commit(
    ctx: WatchContext, sha: str, position: int, *, success_marker: str | None = None
) -> CommitResult:
    """Check out, check, report, then either mark success or file an issue."""
    with log.commit_scope(sha):
        return _process_commit(ctx, sha, position, success_marker)


def _process_commit(
    ctx: WatchContext, sha: str, position: int, success_marker: str | None
) -> CommitResult:
    log.info(f"checking {sha}")
    git.git_checkout(ctx.code_dir, sha)
    commit = Commit(sha=sha, author_email=git.git_author_email(ctx.code_dir), position=position)
    settings = ctx.config.settings
    with tempfile.TemporaryDirectory(
        dir=ctx.workspace.artifacts_dir, prefix=f"{commit.short_sha}-"
    ) as scratch:
        outcomes = ctx.run_checks(
            ctx.code_dir,
            Path(scratch),
            pytest_command=settings.pytest_command,
            black_command=settings.black_command,
            timeout_seconds=settings.check_timeout,
        )
        report = ctx.sink.publish(sha, outcomes, timestamp=int(ctx.clock()))

    if outcomes.all_passed:
        advanced = advance_success_marker(ctx, sha, success_marker)
        return CommitResult(
            commit=commit, outcomes=outcomes, report=report, marker_advanced=advanced
        )

    issue = ctx.dispatcher(
        DispatchRequest(
            commit=commit,
            test_status=outcomes.tests.status,
            format_status=outcomes.formatting.status,
            report=report,
        )
    )
    return CommitResult(commit=commit, outcomes=outcomes, report=report, issue=issue)


def run_iteration(
    state: WatchState,
    ctx: WatchContext,
    *,
    on_commit: Callable[[CommitResult], None] | None = None,
) -> WatchState:
    """Run one poll cycle and return the next state.

    Infrastructure failures end the cycle early; the loop retries on the next
    poll. Losing the report repository checkout is fatal and propagates.
    """
    code = ctx.config.code
    next_state = replace(state, cycles=state.cycles + 1)
    try:
        tip = git.git_fetch(ctx.code_dir, code.url, code.branch)
        if tip == state.last_seen:
            log.trace(f"no new commits on {code.branch}")
            return next_state
        shas = git.git_commits_between(ctx.code_dir, state.last_seen, tip)
    except ServiceFailure as exc:
        log.error(f"poll of {code.branch} failed: {exc}")
        return next_state

    # The pointer advances before the batch runs; a crash mid-batch drops the rest.
    next_state = replace(next_state, last_seen=tip)
    log.info(f"{len(shas)} new commit(s) on {code.branch}")
    for position, sha in enumerate(shas):
        try:
            result = process_commit(
                ctx, sha, position, success_marker=next_state.success_marker
            )
        except ReportSinkUnavailableError:
            raise
        except ServiceFailure as exc:
            log.error(f"processing {sha[:7]} failed; skipping the rest of this batch: {exc}")
            break
        if result.marker_advanced:
            next_state = replace(next_state, success_marker=sha)
        if on_commit is not None:
            on_commit(result)
    return next_state


def watch(
    config: WatchConfig,
    *,
    api: IssueApi | None = None,
    run_checks: CheckRunner = checks.run_checks,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.time,
    on_commit: Callable[[CommitResult], None] | None = None,
) -> WatchState:
    """Run the watch loop until interrupted or ``max_cycles`` is reached."""
    settings = config.settings
    with terminate_on_sigterm(), watch_workspace() as workspace:
        ctx = open_context(config, workspace, api=api, run_checks=run_checks, clock=clock)
        state = initial_state(ctx)
        while True:
            state = run_iteration(state, ctx, on_commit=on_commit)
            if settings.max_cycles is not None and state.cycles >= settings.max_cycles:
                log.info(f"reached max cycles ({settings.max_cycles}); exiting")
                return state
            log.trace(f"sleeping {settings.poll_interval} seconds")
            sleep(settings.poll_interval)
