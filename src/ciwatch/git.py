"""Git helper functions for the watched code and report repositories."""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import urlparse

from . import exec as exec_util
from .services.errors import ExternalCommandFailedError, ValidationFailedError

_SCP_PATTERN = re.compile(r"^(?P<user>[^@]+)@(?P<host>[^:]+):(?P<path>.+)$")


def git_command(args: list[str], *, repo_dir: Path | None = None) -> list[str]:
    """Build a git argv, optionally scoped to ``repo_dir`` with ``-C``.

    Example:
        >>> git_command(["status"], repo_dir=Path("/repo"))
        ['git', '-C', '/repo', 'status']
    """
    if repo_dir is None:
        return ["git", *args]
    return ["git", "-C", str(repo_dir), *args]


def _run_git(args: list[str], *, repo_dir: Path | None = None) -> exec_util.CommandResult:
    return exec_util.run_status(git_command(args, repo_dir=repo_dir))


def _run_git_or_fail(
    args: list[str], *, repo_dir: Path | None = None, action: str
) -> exec_util.CommandResult:
    try:
        return exec_util.run_checked(git_command(args, repo_dir=repo_dir))
    except exec_util.CommandExecutionError as exc:
        raise ExternalCommandFailedError(f"{action} failed: {exc}") from exc


def strip_git_suffix(path: str) -> str:
    """Remove a trailing ``.git`` suffix from a path string.

    Example:
        >>> strip_git_suffix("example/repo.git")
        'example/repo'
    """
    normalized = path.strip().rstrip("/")
    if normalized.lower().endswith(".git"):
        return normalized[: -len(".git")]
    return normalized


def parse_remote_coordinates(url: str) -> tuple[str, str]:
    """Return the ``(owner, repository)`` pair encoded in a remote URL.

    Supports SCP-style SSH URLs and ``https``/``ssh``/``git`` URLs.

    Raises:
        ValidationFailedError: The URL has no ``owner/name`` path.

    Example:
        >>> parse_remote_coordinates("git@github.com:octo/site.git")
        ('octo', 'site')
        >>> parse_remote_coordinates("https://github.com/octo/site")
        ('octo', 'site')
    """
    raw = url.strip()
    path = ""
    scp_match = _SCP_PATTERN.match(raw)
    if scp_match and "://" not in raw:
        path = scp_match.group("path")
    elif "://" in raw:
        path = urlparse(raw).path or ""
    segments = [segment for segment in strip_git_suffix(path).split("/") if segment]
    if len(segments) < 2:
        raise ValidationFailedError(
            f"cannot determine owner and repository from URL: {url}",
            recovery_hint="use git@github.com:OWNER/REPO.git or https://github.com/OWNER/REPO",
        )
    return segments[-2], segments[-1]


def remote_exists(url: str) -> bool:
    """Return whether ``git ls-remote`` can reach ``url``."""
    return _run_git(["ls-remote", "--exit-code", url]).returncode == 0


def remote_branch_exists(url: str, branch: str) -> bool:
    """Return whether ``branch`` exists as a head on the remote."""
    return _run_git(["ls-remote", "--exit-code", "--heads", url, branch]).returncode == 0


def git_clone(url: str, dest: Path) -> None:
    _run_git_or_fail(["clone", "--quiet", url, str(dest)], action=f"clone of {url}")


def git_switch(repo_dir: Path, branch: str) -> None:
    _run_git_or_fail(["switch", "--quiet", branch], repo_dir=repo_dir, action=f"switch to {branch}")


def git_fetch(repo_dir: Path, url: str, branch: str) -> str:
    """Fetch ``branch`` from ``url`` and return the fetched tip sha."""
    _run_git_or_fail(
        ["fetch", "--quiet", url, branch], repo_dir=repo_dir, action=f"fetch of {branch}"
    )
    tip = git_rev_parse(repo_dir, "FETCH_HEAD")
    if tip is None:
        raise ExternalCommandFailedError(f"fetch of {branch} did not produce FETCH_HEAD")
    return tip


def git_rev_parse(repo_dir: Path, ref: str) -> str | None:
    """Resolve ``ref`` to a full sha, or ``None`` when it does not exist."""
    result = _run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], repo_dir=repo_dir)
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def git_commits_between(repo_dir: Path, since: str | None, until: str) -> list[str]:
    """List commits in ``since..until`` oldest first.

    When ``since`` is ``None`` every commit reachable from ``until`` is listed.
    """
    revision = f"{since}..{until}" if since else until
    result = _run_git_or_fail(
        ["log", "--pretty=format:%H", "--reverse", revision],
        repo_dir=repo_dir,
        action=f"log of {revision}",
    )
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def git_checkout(repo_dir: Path, sha: str) -> None:
    _run_git_or_fail(
        ["checkout", "--quiet", "--force", sha], repo_dir=repo_dir, action=f"checkout of {sha}"
    )


def git_author_email(repo_dir: Path, ref: str = "HEAD") -> str:
    result = _run_git_or_fail(
        ["log", "-n", "1", "--format=%ae", ref], repo_dir=repo_dir, action="author lookup"
    )
    return result.stdout.strip()


def git_is_ancestor(repo_dir: Path, ancestor: str, descendant: str) -> bool | None:
    """Return whether ``ancestor`` is reachable from ``descendant``.

    Returns:
        ``True``/``False`` from ``merge-base --is-ancestor``; ``None`` on error.
    """
    result = _run_git(["merge-base", "--is-ancestor", ancestor, descendant], repo_dir=repo_dir)
    if result.returncode == 0:
        return True
    if result.returncode == 1:
        return False
    return None


def git_remote_name(repo_dir: Path) -> str:
    """Return the first configured remote name (``origin`` for a fresh clone)."""
    result = _run_git_or_fail(["remote"], repo_dir=repo_dir, action="remote lookup")
    for line in result.stdout.splitlines():
        if line.strip():
            return line.strip()
    raise ExternalCommandFailedError(f"no git remote configured in {repo_dir}")


def git_tag_force(repo_dir: Path, name: str, sha: str) -> None:
    _run_git_or_fail(["tag", "--force", name, sha], repo_dir=repo_dir, action=f"tag {name}")


def git_push_tags_force(repo_dir: Path, remote: str) -> None:
    _run_git_or_fail(
        ["push", "--quiet", "--force", remote, "--tags"],
        repo_dir=repo_dir,
        action="push of tags",
    )


def git_add(repo_dir: Path, path: str) -> None:
    _run_git_or_fail(["add", path], repo_dir=repo_dir, action=f"add of {path}")


def git_commit(repo_dir: Path, message: str) -> None:
    _run_git_or_fail(["commit", "--quiet", "-m", message], repo_dir=repo_dir, action="commit")


def git_push(repo_dir: Path) -> None:
    _run_git_or_fail(["push", "--quiet"], repo_dir=repo_dir, action="push")
