"""Startup preconditions checked once before the watch loop starts."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .. import exec as exec_util
from .. import git, log
from ..config import WatchConfig
from .base import BaseService
from .errors import DependencyMissingError, UnexpectedStateError


@dataclass(frozen=True)
class PreflightRequest:
    config: WatchConfig


@dataclass(frozen=True)
class PreflightReport:
    tools: tuple[str, ...]
    repositories: tuple[str, ...]


class PreflightService(BaseService[PreflightRequest, PreflightReport]):
    """Fail fast on missing tools and unreachable repositories or branches."""

    def __init__(
        self,
        *,
        command_exists: Callable[[str], bool] = exec_util.command_exists,
        remote_exists: Callable[[str], bool] = git.remote_exists,
        remote_branch_exists: Callable[[str, str], bool] = git.remote_branch_exists,
    ) -> None:
        self._command_exists = command_exists
        self._remote_exists = remote_exists
        self._remote_branch_exists = remote_branch_exists

    def _run(self, request: PreflightRequest) -> PreflightReport:
        settings = request.config.settings
        tools = ("git", settings.pytest_command[0], settings.black_command[0])
        for tool in tools:
            if not self._command_exists(tool):
                raise DependencyMissingError(
                    f"{tool} is not installed",
                    recovery_hint=f"install {tool} and make sure it is on PATH",
                )
        targets = (request.config.code, request.config.report)
        for target in targets:
            if not self._remote_exists(target.url):
                raise UnexpectedStateError(f"Repository does not exist: {target.url}")
            if not self._remote_branch_exists(target.url, target.branch):
                raise UnexpectedStateError(
                    f"Branch '{target.branch}' does not exist in repository: {target.url}"
                )
            log.debug(f"reachable: {target.url} ({target.branch})")
        return PreflightReport(tools=tools, repositories=tuple(t.url for t in targets))
