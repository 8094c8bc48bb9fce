"""Pydantic models for ciwatch settings and GitHub API payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

FIRST_RUN_VALUES = ("baseline", "history")
FirstRunPolicy = Literal["baseline", "history"]

DEFAULT_POLL_INTERVAL = 15.0
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_PYTEST_COMMAND = ("pytest", "--verbose")
DEFAULT_BLACK_COMMAND = ("black", "--check", "--diff", ".")


class LabelSection(BaseModel):
    """Issue labels applied per failing check.

    Attributes:
        tests: Label for genuine unit-test failures.
        formatting: Label for formatting failures.

    Example:
        >>> LabelSection().tests
        'ci-pytest'
    """

    model_config = ConfigDict(extra="forbid")

    tests: str = "ci-pytest"
    formatting: str = "ci-black"


class WatchSettings(BaseModel):
    """Tunable behavior of the watch loop.

    Attributes:
        poll_interval: Seconds to sleep between fetches of the branch tip.
        first_run: ``baseline`` records the startup tip without processing it;
            ``history`` processes every commit reachable from it.
        max_cycles: Stop after this many iterations (``None`` runs forever).
        pytest_command: Test runner argv; the HTML report flags are appended.
        black_command: Formatter argv run from the checkout root.
        check_timeout: Seconds each check may run before it is killed and
            counted as failed (``None`` waits indefinitely).
        api_url: GitHub REST API base URL.
        labels: Issue labels per failing check.

    Example:
        >>> WatchSettings(first_run=" History ").first_run
        'history'
    """

    model_config = ConfigDict(extra="forbid")

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0)
    first_run: FirstRunPolicy = "baseline"
    max_cycles: int | None = Field(default=None, ge=1)
    pytest_command: tuple[str, ...] = DEFAULT_PYTEST_COMMAND
    black_command: tuple[str, ...] = DEFAULT_BLACK_COMMAND
    check_timeout: float | None = Field(default=None, gt=0)
    api_url: str = DEFAULT_API_URL
    labels: LabelSection = Field(default_factory=LabelSection)

    @field_validator("first_run", mode="before")
    @classmethod
    def normalize_first_run(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("pytest_command", "black_command", mode="before")
    @classmethod
    def split_command(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(value.split())
        return value

    @field_validator("pytest_command", "black_command")
    @classmethod
    def require_command(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("command must not be empty")
        return value

    @field_validator("api_url", mode="before")
    @classmethod
    def normalize_api_url(cls, value: object) -> object:
        if value is None:
            return DEFAULT_API_URL
        if isinstance(value, str):
            return value.strip().rstrip("/") or DEFAULT_API_URL
        return value


class GithubUser(BaseModel):
    """One entry of a ``/search/users`` response."""

    model_config = ConfigDict(extra="ignore")

    login: str


class UserSearchResponse(BaseModel):
    """Payload returned by ``GET /search/users``."""

    model_config = ConfigDict(extra="ignore")

    total_count: int = 0
    items: list[GithubUser] = Field(default_factory=list)


class CreatedIssue(BaseModel):
    """Subset of the payload returned by ``POST /repos/{owner}/{repo}/issues``."""

    model_config = ConfigDict(extra="ignore")

    number: int | None = None
    html_url: str | None = None
