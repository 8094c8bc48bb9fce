"""Configuration helpers for the watcher.

Settings come from built-in defaults, then an optional JSON file, then the
environment, then command-line overrides. The result is validated with
Pydantic.

Example:
    >>> from ciwatch.config import load_settings
    >>> load_settings(None, {}, env={}).poll_interval
    15.0
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from pydantic import ValidationError

from . import git, paths
from .github import API_URL_ENV_VAR, TOKEN_ENV_VAR
from .models import WatchSettings
from .records import RepoTarget
from .services.errors import DependencyMissingError, ValidationFailedError


@dataclass(frozen=True)
class WatchConfig:
    """Everything the watch loop needs, resolved once at startup."""

    code: RepoTarget
    report: RepoTarget
    token: str
    settings: WatchSettings

    @property
    def success_tag(self) -> str:
        return f"{self.code.branch}-ci-success"


def load_json(path: Path) -> dict | None:
    """Load a JSON object from ``path`` if the file exists.

    Example:
        >>> from pathlib import Path
        >>> load_json(Path("missing.json")) is None
        True
    """
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ValidationFailedError(f"cannot read config file {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationFailedError(f"config file {path} must contain a JSON object")
    return payload


def load_settings(
    config_path: Path | None,
    overrides: Mapping[str, object],
    *,
    env: Mapping[str, str] | None = None,
) -> WatchSettings:
    """Merge file, environment and CLI settings into a validated model.

    Args:
        config_path: Explicit settings file; must exist when given. ``None``
            reads the per-user default file when present.
        overrides: CLI values; ``None`` entries are ignored.
        env: Environment mapping (defaults to ``os.environ``).
    """
    environ = os.environ if env is None else env
    if config_path is not None:
        if not config_path.exists():
            raise ValidationFailedError(f"config file not found: {config_path}")
        payload = load_json(config_path) or {}
    else:
        payload = load_json(paths.default_config_path()) or {}
    merged: dict[str, object] = dict(payload)
    api_url = environ.get(API_URL_ENV_VAR, "").strip()
    if api_url:
        merged["api_url"] = api_url
    merged.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return WatchSettings.model_validate(merged)
    except ValidationError as exc:
        raise ValidationFailedError(f"invalid settings: {exc}") from exc


def resolve_token(env: Mapping[str, str] | None = None) -> str:
    """Return the GitHub token or raise when it is not set."""
    environ = os.environ if env is None else env
    token = environ.get(TOKEN_ENV_VAR, "").strip()
    if not token:
        raise DependencyMissingError(
            f"{TOKEN_ENV_VAR} environment variable is missing",
            recovery_hint=f"export {TOKEN_ENV_VAR} with a token that can create issues",
        )
    return token


def repo_target(url: str, branch: str) -> RepoTarget:
    """Build a :class:`RepoTarget` from a remote URL and branch name."""
    branch_name = branch.strip()
    if not branch_name:
        raise ValidationFailedError(f"branch name for {url} must not be empty")
    owner, name = git.parse_remote_coordinates(url)
    return RepoTarget(url=url.strip(), branch=branch_name, owner=owner, name=name)


def build_watch_config(
    code_url: str,
    code_branch: str,
    report_url: str,
    report_branch: str,
    settings: WatchSettings,
    *,
    env: Mapping[str, str] | None = None,
) -> WatchConfig:
    return WatchConfig(
        code=repo_target(code_url, code_branch),
        report=repo_target(report_url, report_branch),
        token=resolve_token(env),
        settings=settings,
    )
