"""Minimal GitHub REST client for user search and issue creation."""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from .models import DEFAULT_API_URL, CreatedIssue, UserSearchResponse
from .services.errors import ExternalCommandFailedError

TOKEN_ENV_VAR = "GITHUB_PERSONAL_ACCESS_TOKEN"
API_URL_ENV_VAR = "GITHUB_API_URL"
API_VERSION = "2022-11-28"
_DEFAULT_TIMEOUT = 20

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class GithubClient:
    """Bearer-authenticated client for the two endpoints the watcher needs."""

    token: str
    api_url: str = DEFAULT_API_URL
    timeout: float = _DEFAULT_TIMEOUT

    def _headers(self, *, has_body: bool) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _request(self, method: str, path: str, payload: dict[str, object] | None = None) -> object:
        url = f"{self.api_url.rstrip('/')}{path}"
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        request = urllib.request.Request(
            url,
            data=data,
            headers=self._headers(has_body=data is not None),
            method=method,
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return json.load(response)
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
            raise ExternalCommandFailedError(
                f"GitHub API {method} {path} failed ({exc.code} {exc.reason})"
                f"{': ' + detail.strip() if detail.strip() else ''}"
            ) from exc
        except (urllib.error.URLError, TimeoutError) as exc:
            reason = getattr(exc, "reason", exc)
            raise ExternalCommandFailedError(
                f"GitHub API {method} {path} failed: {reason}"
            ) from exc
        except (http.client.HTTPException, OSError) as exc:
            # RemoteDisconnected, IncompleteRead, ConnectionResetError.
            raise ExternalCommandFailedError(
                f"GitHub API {method} {path} failed: {type(exc).__name__}: {exc}"
            ) from exc
        except json.JSONDecodeError as exc:
            raise ExternalCommandFailedError(
                f"GitHub API {method} {path} returned invalid JSON"
            ) from exc

    def search_users(self, query: str) -> UserSearchResponse:
        """Return ``GET /search/users?q=<query>``."""
        path = f"/search/users?{urllib.parse.urlencode({'q': query})}"
        return _validate(UserSearchResponse, self._request("GET", path), path)

    def create_issue(self, repo_slug: str, payload: dict[str, object]) -> CreatedIssue:
        """Return the created issue from ``POST /repos/{owner}/{repo}/issues``."""
        path = f"/repos/{repo_slug}/issues"
        return _validate(CreatedIssue, self._request("POST", path, payload), path)


def _validate(model_type: type[ModelT], payload: object, path: str) -> ModelT:
    try:
        return model_type.model_validate(payload)
    except ValidationError as exc:
        raise ExternalCommandFailedError(
            f"unexpected GitHub API response from {path}: {exc}"
        ) from exc
