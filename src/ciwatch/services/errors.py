"""Service failure contracts.

Services return typed outcomes on success and raise ServiceFailure on expected
precondition or infrastructure failures. Failing tests and unformatted code
are check outcomes, not service failures. Programmer bugs raise normal
exceptions.
"""

from __future__ import annotations

from typing import Literal

ServiceFailureCode = Literal[
    "validation_failed",
    "dependency_missing",
    "external_command_failed",
    "unexpected_state",
]


class ServiceFailure(Exception):
    """Expected service failure: validation, precondition, or runtime error.

    Use ``raise ServiceFailure(...) from exc`` to chain a causing exception; it
    is available as ``__cause__``. The CLI catches ServiceFailure, prints the
    message and hint, and exits non-zero.
    """

    def __init__(
        self,
        code: ServiceFailureCode,
        message: str,
        *,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.recovery_hint = recovery_hint


class ValidationFailedError(ServiceFailure):
    """Validation failed (invalid argument, unparseable URL, bad config)."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("validation_failed", message, recovery_hint=recovery_hint)


class DependencyMissingError(ServiceFailure):
    """Required tool or credential is missing."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("dependency_missing", message, recovery_hint=recovery_hint)


class ExternalCommandFailedError(ServiceFailure):
    """External command (git) or GitHub API call failed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("external_command_failed", message, recovery_hint=recovery_hint)


class ReportSinkUnavailableError(ExternalCommandFailedError):
    """The report repository could not be cloned; no report can be published."""


class UnexpectedStateError(ServiceFailure):
    """Unexpected or inconsistent remote state (missing repo or branch)."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("unexpected_state", message, recovery_hint=recovery_hint)
