from .base import BaseService
from .errors import (
    DependencyMissingError,
    ExternalCommandFailedError,
    ReportSinkUnavailableError,
    ServiceFailure,
    UnexpectedStateError,
    ValidationFailedError,
)

__all__ = [
    "BaseService",
    "DependencyMissingError",
    "ExternalCommandFailedError",
    "ReportSinkUnavailableError",
    "ServiceFailure",
    "UnexpectedStateError",
    "ValidationFailedError",
]
