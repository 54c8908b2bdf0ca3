"""
Error hierarchy for kubeorder.

Only structural failures surface as exceptions. Per-resource failures during
apply/delete, decode failures and per-type list failures are logged and
recorded on result objects instead.

Exit Codes:
- 0: Success
- 2: Blocked (namespace could not be cleared within the retry budget)
- 10: Configuration error
- 11: Cluster error (kubectl or API server failure)
- 12: Validation error (e.g. malformed label selector)
- 127: Unknown/internal error
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ExitCode(IntEnum):
    """Exit codes a calling process can map errors onto."""

    SUCCESS = 0
    BLOCKED = 2
    CONFIG_ERROR = 10
    CLUSTER_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127


class KubeOrderError(Exception):
    """Base exception for kubeorder errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(KubeOrderError):
    """Raised when settings or cluster credentials cannot be loaded."""

    exit_code = ExitCode.CONFIG_ERROR


class ClusterError(KubeOrderError):
    """Raised when the cluster (API server or kubectl) rejects an operation."""

    exit_code = ExitCode.CLUSTER_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        status: int | None = None,
    ):
        super().__init__(message, details)
        self.status = status

    @property
    def not_found(self) -> bool:
        return self.status == 404


class KubectlError(ClusterError):
    """Raised when a kubectl invocation exits non-zero."""

    def __init__(self, message: str, *, stdout: str = "", stderr: str = "", returncode: int = 1):
        super().__init__(message, {"returncode": returncode})
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode

    @property
    def not_found(self) -> bool:
        return "NotFound" in self.stderr or "not found" in self.stderr


class ValidationError(KubeOrderError):
    """Raised for invalid caller input."""

    exit_code = ExitCode.VALIDATION_ERROR


class InvalidLabelSelectorError(ValidationError):
    """Raised when a label selector cannot be converted into a matcher."""


class NamespaceNotClearedError(KubeOrderError):
    """Raised when an application's objects outlive the reconciliation budget."""

    exit_code = ExitCode.BLOCKED

    def __init__(self, app_slug: str, namespace: str, attempts: int):
        super().__init__(
            f"failed to clear app {app_slug} from namespace {namespace}",
            {"app": app_slug, "namespace": namespace, "attempts": attempts},
        )
        self.app_slug = app_slug
        self.namespace = namespace
        self.attempts = attempts


class ReconcileCancelledError(KubeOrderError):
    """Raised when reconciliation is cancelled before the namespace converged."""

    exit_code = ExitCode.BLOCKED


def format_error_message(error: KubeOrderError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
