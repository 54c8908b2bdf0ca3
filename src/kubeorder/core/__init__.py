"""Core definitions shared across kubeorder."""

from kubeorder.core.errors import (
    ClusterError,
    ConfigurationError,
    ExitCode,
    InvalidLabelSelectorError,
    KubectlError,
    KubeOrderError,
    NamespaceNotClearedError,
    ReconcileCancelledError,
    ValidationError,
    format_error_message,
)

__all__ = [
    "ExitCode",
    "KubeOrderError",
    "ConfigurationError",
    "ClusterError",
    "KubectlError",
    "ValidationError",
    "InvalidLabelSelectorError",
    "NamespaceNotClearedError",
    "ReconcileCancelledError",
    "format_error_message",
]
