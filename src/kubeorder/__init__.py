"""
kubeorder: ordered apply, delete and namespace reconciliation for cluster manifests.
"""

from kubeorder.lifecycle.executor import ExecutionReport, Operation
from kubeorder.orchestrator import Orchestrator, UndeployRequest, UndeployResult

__version__ = "0.1.0"

__all__ = [
    "ExecutionReport",
    "Operation",
    "Orchestrator",
    "UndeployRequest",
    "UndeployResult",
    "__version__",
]
