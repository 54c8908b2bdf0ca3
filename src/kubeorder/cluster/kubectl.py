"""
kubectl-backed manifest applier.

Manifests are piped to ``kubectl apply|delete -f -`` so that any document
kubectl understands (including ones this package could not decode) can be
acted on. Failures are raised as ``KubectlError`` carrying stdout/stderr.
"""

from __future__ import annotations

import subprocess
import time
from typing import List, Optional

import structlog

from kubeorder.cluster.base import CommandOutput
from kubeorder.core.errors import KubectlError

logger = structlog.get_logger()


class KubectlApplier:
    def __init__(
        self,
        kubectl_cmd: str = "kubectl",
        *,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        timeout: Optional[float] = 300,
    ) -> None:
        self.kubectl_cmd = kubectl_cmd
        self.kubeconfig = kubeconfig
        self.context = context
        self.timeout = timeout

    def apply(self, namespace: str, manifest: str, wait: bool) -> CommandOutput:
        args = ["apply", "-n", namespace, "-f", "-"]
        if wait:
            args.append("--wait")
        return self._run(args, manifest)

    def remove(self, namespace: str, manifest: str, wait: bool) -> CommandOutput:
        args = [
            "delete",
            "-n",
            namespace,
            "-f",
            "-",
            f"--wait={'true' if wait else 'false'}",
            "--ignore-not-found=true",
        ]
        return self._run(args, manifest)

    def _base_command(self) -> List[str]:
        cmd = [self.kubectl_cmd]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            cmd.extend(["--context", self.context])
        return cmd

    def _run(self, args: List[str], manifest: str) -> CommandOutput:
        cmd = self._base_command() + args
        start = time.perf_counter()
        try:
            completed = subprocess.run(
                cmd,
                input=manifest.encode("utf-8"),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise KubectlError(f"kubectl executable not found: {self.kubectl_cmd}") from exc
        except subprocess.TimeoutExpired as exc:
            raise KubectlError(
                f"kubectl {args[0]} timed out after {self.timeout}s",
                stdout=_decode(exc.stdout),
                stderr=_decode(exc.stderr),
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = _decode(exc.stderr).strip()
            stdout = _decode(exc.stdout).strip()
            raise KubectlError(
                f"kubectl {args[0]} failed: {stderr or stdout or exc}",
                stdout=stdout,
                stderr=stderr,
                returncode=exc.returncode,
            ) from exc

        logger.debug(
            "kubectl_completed",
            verb=args[0],
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )
        return CommandOutput(stdout=_decode(completed.stdout), stderr=_decode(completed.stderr))


def _decode(data: Optional[bytes]) -> str:
    return (data or b"").decode("utf-8", errors="ignore")
