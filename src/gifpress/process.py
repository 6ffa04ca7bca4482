from __future__ import annotations

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path

from .error_handling import ProcessLaunchError, ProcessTimeoutError

logger = logging.getLogger(__name__)

__all__ = [
    "ProcessInvocation",
    "ProcessInvoker",
    "render_command",
]


def render_command(cmd: list[str]) -> str:
    """Return *cmd* as a shell-quoted string, for logs and error messages only."""
    return shlex.join(str(part) for part in cmd)


@dataclass
class ProcessInvocation:
    """Outcome of one external call."""

    binary_path: str
    argv: list[str]
    exit_code: int | None = None
    stdout_lines: list[str] = field(default_factory=list)
    cwd: Path | None = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def command(self) -> str:
        return render_command([self.binary_path, *self.argv])


class ProcessInvoker:
    """Run an external binary with an argument list and capture its output.

    A non-zero exit status is a normal result and is returned to the caller.
    Only a binary that cannot be started raises :class:`ProcessLaunchError`,
    and a call that outlives *timeout* raises :class:`ProcessTimeoutError`.
    stderr is folded into stdout so warnings interleave with the report the
    way a terminal shows them.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def run(
        self,
        binary_path: str,
        argv: list[str],
        cwd: Path | None = None,
    ) -> ProcessInvocation:
        cmd = [binary_path, *argv]
        invocation = ProcessInvocation(
            binary_path=binary_path, argv=list(argv), cwd=cwd
        )
        logger.debug(f"Running: {invocation.command}" + (f" (cwd={cwd})" if cwd else ""))
        if cwd is not None and not Path(cwd).is_dir():
            raise ProcessLaunchError(
                f"Working directory not found: {cwd}", context={"binary": binary_path}
            )

        start = time.perf_counter()
        try:
            completed = subprocess.run(
                cmd,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ProcessLaunchError(
                f"Binary not found: {binary_path}", cause=e, context={"cwd": cwd}
            ) from e
        except PermissionError as e:
            raise ProcessLaunchError(
                f"Binary not executable: {binary_path}", cause=e
            ) from e
        except subprocess.TimeoutExpired as e:
            # subprocess.run kills and reaps the child before re-raising
            raise ProcessTimeoutError(
                f"{binary_path} timed out after {self.timeout} seconds",
                cause=e,
                context={"command": invocation.command},
            ) from e
        except OSError as e:
            raise ProcessLaunchError(
                f"Could not execute {binary_path}: {e}", cause=e
            ) from e

        invocation.duration_ms = int((time.perf_counter() - start) * 1000)
        invocation.exit_code = completed.returncode
        invocation.stdout_lines = completed.stdout.splitlines()

        if completed.returncode != 0:
            logger.debug(
                f"{binary_path} exited with {completed.returncode}: "
                f"{' | '.join(invocation.stdout_lines[-5:])}"
            )
        return invocation
