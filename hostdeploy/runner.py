"""The single place external commands are executed."""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger("hostdeploy")


class CommandRunner:
    """Run external commands without ever raising on a non-zero exit.

    Callers inspect `returncode` and turn failures into the right stage error.
    """

    def __init__(self, *, verbose: bool = True):
        self.verbose = verbose

    def _echo(self, cmd: list[str]) -> None:
        if self.verbose:
            print(f"[cmd] {' '.join(cmd)}", flush=True)

    def run(
        self,
        cmd: list[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        self._echo(cmd)
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                stdout=subprocess.PIPE if capture_output else None,
                stderr=subprocess.PIPE if capture_output else None,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            # Missing executable: report it the same way as a failing command.
            return subprocess.CompletedProcess(cmd, 127, stdout="", stderr=str(e))

        if capture_output:
            logger.debug("%s -> %s stdout=%r stderr=%r", cmd[0], result.returncode, result.stdout, result.stderr)
        return result

    def start(self, cmd: list[str]) -> subprocess.Popen:
        """Start a long-running child that writes straight to the operator's terminal."""
        self._echo(cmd)
        return subprocess.Popen(cmd)


def report_failure(result: subprocess.CompletedProcess[str]) -> str:
    """Echo captured output of a failed command to stderr and return a short detail string."""
    out = str(result.stdout or "").strip()
    err = str(result.stderr or "").strip()
    if out:
        print(out, file=sys.stderr)
    if err:
        print(err, file=sys.stderr)
    detail = err.splitlines()[-1] if err else ""
    return f"exit code {result.returncode}" + (f" ({detail})" if detail else "")
