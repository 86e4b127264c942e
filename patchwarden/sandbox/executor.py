"""Local process execution for git and verification commands.

Everything here blocks until the child exits. There is no internal
parallelism and no cancellation beyond an optional timeout.
"""

import logging
import os
import subprocess
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class SandboxError(Exception):
    """A child process could not be started."""

    pass


class ExecutionResult(BaseModel):
    """Result of a captured command execution."""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def default_shell() -> list[str]:
    """argv prefix used to run a command string through the host shell."""
    if os.name == "nt":
        return ["cmd", "/C"]
    return ["sh", "-lc"]


def exit_code(returncode: int) -> int:
    """Map a Popen returncode to a shell-style exit status.

    A child killed by signal N reports -N; shells report 128 + N.
    """
    if returncode < 0:
        return 128 + (-returncode)
    return returncode


class LocalExecutor:
    """Run commands on the host, without a sandbox."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    def run(
        self,
        command: list[str],
        workdir: str | Path | None = None,
    ) -> ExecutionResult:
        """Run ``command`` capturing stdout/stderr as text.

        Trailing whitespace is stripped from both streams.

        Raises:
            SandboxError: If the program cannot be launched.
        """
        try:
            result = subprocess.run(
                command,
                cwd=workdir,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return ExecutionResult(
                returncode=-1,
                stdout="",
                stderr=f"Command timed out after {self.timeout}s",
                timed_out=True,
            )
        except OSError as e:
            raise SandboxError(f"{command[0]} failed: {e}") from e

        return ExecutionResult(
            returncode=exit_code(result.returncode),
            stdout=result.stdout.rstrip(),
            stderr=result.stderr.rstrip(),
        )

    def run_to_file(
        self,
        command: list[str],
        workdir: str | Path,
        output_path: Path,
    ) -> int:
        """Run ``command`` with stdout and stderr sharing one output file.

        Both streams point at the same open file description, so output
        lands in the order the child emits it.

        Returns:
            Shell-style exit status of the child

        Raises:
            SandboxError: If the program cannot be launched.
            OSError: If the output file cannot be created.
        """
        with open(output_path, "wb") as out:
            try:
                proc = subprocess.run(
                    command,
                    cwd=workdir,
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=subprocess.STDOUT,
                )
            except OSError as e:
                raise SandboxError(f"failed to run command: {e}") from e

        if proc.returncode < 0:
            logger.info("Command killed by signal %d: %s", -proc.returncode, command)
        return exit_code(proc.returncode)
