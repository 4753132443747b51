"""Subprocess execution with captured output and explicit timeouts."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class ProcessError(Exception):
    """Raised when a subprocess exits non-zero or cannot be started."""

    def __init__(self, args: list[str], exit_code: int, stderr: str = ""):
        self.args_list = list(args)
        self.exit_code = exit_code
        self.stderr = stderr
        detail = stderr.strip() or f"exit code {exit_code}"
        super().__init__(f"{' '.join(self.args_list)} failed: {detail}")


class ProcessTimeoutError(ProcessError):
    """Raised when a subprocess does not finish within its timeout."""

    def __init__(self, args: list[str], timeout: float, stderr: str = ""):
        self.timeout = timeout
        super().__init__(args, -1, stderr or f"timed out after {timeout:g}s")


@dataclass
class ProcessResult:
    args: list[str]
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def exec_command(
    args: list[str],
    cwd: str | Path | None = None,
    check: bool = True,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
) -> ProcessResult:
    """Run a command and capture its output.

    Raises ProcessError on a non-zero exit unless check is False. Timeouts
    always raise ProcessTimeoutError. Nothing is retried.
    """
    logger.debug("exec %s (cwd=%s)", args, cwd)
    try:
        completed = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
    except FileNotFoundError as e:
        raise ProcessError(args, 127, f"executable not found: {args[0]}") from e
    except subprocess.TimeoutExpired as e:
        stderr = e.stderr.decode() if isinstance(e.stderr, bytes) else (e.stderr or "")
        raise ProcessTimeoutError(args, timeout or 0, stderr) from e

    result = ProcessResult(
        args=list(args),
        stdout=completed.stdout,
        stderr=completed.stderr,
        exit_code=completed.returncode,
    )
    if check and not result.ok:
        raise ProcessError(args, result.exit_code, result.stderr)
    return result
