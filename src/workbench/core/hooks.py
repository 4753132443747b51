"""Lifecycle hook execution inside a workspace."""

import logging
import os
import signal
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from workbench.config import DEFAULT_AFTER_CREATE, HooksConfig, WorkbenchConfig

logger = logging.getLogger(__name__)

DEFAULT_HOOK_TIMEOUT = 300.0


class HookExecutionError(Exception):
    """A hook command failed, timed out, or could not run."""

    def __init__(self, command: str, message: str, exit_code: int | None = None, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Hook `{command}` {message}")


@dataclass
class HookResult:
    command: str
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


@dataclass
class HookReport:
    results: list[HookResult] = field(default_factory=list)
    errors: list[HookExecutionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def hooks_for(config: WorkbenchConfig) -> HooksConfig:
    """Configured hooks, or the defaults when none are configured at all."""
    hooks = config.hooks
    if not hooks.after_create and not hooks.before_destroy:
        return HooksConfig(after_create=list(DEFAULT_AFTER_CREATE))
    return hooks


def _run_one(command: str, cwd: Path, timeout: float, env: dict[str, str]) -> HookResult:
    proc = subprocess.Popen(
        command,
        shell=True,
        cwd=cwd,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        start_new_session=True,
    )
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass  # Already exited
        stdout, stderr = proc.communicate()
        return HookResult(command, None, stdout, stderr, timed_out=True)
    return HookResult(command, proc.returncode, stdout, stderr)


def run_hooks(
    commands: list[str],
    cwd: str | Path,
    timeout: float = DEFAULT_HOOK_TIMEOUT,
) -> HookReport:
    """Run shell commands in order inside cwd.

    A failing or hanging command is recorded and the next one still runs.
    Raises HookExecutionError only if cwd is not a directory.
    """
    workdir = Path(cwd).resolve()
    if not workdir.is_dir():
        raise HookExecutionError("<all>", f"cannot run: {workdir} is not a directory")

    env = {**os.environ, "WB_WORKTREE_PATH": str(workdir)}
    report = HookReport()
    for command in commands:
        logger.info("Running hook in %s: %s", workdir, command)
        result = _run_one(command, workdir, timeout, env)
        report.results.append(result)

        if result.timed_out:
            error = HookExecutionError(command, f"timed out after {timeout:g}s", None, result.stderr)
        elif not result.ok:
            error = HookExecutionError(
                command, f"exited with code {result.exit_code}", result.exit_code, result.stderr
            )
        else:
            continue
        logger.warning("%s", error)
        report.errors.append(error)

    return report
