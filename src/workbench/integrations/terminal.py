"""Terminal integrations for opening an interactive session in a workspace."""

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Protocol

from workbench.integrations.process import exec_command

logger = logging.getLogger(__name__)

LAUNCH_TIMEOUT = 15.0


class TerminalUnavailableError(Exception):
    """Raised when the selected terminal cannot be used here."""


class TerminalAdapter(Protocol):
    name: str

    def is_available(self) -> bool: ...

    def open_session(self, cwd: str | Path, title: str, command: str | None = None) -> None: ...


def _shell_argv(command: str) -> list[str]:
    return [os.environ.get("SHELL", "/bin/sh"), "-lc", command]


class NoopTerminal:
    name = "none"

    def is_available(self) -> bool:
        return True

    def open_session(self, cwd: str | Path, title: str, command: str | None = None) -> None:
        logger.debug("Terminal disabled; not opening %s", cwd)


class _BinaryTerminal:
    name = ""
    binary = ""

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def _require(self):
        if not self.is_available():
            raise TerminalUnavailableError(f"{self.name}: `{self.binary}` not found on PATH")


class WezTermAdapter(_BinaryTerminal):
    name = "wezterm"
    binary = "wezterm"

    def open_session(self, cwd: str | Path, title: str, command: str | None = None) -> None:
        self._require()
        args = [self.binary, "cli", "spawn", "--cwd", str(cwd)]
        if command:
            args += ["--"] + _shell_argv(command)
        result = exec_command(args, timeout=LAUNCH_TIMEOUT)
        pane_id = result.stdout.strip()
        if pane_id:
            exec_command(
                [self.binary, "cli", "set-tab-title", "--pane-id", pane_id, title],
                check=False,
                timeout=LAUNCH_TIMEOUT,
            )


class TmuxAdapter(_BinaryTerminal):
    name = "tmux"
    binary = "tmux"

    def open_session(self, cwd: str | Path, title: str, command: str | None = None) -> None:
        self._require()
        if os.environ.get("TMUX"):
            args = [self.binary, "new-window", "-c", str(cwd), "-n", title]
        else:
            # tmux session names cannot contain '.' or ':'
            session_name = re.sub(r"[.:]", "-", title)
            args = [self.binary, "new-session", "-d", "-s", session_name, "-c", str(cwd)]
        if command:
            args.append(command)
        exec_command(args, timeout=LAUNCH_TIMEOUT)


class KittyAdapter(_BinaryTerminal):
    name = "kitty"
    binary = "kitty"

    def open_session(self, cwd: str | Path, title: str, command: str | None = None) -> None:
        self._require()
        args = [self.binary, "@", "launch", "--type=tab", "--cwd", str(cwd), "--tab-title", title]
        if command:
            args += _shell_argv(command)
        exec_command(args, timeout=LAUNCH_TIMEOUT)


TERMINAL_ADAPTERS: dict[str, type] = {
    "wezterm": WezTermAdapter,
    "tmux": TmuxAdapter,
    "kitty": KittyAdapter,
    "none": NoopTerminal,
}


def get_terminal_adapter(name: str) -> TerminalAdapter:
    try:
        return TERMINAL_ADAPTERS[name]()
    except KeyError:
        raise ValueError(f"Unknown terminal: {name}") from None
