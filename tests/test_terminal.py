"""Tests for terminal adapters."""

from unittest.mock import patch

import pytest

from workbench.integrations.process import ProcessResult
from workbench.integrations.terminal import (
    KittyAdapter,
    NoopTerminal,
    TerminalUnavailableError,
    TmuxAdapter,
    WezTermAdapter,
    get_terminal_adapter,
)


def ok(stdout=""):
    return ProcessResult(args=[], stdout=stdout, stderr="", exit_code=0)


class TestRegistry:
    @pytest.mark.parametrize(
        "name,cls",
        [("wezterm", WezTermAdapter), ("tmux", TmuxAdapter), ("kitty", KittyAdapter), ("none", NoopTerminal)],
    )
    def test_known(self, name, cls):
        adapter = get_terminal_adapter(name)
        assert isinstance(adapter, cls)
        assert adapter.name == name

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown terminal"):
            get_terminal_adapter("xterm")


class TestNoop:
    def test_does_nothing(self, tmp_path):
        with patch("workbench.integrations.terminal.exec_command") as mock_exec:
            NoopTerminal().open_session(tmp_path, "T-1: title")
        mock_exec.assert_not_called()


class TestAdapters:
    @patch("workbench.integrations.terminal.shutil.which", return_value=None)
    def test_unavailable_raises(self, _which, tmp_path):
        adapter = WezTermAdapter()
        assert not adapter.is_available()
        with pytest.raises(TerminalUnavailableError):
            adapter.open_session(tmp_path, "title")

    @patch("workbench.integrations.terminal.shutil.which", return_value="/usr/bin/wezterm")
    @patch("workbench.integrations.terminal.exec_command")
    def test_wezterm_spawn_and_title(self, mock_exec, _which, tmp_path):
        mock_exec.side_effect = [ok("17\n"), ok()]
        WezTermAdapter().open_session(tmp_path, "T-1: Add login", command="opencode")

        spawn_args = mock_exec.call_args_list[0].args[0]
        assert spawn_args[:5] == ["wezterm", "cli", "spawn", "--cwd", str(tmp_path)]
        assert spawn_args[-1] == "opencode"
        title_args = mock_exec.call_args_list[1].args[0]
        assert title_args == ["wezterm", "cli", "set-tab-title", "--pane-id", "17", "T-1: Add login"]

    @patch("workbench.integrations.terminal.shutil.which", return_value="/usr/bin/tmux")
    @patch("workbench.integrations.terminal.exec_command", return_value=ok())
    def test_tmux_detached_session(self, mock_exec, _which, tmp_path, monkeypatch):
        monkeypatch.delenv("TMUX", raising=False)
        TmuxAdapter().open_session(tmp_path, "T-1.2: fix")
        args = mock_exec.call_args.args[0]
        assert args == ["tmux", "new-session", "-d", "-s", "T-1-2- fix", "-c", str(tmp_path)]

    @patch("workbench.integrations.terminal.shutil.which", return_value="/usr/bin/tmux")
    @patch("workbench.integrations.terminal.exec_command", return_value=ok())
    def test_tmux_inside_tmux(self, mock_exec, _which, tmp_path, monkeypatch):
        monkeypatch.setenv("TMUX", "/tmp/tmux-1000/default,1,0")
        TmuxAdapter().open_session(tmp_path, "T-1: fix")
        args = mock_exec.call_args.args[0]
        assert args[:2] == ["tmux", "new-window"]
        assert "-n" in args and "T-1: fix" in args

    @patch("workbench.integrations.terminal.shutil.which", return_value="/usr/bin/kitty")
    @patch("workbench.integrations.terminal.exec_command", return_value=ok())
    def test_kitty(self, mock_exec, _which, tmp_path):
        KittyAdapter().open_session(tmp_path, "T-1: docs")
        args = mock_exec.call_args.args[0]
        assert args == ["kitty", "@", "launch", "--type=tab", "--cwd", str(tmp_path), "--tab-title", "T-1: docs"]
